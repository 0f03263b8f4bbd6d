from __future__ import annotations

from pathlib import Path

from analysis.motion import InsufficientHistory, MotionConfig, MotionResult, MotionSidecarWriter
from sidecar.reader import SidecarReader
from sidecar.writer import SidecarWriter


def test_sidecar_roundtrip(tmp_path: Path):
    path = tmp_path / "sample_motion.jsonl"
    w = SidecarWriter(path)
    w.open()
    w.write({"type": "meta", "cam": "cam1"})
    w.write({"type": "row", "frame": 1, "values": [1, 2]})
    w.close()
    rows = list(SidecarReader(path))
    assert rows[0]["type"] == "meta"
    assert rows[1]["frame"] == 1 and rows[1]["values"] == [1, 2]
    assert w.records_written == 2
    assert not w.is_open


def test_reader_skips_torn_and_blank_lines(tmp_path: Path):
    path = tmp_path / "torn.jsonl"
    path.write_text('{"type": "a"}\n\n{"type": "b", "x"\n{"type": "c"}\n', encoding="utf-8")
    assert [r["type"] for r in SidecarReader(path)] == ["a", "c"]
    assert [r["type"] for r in SidecarReader(path, record_type="c")] == ["c"]


def test_motion_sidecar_records(tmp_path: Path):
    p = tmp_path / "out" / "motion.jsonl"
    with MotionSidecarWriter(p, config=MotionConfig()) as w:
        w.write_outcome(InsufficientHistory(total_pixels=4, frame_id=0, pts_ms=0.0))
        w.write_outcome(
            MotionResult(
                motion_detected=True,
                percentage=25.0,
                diff_count=1,
                total_pixels=4,
                frame_id=1,
                pts_ms=50.0,
            )
        )

    rows = list(SidecarReader(p))
    assert [r["type"] for r in rows] == ["motion_meta", "insufficient_history", "motion_result"]
    assert rows[0]["pixel_threshold"] == 50
    assert rows[0]["decision_threshold"] == 2.0
    assert "percentage" not in rows[1]
    assert rows[2]["motion_detected"] is True
    assert rows[2]["percentage"] == 25.0
    assert rows[2]["diff_count"] == 1
    assert rows[2]["frame_id"] == 1
