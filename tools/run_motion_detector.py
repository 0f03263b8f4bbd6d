from __future__ import annotations

import argparse
import contextlib
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from analysis.motion.config import load_motion_config
from analysis.motion.driver import MotionDriver
from analysis.motion.engine import MotionEngine
from analysis.motion.errors import ConfigError, MotionError
from analysis.motion.model import MotionOutcome
from analysis.motion.sidecar import MotionSidecarWriter
from analysis.motion.status import MotionStatus, describe, describe_error
from capture.reader import ReaderConfig, ReaderFactory, ReplayTransport

_LOG = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="run_motion_detector",
        description="Run frame-differencing motion detection against a frame source.",
    )
    ap.add_argument(
        "--prefer",
        type=str,
        choices=["synthetic", "replay"],
        default="synthetic",
        help='Frame source ("synthetic" for generated frames, "replay" for .npy frames).',
    )
    ap.add_argument(
        "--replay-dir",
        type=str,
        default=None,
        help="Directory of RGBA .npy frames for --prefer replay.",
    )
    ap.add_argument(
        "--loop",
        action="store_true",
        help="Loop the replay source instead of stopping at its end.",
    )
    ap.add_argument("--width", type=int, default=160, help="Synthetic frame width.")
    ap.add_argument("--height", type=int, default=120, help="Synthetic frame height.")
    ap.add_argument(
        "--move-px",
        type=int,
        default=12,
        help="Pixels the synthetic block moves per frame (0 gives a static scene).",
    )

    # Detector tuning; unset flags fall back to env / config module / defaults.
    ap.add_argument(
        "--pixel-threshold",
        type=int,
        default=None,
        help="Luminance delta a pixel must exceed to count as changed (0-255).",
    )
    ap.add_argument(
        "--decision-threshold",
        type=float,
        default=None,
        help="Percentage of changed pixels that must be exceeded to report motion.",
    )
    ap.add_argument(
        "--period-ms",
        type=float,
        default=None,
        help="Detection cycle period in ms.",
    )

    ap.add_argument(
        "--max-seconds",
        type=float,
        default=0,
        help="If > 0, stop after this many seconds; otherwise run until Ctrl+C.",
    )
    ap.add_argument(
        "--max-cycles",
        type=int,
        default=0,
        help="If > 0, stop after this many completed cycles.",
    )
    ap.add_argument(
        "--results",
        type=str,
        default=None,
        help="Optional JSONL path receiving one record per cycle.",
    )
    ap.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return ap


def main(argv: Optional[list[str]] = None) -> int:
    ap = build_arg_parser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        motion_cfg = load_motion_config(
            pixel_threshold=args.pixel_threshold,
            decision_threshold=args.decision_threshold,
            period_ms=args.period_ms,
        )
    except ConfigError as exc:
        _LOG.error("Invalid motion configuration: %s", exc)
        return 2

    reader_cfg = ReaderConfig(
        prefer=args.prefer,
        width=args.width,
        height=args.height,
        move_px=args.move_px,
        replay_dir=args.replay_dir,
        loop=args.loop,
    )
    try:
        source = ReaderFactory.from_config(reader_cfg)
    except (ValueError, FileNotFoundError) as exc:
        _LOG.error("Cannot open frame source: %s", exc)
        return 2

    last_status: list[Optional[MotionStatus]] = [None]

    def _show(status: MotionStatus) -> None:
        # Only log transitions, the way a status label would only repaint on change.
        if status != last_status[0]:
            _LOG.info("[%s] %s", "MOTION" if status.indicator else "  --  ", status.text)
            last_status[0] = status

    sidecar: Optional[MotionSidecarWriter] = None
    if args.results:
        sidecar = MotionSidecarWriter(Path(args.results), config=motion_cfg)
        _LOG.info("Writing motion results to %s", args.results)

    def _on_outcome(out: MotionOutcome) -> None:
        if sidecar is not None:
            sidecar.write_outcome(out)
        _show(describe(out))

    def _on_error(exc: MotionError) -> None:
        _show(describe_error(exc))

    engine = MotionEngine(config=motion_cfg)
    driver = MotionDriver(engine, source, on_outcome=_on_outcome, on_error=_on_error)

    with contextlib.ExitStack() as stack:
        if sidecar is not None:
            stack.enter_context(sidecar)

        driver.start()
        t0 = time.time()
        try:
            while driver.running:
                if args.max_seconds > 0 and (time.time() - t0) >= args.max_seconds:
                    _LOG.info("Reached max-seconds=%s, exiting loop.", args.max_seconds)
                    break
                if args.max_cycles > 0 and driver.stats().cycles >= args.max_cycles:
                    _LOG.info("Reached max-cycles=%d, exiting loop.", args.max_cycles)
                    break
                if isinstance(source, ReplayTransport) and source.exhausted:
                    _LOG.info("Replay source exhausted after %d frames.", len(source))
                    break
                time.sleep(0.01)
        except KeyboardInterrupt:
            _LOG.info("KeyboardInterrupt received, shutting down.")
        finally:
            driver.stop()
            _show(describe(None))

    stats = driver.stats()
    _LOG.info(
        "cycles=%d motion=%d warmup=%d skipped=%d errors=%d cycle_us_mean=%.1f p95=%.1f",
        stats.cycles,
        stats.motion_cycles,
        stats.warmup_cycles,
        stats.skipped,
        stats.errors,
        stats.cycle_us_mean,
        stats.cycle_us_p95,
    )
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
