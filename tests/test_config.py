from __future__ import annotations

import math

import pytest

from analysis.motion import ConfigError, MotionConfig, load_motion_config


def test_defaults():
    cfg = load_motion_config(environ={})
    assert cfg == MotionConfig()
    assert cfg.pixel_threshold == 50
    assert math.isclose(cfg.decision_threshold, 2.0)
    assert math.isclose(cfg.period_ms, 50.0)


def test_env_overrides_defaults():
    cfg = load_motion_config(
        environ={
            "MOTION_PIXEL_THRESHOLD": "30",
            "MOTION_DECISION_THRESHOLD": "5.5",
            "MOTION_PERIOD_MS": " 100 ",
        }
    )
    assert cfg.pixel_threshold == 30
    assert math.isclose(cfg.decision_threshold, 5.5)
    assert math.isclose(cfg.period_ms, 100.0)


def test_explicit_overrides_beat_env_and_none_is_ignored():
    env = {"MOTION_PIXEL_THRESHOLD": "30", "MOTION_DECISION_THRESHOLD": "5"}
    cfg = load_motion_config(environ=env, pixel_threshold=70, decision_threshold=None)
    assert cfg.pixel_threshold == 70
    assert math.isclose(cfg.decision_threshold, 5.0)


def test_config_module_layer(tmp_path, monkeypatch):
    (tmp_path / "motion_site_cfg.py").write_text(
        "PIXEL_THRESHOLD = 12\nDECISION_THRESHOLD = 0.5\n", encoding="utf-8"
    )
    monkeypatch.syspath_prepend(str(tmp_path))

    cfg = load_motion_config(
        environ={"MOTION_CONFIG_MODULE": "motion_site_cfg", "MOTION_DECISION_THRESHOLD": "9"}
    )
    assert cfg.pixel_threshold == 12
    assert math.isclose(cfg.decision_threshold, 9.0)  # env wins over module


def test_missing_config_module():
    with pytest.raises(ConfigError):
        load_motion_config(environ={"MOTION_CONFIG_MODULE": "no_such_motion_cfg_module"})


@pytest.mark.parametrize(
    "env",
    [
        {"MOTION_PIXEL_THRESHOLD": "abc"},
        {"MOTION_PIXEL_THRESHOLD": "2.5"},
        {"MOTION_PIXEL_THRESHOLD": "256"},
        {"MOTION_PIXEL_THRESHOLD": "-1"},
        {"MOTION_DECISION_THRESHOLD": "100.5"},
        {"MOTION_DECISION_THRESHOLD": "-0.1"},
        {"MOTION_PERIOD_MS": "0"},
    ],
)
def test_invalid_values_raise_config_error(env):
    with pytest.raises(ConfigError):
        load_motion_config(environ=env)


def test_unknown_override_key():
    with pytest.raises(ConfigError):
        load_motion_config(environ={}, sensitivity=10)


def test_config_error_is_a_value_error():
    with pytest.raises(ValueError):
        MotionConfig(pixel_threshold=300)


def test_domain_edges_accepted():
    MotionConfig(pixel_threshold=0, decision_threshold=0.0)
    MotionConfig(pixel_threshold=255, decision_threshold=100.0)
