# analysis/motion/config.py
"""Layered loading of :class:`MotionConfig`.

Precedence, lowest first:

1. Dataclass defaults.
2. A Python config module named by ``MOTION_CONFIG_MODULE`` exposing any of
   ``PIXEL_THRESHOLD``, ``DECISION_THRESHOLD``, ``PERIOD_MS``.
3. Environment variables ``MOTION_PIXEL_THRESHOLD``,
   ``MOTION_DECISION_THRESHOLD``, ``MOTION_PERIOD_MS``.
4. Keyword overrides passed by the caller (``None`` means "not given").
"""

from __future__ import annotations

import logging
import os
from importlib import import_module
from typing import Any, Callable, Dict, Mapping, Optional

from .errors import ConfigError
from .model import MotionConfig

_LOG = logging.getLogger(__name__)

CONFIG_MODULE_ENV = "MOTION_CONFIG_MODULE"

# field name -> (module attribute, environment variable, parser)
_FIELDS: Dict[str, tuple[str, str, Callable[[Any], Any]]] = {
    "pixel_threshold": ("PIXEL_THRESHOLD", "MOTION_PIXEL_THRESHOLD", int),
    "decision_threshold": ("DECISION_THRESHOLD", "MOTION_DECISION_THRESHOLD", float),
    "period_ms": ("PERIOD_MS", "MOTION_PERIOD_MS", float),
}


def _parse(field: str, raw: Any, source: str) -> Any:
    parser = _FIELDS[field][2]
    try:
        return parser(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {field} from {source}: {raw!r}") from exc


def _from_module(name: str) -> Dict[str, Any]:
    try:
        mod = import_module(name)
    except ImportError as exc:
        raise ConfigError(
            f"Could not import config module {name!r} (set via {CONFIG_MODULE_ENV})"
        ) from exc

    values: Dict[str, Any] = {}
    for field, (attr, _env, _parser) in _FIELDS.items():
        if hasattr(mod, attr):
            values[field] = _parse(field, getattr(mod, attr), f"module {name}")
    return values


def _from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for field, (_attr, env, _parser) in _FIELDS.items():
        raw = environ.get(env)
        if raw is None or not raw.strip():
            continue
        values[field] = _parse(field, raw.strip(), f"${env}")
    return values


def load_motion_config(
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> MotionConfig:
    """Build a validated :class:`MotionConfig` from module, env and overrides.

    Raises
    ------
    ConfigError
        If a value cannot be parsed, falls outside its domain, or the named
        config module cannot be imported.
    """
    env = os.environ if environ is None else environ

    unknown = set(overrides) - set(_FIELDS)
    if unknown:
        raise ConfigError(f"Unknown motion config keys: {', '.join(sorted(unknown))}")

    values: Dict[str, Any] = {}
    module_name = env.get(CONFIG_MODULE_ENV)
    if module_name:
        values.update(_from_module(module_name))
    values.update(_from_env(env))
    for field, raw in overrides.items():
        if raw is not None:
            values[field] = _parse(field, raw, "override")

    cfg = MotionConfig(**values)
    _LOG.debug("Loaded motion config: %s", cfg)
    return cfg
