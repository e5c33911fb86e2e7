from __future__ import annotations

"""Configuration loading and validation for Mental Math.

This module loads YAML configuration, applies defaults, and sanity-checks
modes, durations and delays. Invalid values are replaced by defaults with a
warning rather than aborting.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..errors import MentalMathError

logger = logging.getLogger(__name__)

ALLOWED_MODES = {"timed", "fixed"}
ALLOWED_DIFFICULTIES = {"easy", "medium", "hard"}
DATA_DIR_ENV = "MENTALMATH_DATA_DIR"


class ConfigError(MentalMathError):
    pass


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or package defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        return _load_yaml(Path(path))
    return _load_yaml(Path(__file__).with_name("defaults.yml"))


def _positive_int(section: Dict[str, Any], key: str, default: int) -> None:
    value = section.get(key)
    try:
        ok = int(value) > 0
    except (TypeError, ValueError):
        ok = False
    if not ok:
        logger.warning("Invalid %s %r, using %s", key, value, default)
        section[key] = default
    else:
        section[key] = int(value)


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    cfg.setdefault("storage", {})
    cfg.setdefault("session", {})
    cfg.setdefault("analytics", {})

    storage = cfg["storage"]
    session = cfg["session"]
    analytics = cfg["analytics"]

    storage.setdefault("data_dir", "~/.mentalmath")
    storage.setdefault("matches_file", "matches.json")
    storage.setdefault("settings_file", "settings.json")

    session.setdefault("mode", "timed")
    session.setdefault("question_count", 10)
    session.setdefault("duration", 120)
    session.setdefault("durations", [30, 60, 120, 300])
    session.setdefault("difficulty", None)
    session.setdefault("reveal_delay_ms", 1000)
    session.setdefault("wrong_answer_delay_ms", 800)

    analytics.setdefault("smoothing_span", 5)
    analytics.setdefault("min_matches_for_trend", 2)

    mode = session.get("mode")
    if mode not in ALLOWED_MODES:
        logger.warning("Unsupported mode %r, using 'timed'", mode)
        session["mode"] = "timed"

    difficulty = session.get("difficulty")
    if difficulty is not None:
        difficulty = str(difficulty).lower()
        if difficulty not in ALLOWED_DIFFICULTIES:
            logger.warning("Unsupported difficulty %r, ignoring", session["difficulty"])
            difficulty = None
        session["difficulty"] = difficulty

    _positive_int(session, "question_count", 10)
    _positive_int(session, "duration", 120)

    durations = []
    for d in session.get("durations") or []:
        try:
            if int(d) > 0:
                durations.append(int(d))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid duration %r", d)
    session["durations"] = sorted(set(durations)) or [session["duration"]]

    for key, default in (("reveal_delay_ms", 1000), ("wrong_answer_delay_ms", 800)):
        try:
            session[key] = max(0, int(session[key]))
        except (TypeError, ValueError):
            logger.warning("Invalid %s %r, using %s", key, session[key], default)
            session[key] = default

    try:
        span = int(analytics["smoothing_span"])
    except (TypeError, ValueError):
        span = 0
    if span <= 1:
        logger.warning("smoothing_span must be > 1, using 5")
        span = 5
    analytics["smoothing_span"] = span
    _positive_int(analytics, "min_matches_for_trend", 2)

    return cfg


def resolve_data_dir(cfg: Dict[str, Any], override: Optional[str] = None) -> Path:
    """Data directory: explicit override, then $MENTALMATH_DATA_DIR, then config."""
    raw = override or os.environ.get(DATA_DIR_ENV) or cfg.get("storage", {}).get("data_dir", "~/.mentalmath")
    return Path(str(raw)).expanduser()
