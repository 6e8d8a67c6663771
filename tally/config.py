"""
tally.config — YAML Configuration Loader
=========================================

Reads ``config.yaml`` for the tunable policy values (name length bounds,
fan-out warning threshold, default action values, trend window limits).
Connection secrets such as ``DATABASE_URL`` stay in the environment / ``.env``.

Usage::

    from tally.config import load_config

    cfg = load_config()               # reads ./config.yaml by default
    print(cfg.app_name)               # "Tally"
    print(cfg.fanout_warning_threshold)  # 5
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TallyConfig:
    """Immutable configuration loaded from ``config.yaml``.

    Every field has a default so ``TallyConfig()`` is a usable policy for
    tests and for callers that never ship a config file.
    """

    # Identity
    app_name: str = "Tally"

    # HTTP
    api_port: int = 8000

    # Validation bounds
    person_name_max_length: int = 100
    action_name_max_length: int = 255

    # Assignment intake
    fanout_warning_threshold: int = 5  # warn above this many people per call
    recent_assignments_limit: int = 10

    # Advisory defaults when a registry is empty
    default_reward_value: int = 10
    default_punishment_value: int = -10

    # Score trends
    default_trend_weeks: int = 4
    max_trend_weeks: int = 52


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> TallyConfig:
    """Read *path* and return a :class:`TallyConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If the default action values have the wrong sign.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    defaults = TallyConfig()
    cfg = TallyConfig(
        app_name=raw.get("app_name", defaults.app_name),
        api_port=int(raw.get("api_port", defaults.api_port)),
        person_name_max_length=int(
            raw.get("person_name_max_length", defaults.person_name_max_length)
        ),
        action_name_max_length=int(
            raw.get("action_name_max_length", defaults.action_name_max_length)
        ),
        fanout_warning_threshold=int(
            raw.get("fanout_warning_threshold", defaults.fanout_warning_threshold)
        ),
        recent_assignments_limit=int(
            raw.get("recent_assignments_limit", defaults.recent_assignments_limit)
        ),
        default_reward_value=int(
            raw.get("default_reward_value", defaults.default_reward_value)
        ),
        default_punishment_value=int(
            raw.get("default_punishment_value", defaults.default_punishment_value)
        ),
        default_trend_weeks=int(
            raw.get("default_trend_weeks", defaults.default_trend_weeks)
        ),
        max_trend_weeks=int(raw.get("max_trend_weeks", defaults.max_trend_weeks)),
    )

    if cfg.default_reward_value <= 0:
        raise ValueError("default_reward_value must be greater than zero")
    if cfg.default_punishment_value >= 0:
        raise ValueError("default_punishment_value must be less than zero")
    return cfg
