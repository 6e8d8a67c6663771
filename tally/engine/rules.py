"""
tally.engine.rules — Input Validation & Per-Kind Action Policy
===============================================================

Pure functions, no DB I/O.  Rewards and punishments are one tagged
variant; everything that differs between them is looked up by
:class:`~tally.database.models.ActionKind` here:

* the sign rule (reward ``> 0``, punishment ``< 0``)
* the advisory recommended value
* the severity bands (punishments only)
"""

from __future__ import annotations

import enum
import math
from collections.abc import Callable, Iterable
from typing import Any

from tally.database.models import ActionKind
from tally.errors import ValidationError

# ---------------------------------------------------------------------------
# Sign rules
# ---------------------------------------------------------------------------
SIGN_RULES: dict[ActionKind, Callable[[int], bool]] = {
    ActionKind.REWARD: lambda value: value > 0,
    ActionKind.PUNISHMENT: lambda value: value < 0,
}

SIGN_RULE_TEXT: dict[ActionKind, str] = {
    ActionKind.REWARD: "reward values must be greater than zero",
    ActionKind.PUNISHMENT: "punishment values must be less than zero",
}

RECOMMENDATION_STEP = 5


class Severity(enum.StrEnum):
    """Ordered punishment severity bands."""
    MILD = "Mild"
    MODERATE = "Moderate"
    SEVERE = "Severe"
    VERY_SEVERE = "Very Severe"


# Upper bound of |value| for each band; anything above the last is VERY_SEVERE
SEVERITY_BANDS: list[tuple[int, Severity]] = [
    (5, Severity.MILD),
    (15, Severity.MODERATE),
    (30, Severity.SEVERE),
]


# ---------------------------------------------------------------------------
# Generic input checks
# ---------------------------------------------------------------------------
def clean_name(name: Any, *, max_length: int, label: str = "Name") -> str:
    """Trim *name* and enforce non-empty / length bound."""
    if not isinstance(name, str):
        raise ValidationError(f"{label} is required and must be a string")
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError(f"{label} cannot be empty")
    if len(cleaned) > max_length:
        raise ValidationError(
            f"{label} cannot exceed {max_length} characters",
            {"length": len(cleaned), "max_length": max_length},
        )
    return cleaned


def check_id(value: Any, label: str = "ID") -> int:
    """Positive integer identifier; ``bool`` is rejected even though it is an int."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{label} must be a positive integer (got {value!r})")
    return value


def parse_kind(value: Any) -> ActionKind:
    try:
        return ActionKind(value)
    except ValueError:
        raise ValidationError(
            f"Item type must be 'reward' or 'punishment' (got {value!r})"
        ) from None


def whole_number(value: Any, label: str = "Value") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a whole number")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise ValidationError(f"{label} must be a whole number (got {value!r})")
    return value


# ---------------------------------------------------------------------------
# Action policy
# ---------------------------------------------------------------------------
def is_valid_value(kind: ActionKind, value: Any) -> bool:
    """True when *value* is a whole number with the right sign for *kind*."""
    try:
        number = whole_number(value)
    except ValidationError:
        return False
    return SIGN_RULES[kind](number)


def check_value(kind: ActionKind, value: Any) -> int:
    """Return *value* as an int or raise :class:`ValidationError`."""
    number = whole_number(value)
    if not SIGN_RULES[kind](number):
        raise ValidationError(
            f"Invalid {kind} value {number}: {SIGN_RULE_TEXT[kind]}",
            {"kind": str(kind), "value": number},
        )
    return number


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def recommended_value(kind: ActionKind, existing: Iterable[int], default: int) -> int:
    """Advisory value for a new action of *kind*.

    *default* when there is nothing to learn from; otherwise the mean
    absolute value rounded to the nearest multiple of 5 (never below 5),
    carrying the sign of *kind*.
    """
    magnitudes = [abs(v) for v in existing]
    if not magnitudes:
        return default
    mean = round(sum(magnitudes) / len(magnitudes), 2)
    step = RECOMMENDATION_STEP
    magnitude = max(step, _round_half_up(mean / step) * step)
    return magnitude if kind == ActionKind.REWARD else -magnitude


def severity_level(value: int) -> Severity:
    """Band a punishment value by magnitude.  Undefined for ``value >= 0``."""
    if isinstance(value, bool) or not isinstance(value, int) or value >= 0:
        raise ValidationError(
            f"Severity is only defined for negative punishment values (got {value!r})"
        )
    magnitude = abs(value)
    for upper, band in SEVERITY_BANDS:
        if magnitude <= upper:
            return band
    return Severity.VERY_SEVERE


def display_name(name: str, value: int) -> str:
    sign = "+" if value > 0 else ""
    return f"{name} ({sign}{value} points)"
