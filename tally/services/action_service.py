"""
tally.services.action_service — Reward & Punishment Registry
=============================================================

Rewards and punishments are one tagged variant.  Every function takes the
:class:`~tally.database.models.ActionKind` (or its string form) and the
kind-specific rules come from :mod:`tally.engine.rules`:

* reward values must be ``> 0``, punishment values ``< 0`` — checked on
  create AND on every update
* names are unique per kind, ignoring case
* an action referenced by any assignment cannot be deleted
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError

from tally.config import TallyConfig
from tally.database.models import Action, ActionKind
from tally.database.repository import Repository
from tally.engine import rules
from tally.errors import AlreadyExistsError, BusinessRuleError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = TallyConfig()

_LABELS = {ActionKind.REWARD: "Reward", ActionKind.PUNISHMENT: "Punishment"}


def _label(kind: ActionKind) -> str:
    return _LABELS[kind]


def _clean(
    kind: ActionKind, name: Any, value: Any, cfg: TallyConfig | None
) -> tuple[str, int]:
    cfg = cfg or _DEFAULT_CONFIG
    cleaned = rules.clean_name(
        name, max_length=cfg.action_name_max_length, label=f"{_label(kind)} name"
    )
    return cleaned, rules.check_value(kind, value)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_action(repo: Repository, kind: ActionKind | str, action_id: int) -> Action:
    kind = rules.parse_kind(kind)
    rules.check_id(action_id, f"{_label(kind)} ID")
    action = repo.find_action(kind, action_id)
    if action is None:
        raise NotFoundError.for_entity(_label(kind), action_id)
    return action


def list_actions(repo: Repository, kind: ActionKind | str) -> list[Action]:
    return repo.find_actions(rules.parse_kind(kind))


def search_actions(repo: Repository, kind: ActionKind | str, term: str | None) -> list[Action]:
    kind = rules.parse_kind(kind)
    if not isinstance(term, str) or not term.strip():
        return []
    return repo.search_actions(kind, term.strip())


def get_actions_by_value_range(
    repo: Repository, kind: ActionKind | str, min_value: int, max_value: int
) -> list[Action]:
    """Actions with ``min_value <= value <= max_value``.

    Both bounds must satisfy the sign rule of *kind* (so punishment ranges
    are given as negative numbers, e.g. ``-30..-5``).
    """
    kind = rules.parse_kind(kind)
    low = rules.whole_number(min_value, "Minimum value")
    high = rules.whole_number(max_value, "Maximum value")
    if not (rules.SIGN_RULES[kind](low) and rules.SIGN_RULES[kind](high)):
        raise ValidationError(
            f"Range bounds {low}..{high} are invalid: {rules.SIGN_RULE_TEXT[kind]}"
        )
    if low > high:
        raise ValidationError(
            f"Minimum value ({low}) cannot be greater than maximum value ({high})"
        )
    return repo.find_actions_by_value_range(kind, low, high)


def get_punishments_by_severity(repo: Repository) -> list[Action]:
    """Punishments ordered most severe (most negative) first."""
    return repo.find_actions_by_severity(ActionKind.PUNISHMENT)


def get_most_used_actions(
    repo: Repository, kind: ActionKind | str, limit: int = 10
) -> list[tuple[Action, int]]:
    kind = rules.parse_kind(kind)
    rules.check_id(limit, "Limit")
    return repo.most_used_actions(kind, limit)


def get_action_statistics(repo: Repository, kind: ActionKind | str) -> dict[str, Any]:
    """Totals over absolute values so punishments read as magnitudes."""
    kind = rules.parse_kind(kind)
    magnitudes = [abs(a.value) for a in repo.find_actions(kind)]
    total = sum(magnitudes)
    return {
        "total": len(magnitudes),
        "totalValue": total,
        "averageValue": round(total / len(magnitudes), 2) if magnitudes else 0,
        "maxValue": max(magnitudes, default=0),
        "minValue": min(magnitudes, default=0),
    }


def get_recommended_value(
    repo: Repository, kind: ActionKind | str, *, cfg: TallyConfig | None = None
) -> int:
    """Advisory only — nothing enforces the suggestion."""
    kind = rules.parse_kind(kind)
    cfg = cfg or _DEFAULT_CONFIG
    default = (
        cfg.default_reward_value if kind == ActionKind.REWARD else cfg.default_punishment_value
    )
    return rules.recommended_value(kind, (a.value for a in repo.find_actions(kind)), default)


def get_severity_level(value: int) -> rules.Severity:
    return rules.severity_level(value)


def is_valid_value(kind: ActionKind | str, value: Any) -> bool:
    return rules.is_valid_value(rules.parse_kind(kind), value)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_action(
    repo: Repository,
    kind: ActionKind | str,
    name: str,
    value: int,
    *,
    cfg: TallyConfig | None = None,
) -> Action:
    kind = rules.parse_kind(kind)
    cleaned, number = _clean(kind, name, value, cfg)
    if repo.action_name_exists(kind, cleaned):
        raise AlreadyExistsError(
            f'A {kind} named "{cleaned}" already exists', {"name": cleaned}
        )
    try:
        action = repo.create_action(kind, cleaned, number)
    except IntegrityError:
        raise AlreadyExistsError(
            f'A {kind} named "{cleaned}" already exists', {"name": cleaned}
        ) from None
    logger.info("%s created: id=%s name=%r value=%s", _label(kind), action.id, action.name, action.value)
    return action


def update_action(
    repo: Repository,
    kind: ActionKind | str,
    action_id: int,
    name: str,
    value: int,
    *,
    cfg: TallyConfig | None = None,
) -> Action:
    """Replace name and value.  Existing assignments keep their snapshot."""
    kind = rules.parse_kind(kind)
    rules.check_id(action_id, f"{_label(kind)} ID")
    cleaned, number = _clean(kind, name, value, cfg)
    if repo.find_action(kind, action_id) is None:
        raise NotFoundError.for_entity(_label(kind), action_id)
    if repo.action_name_exists(kind, cleaned, exclude_id=action_id):
        raise AlreadyExistsError(
            f'Another {kind} named "{cleaned}" already exists', {"name": cleaned}
        )
    try:
        action = repo.update_action(kind, action_id, cleaned, number)
    except IntegrityError:
        raise AlreadyExistsError(
            f'Another {kind} named "{cleaned}" already exists', {"name": cleaned}
        ) from None
    if action is None:
        raise NotFoundError.for_entity(_label(kind), action_id)
    logger.info("%s updated: id=%s name=%r value=%s", _label(kind), action.id, action.name, action.value)
    return action


def delete_action(repo: Repository, kind: ActionKind | str, action_id: int) -> None:
    kind = rules.parse_kind(kind)
    rules.check_id(action_id, f"{_label(kind)} ID")
    action = repo.find_action(kind, action_id)
    if action is None:
        raise NotFoundError.for_entity(_label(kind), action_id)
    if repo.action_is_used(action_id):
        raise BusinessRuleError(
            f'Cannot delete {kind} "{action.name}": it is referenced by assignments',
            {"id": action_id},
        )
    try:
        deleted = repo.delete_action(kind, action_id)
    except IntegrityError:
        raise BusinessRuleError(
            f'Cannot delete {kind} "{action.name}": it is referenced by assignments',
            {"id": action_id},
        ) from None
    if not deleted:
        raise NotFoundError.for_entity(_label(kind), action_id)
    logger.info("%s deleted: id=%s name=%r", _label(kind), action_id, action.name)
