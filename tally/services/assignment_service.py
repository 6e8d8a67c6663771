"""
tally.services.assignment_service — Assignment Engine
======================================================

Records behaviour events.  One call assigns one action to one or more
people; each person gets an independent Assignment row that snapshots the
action's *current* name and value.

Intake pipeline (shared by :func:`create_assignments` and the dry-run
:func:`validate_assignment`):

  1. Shape     — non-empty list of positive ids, known item type, positive item id
  2. Persons   — every id must exist; the first missing one fails the call
  3. Action    — must exist and its stored value must still obey the sign rule
  4. Fan-out   — one row per person id, same order, one shared ``assigned_at``

Step 4 runs inside a single repository transaction, so a failed fan-out
leaves nothing behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError

from tally.config import TallyConfig
from tally.database.models import Action, ActionKind, Assignment
from tally.database.repository import Repository
from tally.engine import rules
from tally.engine.weeks import as_utc, utcnow
from tally.errors import BusinessRuleError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = TallyConfig()

_ITEM_LABELS = {ActionKind.REWARD: "Reward", ActionKind.PUNISHMENT: "Punishment"}


@dataclass
class ValidationResult:
    """Outcome of a dry-run intake check."""

    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def fail(self, message: str) -> None:
        self.is_valid = False
        self.errors.append(message)

    def to_dict(self) -> dict[str, Any]:
        return {"isValid": self.is_valid, "errors": self.errors, "warnings": self.warnings}


# ---------------------------------------------------------------------------
# Intake stages
# ---------------------------------------------------------------------------
def _check_shape(person_ids: Any, item_type: Any, item_id: Any) -> tuple[list[int], ActionKind, int]:
    if not isinstance(person_ids, (list, tuple)) or not person_ids:
        raise ValidationError("personIds must be a non-empty list of person IDs")
    ids = [rules.check_id(pid, "Person ID") for pid in person_ids]
    kind = rules.parse_kind(item_type)
    return ids, kind, rules.check_id(item_id, "Item ID")


def _missing_person_ids(repo: Repository, person_ids: list[int]) -> list[int]:
    existing = repo.existing_person_ids(person_ids)
    return [pid for pid in person_ids if pid not in existing]


def _resolve_action(repo: Repository, kind: ActionKind, item_id: int) -> Action:
    action = repo.find_action(kind, item_id)
    if action is None:
        raise NotFoundError.for_entity(_ITEM_LABELS[kind], item_id)
    if not rules.is_valid_value(kind, action.value):
        logger.warning(
            "Rejecting assignment of %s id=%s: stored value %s breaks the sign rule",
            kind, action.id, action.value,
        )
        raise BusinessRuleError(
            f'{_ITEM_LABELS[kind]} "{action.name}" has an invalid value ({action.value}): '
            f"{rules.SIGN_RULE_TEXT[kind]}",
            {"id": action.id, "value": action.value},
        )
    return action


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def create_assignments(
    repo: Repository,
    person_ids: list[int],
    item_type: ActionKind | str,
    item_id: int,
    *,
    now: datetime | None = None,
) -> list[Assignment]:
    """Assign one action to every person in *person_ids*.

    Returns the created assignments in the same order as *person_ids*.

    Raises
    ------
    ValidationError
        Malformed ids or item type.
    NotFoundError
        The first unknown person id, or an unknown action.
    BusinessRuleError
        The action's stored value no longer matches its kind's sign rule.
    """
    ids, kind, action_id = _check_shape(person_ids, item_type, item_id)

    missing = _missing_person_ids(repo, ids)
    if missing:
        raise NotFoundError.for_entity("Person", missing[0])

    action = _resolve_action(repo, kind, action_id)

    assigned_at = as_utc(now) if now is not None else utcnow()
    rows = [
        {
            "person_id": pid,
            "item_type": kind.value,
            "item_id": action.id,
            "item_name": action.name,
            "item_value": action.value,
            "assigned_at": assigned_at,
        }
        for pid in ids
    ]
    try:
        created = repo.create_assignments(rows)
    except IntegrityError:
        # A person or the action vanished between the checks and the insert
        raise NotFoundError(
            "A referenced person or action no longer exists; no assignments were created",
            {"personIds": ids, "itemType": kind.value, "itemId": action_id},
        ) from None

    logger.info(
        "Assigned %s %r (%+d) to %d person(s)",
        kind, action.name, action.value, len(created),
    )
    return created


def delete_assignment(repo: Repository, assignment_id: int) -> None:
    rules.check_id(assignment_id, "Assignment ID")
    if repo.find_assignment_by_id(assignment_id) is None:
        raise NotFoundError.for_entity("Assignment", assignment_id)
    if not repo.delete_assignment(assignment_id):
        raise NotFoundError.for_entity("Assignment", assignment_id)
    logger.info("Assignment deleted: id=%s", assignment_id)


def validate_assignment(
    repo: Repository,
    person_ids: Any,
    item_type: Any,
    item_id: Any,
    *,
    cfg: TallyConfig | None = None,
) -> ValidationResult:
    """Dry-run of the intake pipeline.  Never writes, never raises on bad input.

    Unlike :func:`create_assignments` every missing person is reported, and a
    warning is added when the fan-out exceeds the configured threshold.
    """
    cfg = cfg or _DEFAULT_CONFIG
    result = ValidationResult()

    try:
        ids, kind, action_id = _check_shape(person_ids, item_type, item_id)
    except ValidationError as exc:
        result.fail(exc.message)
        return result

    for pid in _missing_person_ids(repo, ids):
        result.fail(NotFoundError.for_entity("Person", pid).message)

    try:
        _resolve_action(repo, kind, action_id)
    except (NotFoundError, BusinessRuleError) as exc:
        result.fail(exc.message)

    if len(ids) > cfg.fanout_warning_threshold:
        result.warnings.append(
            f"This will assign to {len(ids)} people. Please confirm this is intended."
        )
    return result


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_assignment(repo: Repository, assignment_id: int) -> Assignment:
    rules.check_id(assignment_id, "Assignment ID")
    assignment = repo.find_assignment_by_id(assignment_id)
    if assignment is None:
        raise NotFoundError.for_entity("Assignment", assignment_id)
    return assignment


def get_assignments(
    repo: Repository, *, limit: int | None = None, offset: int = 0
) -> list[Assignment]:
    if limit is not None:
        rules.check_id(limit, "Limit")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ValidationError(f"Offset must be a non-negative integer (got {offset!r})")
    return repo.find_assignments(limit=limit, offset=offset)


def get_assignments_by_person(repo: Repository, person_id: int) -> list[Assignment]:
    rules.check_id(person_id, "Person ID")
    if repo.find_person_by_id(person_id) is None:
        raise NotFoundError.for_entity("Person", person_id)
    return repo.find_assignments_by_person(person_id)


def get_assignments_by_date_range(
    repo: Repository, start: datetime, end: datetime, *, limit: int | None = None
) -> list[Assignment]:
    """Assignments with ``start <= assigned_at <= end``, newest first."""
    if not isinstance(start, datetime) or not isinstance(end, datetime):
        raise ValidationError("Start and end must both be datetimes")
    start, end = as_utc(start), as_utc(end)
    if start > end:
        raise ValidationError(
            f"Start ({start.isoformat()}) cannot be later than end ({end.isoformat()})"
        )
    return repo.find_assignments_by_date_range(start, end, limit=limit)


def get_recent_assignments(
    repo: Repository, limit: int | None = None, *, cfg: TallyConfig | None = None
) -> list[Assignment]:
    cfg = cfg or _DEFAULT_CONFIG
    limit = cfg.recent_assignments_limit if limit is None else rules.check_id(limit, "Limit")
    return repo.find_assignments(limit=limit, newest_first=True)


def get_assignment_statistics(repo: Repository) -> dict[str, Any]:
    raw = repo.assignment_statistics()
    average = raw["average_value"]
    return {
        "totalAssignments": int(raw["total"]),
        "rewardAssignments": int(raw["rewards"]),
        "punishmentAssignments": int(raw["punishments"]),
        "averageValue": round(float(average), 2) if average is not None else 0,
        "totalRewardValue": int(raw["reward_value"]),
        "totalPunishmentValue": int(raw["punishment_value"]),
    }


def get_item_assignment_summary(
    repo: Repository, item_type: ActionKind | str, item_id: int
) -> dict[str, Any]:
    """Usage of one action across every person.

    ``totalValue`` sums the snapshots, so it reflects what was actually
    awarded even if the action has since been edited.
    """
    kind = rules.parse_kind(item_type)
    rules.check_id(item_id, "Item ID")
    item = repo.find_action(kind, item_id)
    if item is None:
        raise NotFoundError.for_entity(_ITEM_LABELS[kind], item_id)
    assignments = repo.find_assignments_by_item(kind, item_id)
    return {
        "item": item,
        "totalAssignments": len(assignments),
        "uniquePersonsAssigned": len({a.person_id for a in assignments}),
        "totalValue": sum(a.item_value for a in assignments),
        "assignments": assignments,
    }
