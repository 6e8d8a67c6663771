"""
tests/test_assignment_service.py — Assignment Engine
=====================================================

Covers fan-out order, the all-or-nothing intake checks, the value
snapshot, the dry-run validator, and the read helpers.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from tally.config import TallyConfig
from tally.database.models import Action, ActionKind
from tally.database.repository import Repository
from tally.errors import BusinessRuleError, NotFoundError, ValidationError
from tally.services import action_service, assignment_service, person_service


@pytest.fixture
def people(repo):
    return [person_service.create_person(repo, name) for name in ("Alice", "Bob", "Cara")]


@pytest.fixture
def chores(repo):
    return action_service.create_action(repo, ActionKind.REWARD, "Chores", 10)


@pytest.fixture
def late(repo):
    return action_service.create_action(repo, ActionKind.PUNISHMENT, "Late", -5)


# ===========================================================================
# create_assignments
# ===========================================================================
class TestCreateAssignments:
    def test_fan_out_preserves_order(self, repo, people, chores, now):
        ids = [people[2].id, people[0].id]
        created = assignment_service.create_assignments(repo, ids, "reward", chores.id, now=now)
        assert [a.person_id for a in created] == ids
        assert all(a.assigned_at == now for a in created)
        assert all((a.item_name, a.item_value) == ("Chores", 10) for a in created)

    def test_duplicate_person_ids_each_get_a_row(self, repo, people, chores):
        created = assignment_service.create_assignments(
            repo, [people[0].id, people[0].id], ActionKind.REWARD, chores.id
        )
        assert len(created) == 2

    def test_first_missing_person_fails_whole_call(self, repo, people, chores):
        with pytest.raises(NotFoundError, match="Person with ID 98 not found"):
            assignment_service.create_assignments(
                repo, [people[0].id, 98, 99], ActionKind.REWARD, chores.id
            )
        assert repo.count_assignments() == 0

    def test_missing_action(self, repo, people):
        with pytest.raises(NotFoundError, match="Punishment with ID 7 not found"):
            assignment_service.create_assignments(repo, [people[0].id], "punishment", 7)

    def test_wrong_kind_for_action_id(self, repo, people, chores):
        with pytest.raises(NotFoundError):
            assignment_service.create_assignments(repo, [people[0].id], "punishment", chores.id)

    @pytest.mark.parametrize(
        "person_ids,item_type,item_id",
        [
            ([], "reward", 1),
            ("1", "reward", 1),
            ([0], "reward", 1),
            ([1], "bonus", 1),
            ([1], "reward", -1),
        ],
    )
    def test_malformed_input(self, repo, person_ids, item_type, item_id):
        with pytest.raises(ValidationError):
            assignment_service.create_assignments(repo, person_ids, item_type, item_id)

    def test_stored_value_breaking_sign_rule(self):
        repo = MagicMock(spec=Repository)
        repo.existing_person_ids.return_value = {1}
        repo.find_action.return_value = Action(id=3, kind="reward", name="Broken", value=-5)

        with pytest.raises(BusinessRuleError, match="invalid value"):
            assignment_service.create_assignments(repo, [1], "reward", 3)
        repo.create_assignments.assert_not_called()


# ===========================================================================
# validate_assignment
# ===========================================================================
class TestValidateAssignment:
    def test_valid(self, repo, people, chores):
        result = assignment_service.validate_assignment(repo, [people[0].id], "reward", chores.id)
        assert result.to_dict() == {"isValid": True, "errors": [], "warnings": []}

    def test_reports_every_missing_person(self, repo, people, chores):
        result = assignment_service.validate_assignment(repo, [98, 99], "reward", chores.id)
        assert result.is_valid is False
        assert result.errors == ["Person with ID 98 not found", "Person with ID 99 not found"]
        assert repo.count_assignments() == 0

    def test_large_fan_out_warns(self, repo, chores):
        cfg = TallyConfig(fanout_warning_threshold=2)
        ids = [person_service.create_person(repo, f"P{i}").id for i in range(3)]
        result = assignment_service.validate_assignment(repo, ids, "reward", chores.id, cfg=cfg)
        assert result.is_valid is True
        assert result.warnings == ["This will assign to 3 people. Please confirm this is intended."]

    def test_malformed_input_never_raises(self, repo):
        result = assignment_service.validate_assignment(repo, [], "reward", 1)
        assert result.is_valid is False
        assert len(result.errors) == 1


# ===========================================================================
# Reads
# ===========================================================================
class TestReads:
    def test_by_person_newest_first(self, repo, people, chores, late, now):
        alice = people[0].id
        assignment_service.create_assignments(repo, [alice], "reward", chores.id, now=now - timedelta(days=1))
        assignment_service.create_assignments(repo, [alice], "punishment", late.id, now=now)
        rows = assignment_service.get_assignments_by_person(repo, alice)
        assert [a.item_name for a in rows] == ["Late", "Chores"]

    def test_by_person_missing(self, repo):
        with pytest.raises(NotFoundError):
            assignment_service.get_assignments_by_person(repo, 5)

    def test_date_range_inclusive(self, repo, people, chores):
        start = datetime(2024, 1, 15, tzinfo=UTC)
        end = datetime(2024, 1, 21, 23, 59, 59, 999000, tzinfo=UTC)
        for at in (start, end, end + timedelta(milliseconds=1)):
            assignment_service.create_assignments(repo, [people[0].id], "reward", chores.id, now=at)
        rows = assignment_service.get_assignments_by_date_range(repo, start, end)
        assert [a.assigned_at for a in rows] == [end, start]

    def test_date_range_reversed(self, repo):
        start = datetime(2024, 1, 15, tzinfo=UTC)
        with pytest.raises(ValidationError):
            assignment_service.get_assignments_by_date_range(repo, start, start - timedelta(days=1))

    def test_recent_uses_config_limit(self, repo, people, chores, now):
        for offset in range(4):
            assignment_service.create_assignments(
                repo, [people[0].id], "reward", chores.id, now=now + timedelta(minutes=offset)
            )
        cfg = TallyConfig(recent_assignments_limit=2)
        rows = assignment_service.get_recent_assignments(repo, cfg=cfg)
        assert [a.assigned_at for a in rows] == [now + timedelta(minutes=3), now + timedelta(minutes=2)]

    def test_statistics(self, repo, people, chores, late):
        ids = [p.id for p in people[:2]]
        assignment_service.create_assignments(repo, ids, "reward", chores.id)
        assignment_service.create_assignments(repo, ids[:1], "punishment", late.id)
        assert assignment_service.get_assignment_statistics(repo) == {
            "totalAssignments": 3,
            "rewardAssignments": 2,
            "punishmentAssignments": 1,
            "averageValue": 5.0,
            "totalRewardValue": 20,
            "totalPunishmentValue": 5,
        }

    def test_statistics_empty(self, repo):
        stats = assignment_service.get_assignment_statistics(repo)
        assert stats["totalAssignments"] == 0
        assert stats["averageValue"] == 0

    def test_item_summary(self, repo, people, chores):
        ids = [people[0].id, people[0].id, people[1].id]
        assignment_service.create_assignments(repo, ids, "reward", chores.id)
        summary = assignment_service.get_item_assignment_summary(repo, "reward", chores.id)
        assert summary["totalAssignments"] == 3
        assert summary["uniquePersonsAssigned"] == 2
        assert summary["totalValue"] == 30

    def test_delete_missing(self, repo):
        with pytest.raises(NotFoundError):
            assignment_service.delete_assignment(repo, 12)
