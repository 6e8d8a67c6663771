"""
tests/test_action_service.py — Reward & Punishment Registry
============================================================
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from tally.config import TallyConfig
from tally.database.models import Action, ActionKind
from tally.database.repository import Repository
from tally.engine.rules import Severity
from tally.errors import AlreadyExistsError, BusinessRuleError, NotFoundError, ValidationError
from tally.services import action_service, assignment_service, person_service

REWARD = ActionKind.REWARD
PUNISHMENT = ActionKind.PUNISHMENT


class TestSignRule:
    def test_reward_must_be_positive(self, repo):
        with pytest.raises(ValidationError):
            action_service.create_action(repo, REWARD, "Nothing", 0)

    def test_punishment_must_be_negative(self, repo):
        with pytest.raises(ValidationError):
            action_service.create_action(repo, PUNISHMENT, "Late", 5)

    def test_update_rechecks_sign(self, repo):
        reward = action_service.create_action(repo, REWARD, "Chores", 10)
        with pytest.raises(ValidationError):
            action_service.update_action(repo, REWARD, reward.id, "Chores", -10)
        assert action_service.get_action(repo, REWARD, reward.id).value == 10

    def test_string_kind_accepted(self, repo):
        action = action_service.create_action(repo, "punishment", "Late", -5)
        assert action.kind == "punishment"


class TestNames:
    def test_unique_per_kind_ignoring_case(self, repo):
        action_service.create_action(repo, REWARD, "Bonus", 5)
        with pytest.raises(AlreadyExistsError):
            action_service.create_action(repo, REWARD, "bonus", 7)

    def test_unique_ignoring_case_beyond_ascii(self, repo):
        action_service.create_action(repo, REWARD, "Éxito", 5)
        with pytest.raises(AlreadyExistsError):
            action_service.create_action(repo, REWARD, "éxito", 5)

    def test_same_name_allowed_across_kinds(self, repo):
        action_service.create_action(repo, REWARD, "Homework", 5)
        action_service.create_action(repo, PUNISHMENT, "Homework", -5)
        assert len(action_service.list_actions(repo, REWARD)) == 1
        assert len(action_service.list_actions(repo, PUNISHMENT)) == 1

    def test_kind_scopes_lookups(self, repo):
        reward = action_service.create_action(repo, REWARD, "Chores", 10)
        with pytest.raises(NotFoundError, match=f"Punishment with ID {reward.id} not found"):
            action_service.get_action(repo, PUNISHMENT, reward.id)


class TestUpdateAndDelete:
    def test_update_keeps_assignment_snapshot(self, repo):
        alice = person_service.create_person(repo, "Alice")
        reward = action_service.create_action(repo, REWARD, "Chores", 10)
        [assignment] = assignment_service.create_assignments(repo, [alice.id], REWARD, reward.id)

        action_service.update_action(repo, REWARD, reward.id, "Big Chores", 50)

        stored = assignment_service.get_assignment(repo, assignment.id)
        assert (stored.item_name, stored.item_value) == ("Chores", 10)

    def test_delete_blocked_then_allowed(self, repo):
        alice = person_service.create_person(repo, "Alice")
        punishment = action_service.create_action(repo, PUNISHMENT, "Late", -5)
        [assignment] = assignment_service.create_assignments(
            repo, [alice.id], PUNISHMENT, punishment.id
        )

        with pytest.raises(BusinessRuleError):
            action_service.delete_action(repo, PUNISHMENT, punishment.id)

        assignment_service.delete_assignment(repo, assignment.id)
        action_service.delete_action(repo, PUNISHMENT, punishment.id)
        assert action_service.list_actions(repo, PUNISHMENT) == []

    def test_assignment_racing_the_delete_is_a_business_rule_error(self):
        repo = MagicMock(spec=Repository)
        repo.find_action.return_value = Action(id=4, kind="punishment", name="Late", value=-5)
        repo.action_is_used.return_value = False
        repo.delete_action.side_effect = IntegrityError("DELETE FROM actions", {}, Exception("FK"))

        with pytest.raises(BusinessRuleError, match="referenced by assignments"):
            action_service.delete_action(repo, PUNISHMENT, 4)

    def test_delete_missing(self, repo):
        with pytest.raises(NotFoundError):
            action_service.delete_action(repo, REWARD, 42)


class TestQueries:
    def test_recommended_value(self, repo):
        assert action_service.get_recommended_value(repo, REWARD) == 10
        action_service.create_action(repo, REWARD, "A", 10)
        action_service.create_action(repo, REWARD, "B", 15)
        assert action_service.get_recommended_value(repo, REWARD) == 15

    def test_recommended_default_from_config(self, repo):
        cfg = TallyConfig(default_punishment_value=-20)
        assert action_service.get_recommended_value(repo, PUNISHMENT, cfg=cfg) == -20

    def test_value_range(self, repo):
        for name, value in (("A", -3), ("B", -10), ("C", -40)):
            action_service.create_action(repo, PUNISHMENT, name, value)
        found = action_service.get_actions_by_value_range(repo, PUNISHMENT, -30, -5)
        assert [a.name for a in found] == ["B"]

    def test_value_range_rejects_wrong_sign(self, repo):
        with pytest.raises(ValidationError):
            action_service.get_actions_by_value_range(repo, PUNISHMENT, 5, 30)
        with pytest.raises(ValidationError):
            action_service.get_actions_by_value_range(repo, REWARD, 30, 5)

    def test_by_severity_most_severe_first(self, repo):
        for name, value in (("A", -3), ("B", -40), ("C", -10)):
            action_service.create_action(repo, PUNISHMENT, name, value)
        ordered = action_service.get_punishments_by_severity(repo)
        assert [a.value for a in ordered] == [-40, -10, -3]
        assert action_service.get_severity_level(ordered[0].value) == Severity.VERY_SEVERE

    def test_statistics_over_magnitudes(self, repo):
        action_service.create_action(repo, PUNISHMENT, "A", -5)
        action_service.create_action(repo, PUNISHMENT, "B", -10)
        stats = action_service.get_action_statistics(repo, PUNISHMENT)
        assert stats == {
            "total": 2,
            "totalValue": 15,
            "averageValue": 7.5,
            "maxValue": 10,
            "minValue": 5,
        }

    def test_statistics_empty(self, repo):
        assert action_service.get_action_statistics(repo, REWARD)["averageValue"] == 0

    def test_most_used(self, repo):
        alice = person_service.create_person(repo, "Alice")
        bob = person_service.create_person(repo, "Bob")
        chores = action_service.create_action(repo, REWARD, "Chores", 10)
        action_service.create_action(repo, REWARD, "Reading", 5)
        assignment_service.create_assignments(repo, [alice.id, bob.id], REWARD, chores.id)

        [(top, count), *_] = action_service.get_most_used_actions(repo, REWARD, 5)
        assert (top.name, count) == ("Chores", 2)

    def test_search(self, repo):
        action_service.create_action(repo, REWARD, "Homework done", 5)
        action_service.create_action(repo, REWARD, "Chores", 5)
        assert [a.name for a in action_service.search_actions(repo, REWARD, "work")] == [
            "Homework done"
        ]
