"""
tests/test_person_service.py — Person Registry
===============================================

Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from tally.config import TallyConfig
from tally.database.models import ActionKind, Person
from tally.database.repository import Repository
from tally.errors import AlreadyExistsError, BusinessRuleError, NotFoundError, ValidationError
from tally.services import action_service, assignment_service, person_service


class TestCreate:
    def test_name_is_trimmed(self, repo):
        person = person_service.create_person(repo, "  Alice  ")
        assert person.id is not None
        assert person.name == "Alice"
        assert person.created_at is not None

    def test_duplicate_name_ignores_case(self, repo):
        person_service.create_person(repo, "Alice")
        with pytest.raises(AlreadyExistsError):
            person_service.create_person(repo, "ALICE")

    def test_duplicate_name_ignores_case_beyond_ascii(self, repo):
        person_service.create_person(repo, "élise")
        with pytest.raises(AlreadyExistsError):
            person_service.create_person(repo, "ÉLISE")
        assert repo.find_person_by_name("ÉLISE").name == "élise"

    def test_blank_name_rejected(self, repo):
        with pytest.raises(ValidationError):
            person_service.create_person(repo, "   ")

    def test_length_bound_from_config(self, repo):
        cfg = TallyConfig(person_name_max_length=5)
        person_service.create_person(repo, "Alice", cfg=cfg)
        with pytest.raises(ValidationError):
            person_service.create_person(repo, "Alicia", cfg=cfg)


class TestRename:
    def test_rename_to_own_name_in_other_case(self, repo):
        alice = person_service.create_person(repo, "Alice")
        renamed = person_service.rename_person(repo, alice.id, "alice")
        assert renamed.name == "alice"

    def test_rename_onto_other_person_conflicts(self, repo):
        person_service.create_person(repo, "Alice")
        bob = person_service.create_person(repo, "Bob")
        with pytest.raises(AlreadyExistsError):
            person_service.rename_person(repo, bob.id, "alice")

    def test_rename_missing(self, repo):
        with pytest.raises(NotFoundError, match="Person with ID 99 not found"):
            person_service.rename_person(repo, 99, "Nobody")


class TestDelete:
    def test_delete(self, repo):
        alice = person_service.create_person(repo, "Alice")
        person_service.delete_person(repo, alice.id)
        with pytest.raises(NotFoundError):
            person_service.get_person(repo, alice.id)

    def test_delete_blocked_by_assignments(self, repo):
        alice = person_service.create_person(repo, "Alice")
        reward = action_service.create_action(repo, ActionKind.REWARD, "Chores", 10)
        assignment_service.create_assignments(repo, [alice.id], "reward", reward.id)
        with pytest.raises(BusinessRuleError, match="dependent assignments"):
            person_service.delete_person(repo, alice.id)
        assert person_service.get_person(repo, alice.id).name == "Alice"

    def test_assignment_racing_the_delete_is_a_business_rule_error(self):
        repo = MagicMock(spec=Repository)
        repo.find_person_by_id.return_value = Person(id=1, name="Alice")
        repo.person_has_assignments.return_value = False
        repo.delete_person.side_effect = IntegrityError("DELETE FROM persons", {}, Exception("FK"))

        with pytest.raises(BusinessRuleError, match="dependent assignments"):
            person_service.delete_person(repo, 1)


class TestQueries:
    def test_list_and_search(self, repo):
        for name in ("Charlie", "alice", "Bob"):
            person_service.create_person(repo, name)
        assert len(person_service.list_persons(repo)) == 3
        assert {p.name for p in person_service.search_persons(repo, "LI")} == {"Charlie", "alice"}
        assert person_service.search_persons(repo, "  ") == []

    def test_name_availability(self, repo):
        alice = person_service.create_person(repo, "Alice")
        assert person_service.is_name_available(repo, "alice") is False
        assert person_service.is_name_available(repo, "alice", exclude_id=alice.id) is True
        assert person_service.is_name_available(repo, "") is False

    def test_statistics(self, repo):
        person_service.create_person(repo, "Alice")
        assert person_service.person_statistics(repo) == {"totalPersons": 1}
