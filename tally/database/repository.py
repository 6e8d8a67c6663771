"""
tally.database.repository — Data-Access Collaborator
=====================================================

The only module that issues SQL.  Services call these methods and never
touch a :class:`Session` themselves.

Every method opens its own short session through
:func:`~tally.database.engine.get_session` and returns detached ORM rows
(``expire_on_commit=False``), so results stay readable after the call.
Multi-row writes (the assignment fan-out) happen inside one session and
therefore one transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import Engine, and_, case, func, select
from sqlalchemy.orm import Session

from tally.database.engine import get_session
from tally.database.models import Action, ActionKind, Assignment, Person
from tally.engine.scoring import ScoreRow

logger = logging.getLogger(__name__)


def fold_name(name: str) -> str:
    """Case key for name uniqueness.

    Compared in Python rather than with SQL ``lower()``, which on SQLite
    only folds ASCII letters.
    """
    return name.casefold()


def _detach_all(session: Session, rows: Sequence[Any]) -> list[Any]:
    for row in rows:
        session.expunge(row)
    return list(rows)


class Repository:
    """SQLAlchemy-backed repository for persons, actions, and assignments."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # -----------------------------------------------------------------------
    # Persons
    # -----------------------------------------------------------------------
    def find_person_by_id(self, person_id: int) -> Person | None:
        with get_session(self.engine) as session:
            return session.get(Person, person_id)

    def find_person_by_name(self, name: str) -> Person | None:
        """Case-insensitive exact match."""
        key = fold_name(name)
        with get_session(self.engine) as session:
            for person in session.scalars(select(Person).order_by(Person.id)):
                if fold_name(person.name) == key:
                    return person
            return None

    def find_all_persons(self) -> list[Person]:
        with get_session(self.engine) as session:
            rows = session.scalars(select(Person).order_by(Person.name, Person.id)).all()
            return _detach_all(session, rows)

    def search_persons(self, term: str) -> list[Person]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(Person)
                .where(func.lower(Person.name).contains(term.lower(), autoescape=True))
                .order_by(Person.name, Person.id)
            ).all()
            return _detach_all(session, rows)

    def existing_person_ids(self, person_ids: Iterable[int]) -> set[int]:
        ids = set(person_ids)
        if not ids:
            return set()
        with get_session(self.engine) as session:
            return set(session.scalars(select(Person.id).where(Person.id.in_(ids))).all())

    def person_name_exists(self, name: str, exclude_id: int | None = None) -> bool:
        stmt = select(Person.name)
        if exclude_id is not None:
            stmt = stmt.where(Person.id != exclude_id)
        key = fold_name(name)
        with get_session(self.engine) as session:
            return any(fold_name(other) == key for other in session.scalars(stmt))

    def create_person(self, name: str) -> Person:
        with get_session(self.engine) as session:
            person = Person(name=name)
            session.add(person)
            session.flush()
            return person

    def update_person(self, person_id: int, name: str) -> Person | None:
        with get_session(self.engine) as session:
            person = session.get(Person, person_id)
            if person is None:
                return None
            person.name = name
            session.flush()
            return person

    def delete_person(self, person_id: int) -> bool:
        with get_session(self.engine) as session:
            person = session.get(Person, person_id)
            if person is None:
                return False
            session.delete(person)
            return True

    def person_has_assignments(self, person_id: int) -> bool:
        with get_session(self.engine) as session:
            return session.scalar(
                select(Assignment.id).where(Assignment.person_id == person_id).limit(1)
            ) is not None

    def count_persons(self) -> int:
        with get_session(self.engine) as session:
            return session.scalar(select(func.count()).select_from(Person)) or 0

    # -----------------------------------------------------------------------
    # Actions (rewards + punishments)
    # -----------------------------------------------------------------------
    def find_action(self, kind: ActionKind, action_id: int) -> Action | None:
        with get_session(self.engine) as session:
            return session.scalar(
                select(Action).where(Action.id == action_id, Action.kind == kind.value)
            )

    def find_action_by_name(self, kind: ActionKind, name: str) -> Action | None:
        key = fold_name(name)
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(Action).where(Action.kind == kind.value).order_by(Action.id)
            )
            for action in rows:
                if fold_name(action.name) == key:
                    return action
            return None

    def find_actions(self, kind: ActionKind) -> list[Action]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(Action).where(Action.kind == kind.value).order_by(Action.name, Action.id)
            ).all()
            return _detach_all(session, rows)

    def action_name_exists(
        self, kind: ActionKind, name: str, exclude_id: int | None = None
    ) -> bool:
        stmt = select(Action.name).where(Action.kind == kind.value)
        if exclude_id is not None:
            stmt = stmt.where(Action.id != exclude_id)
        key = fold_name(name)
        with get_session(self.engine) as session:
            return any(fold_name(other) == key for other in session.scalars(stmt))

    def search_actions(self, kind: ActionKind, term: str) -> list[Action]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(Action)
                .where(
                    Action.kind == kind.value,
                    func.lower(Action.name).contains(term.lower(), autoescape=True),
                )
                .order_by(Action.name, Action.id)
            ).all()
            return _detach_all(session, rows)

    def find_actions_by_value_range(
        self, kind: ActionKind, min_value: int, max_value: int
    ) -> list[Action]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(Action)
                .where(
                    Action.kind == kind.value,
                    Action.value >= min_value,
                    Action.value <= max_value,
                )
                .order_by(Action.value, Action.name)
            ).all()
            return _detach_all(session, rows)

    def find_actions_by_severity(self, kind: ActionKind) -> list[Action]:
        """Most negative first (largest magnitude first for rewards too)."""
        order = Action.value.asc() if kind == ActionKind.PUNISHMENT else Action.value.desc()
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(Action).where(Action.kind == kind.value).order_by(order, Action.name)
            ).all()
            return _detach_all(session, rows)

    def most_used_actions(self, kind: ActionKind, limit: int) -> list[tuple[Action, int]]:
        usage = func.count(Assignment.id).label("usage_count")
        with get_session(self.engine) as session:
            rows = session.execute(
                select(Action, usage)
                .outerjoin(Assignment, Assignment.item_id == Action.id)
                .where(Action.kind == kind.value)
                .group_by(Action.id)
                .order_by(usage.desc(), Action.name)
                .limit(limit)
            ).all()
            result = []
            for action, count in rows:
                session.expunge(action)
                result.append((action, int(count)))
            return result

    def create_action(self, kind: ActionKind, name: str, value: int) -> Action:
        with get_session(self.engine) as session:
            action = Action(kind=kind.value, name=name, value=value)
            session.add(action)
            session.flush()
            return action

    def update_action(
        self, kind: ActionKind, action_id: int, name: str, value: int
    ) -> Action | None:
        with get_session(self.engine) as session:
            action = session.scalar(
                select(Action).where(Action.id == action_id, Action.kind == kind.value)
            )
            if action is None:
                return None
            action.name = name
            action.value = value
            session.flush()
            return action

    def delete_action(self, kind: ActionKind, action_id: int) -> bool:
        with get_session(self.engine) as session:
            action = session.scalar(
                select(Action).where(Action.id == action_id, Action.kind == kind.value)
            )
            if action is None:
                return False
            session.delete(action)
            return True

    def action_is_used(self, action_id: int) -> bool:
        with get_session(self.engine) as session:
            return session.scalar(
                select(Assignment.id).where(Assignment.item_id == action_id).limit(1)
            ) is not None

    def count_actions(self, kind: ActionKind) -> int:
        with get_session(self.engine) as session:
            return session.scalar(
                select(func.count()).select_from(Action).where(Action.kind == kind.value)
            ) or 0

    # -----------------------------------------------------------------------
    # Assignments
    # -----------------------------------------------------------------------
    def create_assignments(self, rows: Sequence[dict[str, Any]]) -> list[Assignment]:
        """Insert every row in a single transaction; all or nothing."""
        with get_session(self.engine) as session:
            created = [Assignment(**row) for row in rows]
            session.add_all(created)
            session.flush()
            return created

    def find_assignment_by_id(self, assignment_id: int) -> Assignment | None:
        with get_session(self.engine) as session:
            return session.get(Assignment, assignment_id)

    def delete_assignment(self, assignment_id: int) -> bool:
        with get_session(self.engine) as session:
            assignment = session.get(Assignment, assignment_id)
            if assignment is None:
                return False
            session.delete(assignment)
            return True

    def find_assignments(
        self, *, limit: int | None = None, offset: int = 0, newest_first: bool = True
    ) -> list[Assignment]:
        if newest_first:
            order = (Assignment.assigned_at.desc(), Assignment.id.desc())
        else:
            order = (Assignment.assigned_at.asc(), Assignment.id.asc())
        stmt = select(Assignment).order_by(*order).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        with get_session(self.engine) as session:
            return _detach_all(session, session.scalars(stmt).all())

    def find_assignments_by_person(
        self, person_id: int, *, limit: int | None = None
    ) -> list[Assignment]:
        stmt = (
            select(Assignment)
            .where(Assignment.person_id == person_id)
            .order_by(Assignment.assigned_at.desc(), Assignment.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        with get_session(self.engine) as session:
            return _detach_all(session, session.scalars(stmt).all())

    def find_assignments_by_date_range(
        self,
        start: datetime,
        end: datetime,
        *,
        person_id: int | None = None,
        limit: int | None = None,
    ) -> list[Assignment]:
        """Inclusive on both ends, newest first."""
        stmt = select(Assignment).where(
            Assignment.assigned_at >= start, Assignment.assigned_at <= end
        )
        if person_id is not None:
            stmt = stmt.where(Assignment.person_id == person_id)
        stmt = stmt.order_by(Assignment.assigned_at.desc(), Assignment.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with get_session(self.engine) as session:
            return _detach_all(session, session.scalars(stmt).all())

    def find_assignments_by_item(self, kind: ActionKind, item_id: int) -> list[Assignment]:
        with get_session(self.engine) as session:
            rows = session.scalars(
                select(Assignment)
                .where(Assignment.item_type == kind.value, Assignment.item_id == item_id)
                .order_by(Assignment.assigned_at.desc(), Assignment.id.desc())
            ).all()
            return _detach_all(session, rows)

    def count_assignments(self) -> int:
        with get_session(self.engine) as session:
            return session.scalar(select(func.count()).select_from(Assignment)) or 0

    def assignment_statistics(self) -> dict[str, Any]:
        """Raw aggregate counters over every assignment."""
        reward = ActionKind.REWARD.value
        punishment = ActionKind.PUNISHMENT.value
        with get_session(self.engine) as session:
            row = session.execute(
                select(
                    func.count(Assignment.id).label("total"),
                    func.coalesce(
                        func.sum(case((Assignment.item_type == reward, 1), else_=0)), 0
                    ).label("rewards"),
                    func.coalesce(
                        func.sum(case((Assignment.item_type == punishment, 1), else_=0)), 0
                    ).label("punishments"),
                    func.avg(Assignment.item_value).label("average_value"),
                    func.coalesce(
                        func.sum(
                            case((Assignment.item_value > 0, Assignment.item_value), else_=0)
                        ),
                        0,
                    ).label("reward_value"),
                    func.coalesce(
                        func.sum(
                            case(
                                (Assignment.item_value < 0, -Assignment.item_value), else_=0
                            )
                        ),
                        0,
                    ).label("punishment_value"),
                )
            ).one()
            return dict(row._mapping)

    # -----------------------------------------------------------------------
    # Score aggregation helper
    # -----------------------------------------------------------------------
    def score_rows(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        *,
        person_id: int | None = None,
    ) -> list[ScoreRow]:
        """Sum ``item_value`` per person, optionally within ``[start, end]``.

        The window lives in the join clause, not the WHERE clause, so every
        person comes back — people with nothing in the window get 0 / 0.
        """
        join_on = [Assignment.person_id == Person.id]
        if start is not None:
            join_on.append(Assignment.assigned_at >= start)
        if end is not None:
            join_on.append(Assignment.assigned_at <= end)

        stmt = (
            select(
                Person.id,
                Person.name,
                func.coalesce(func.sum(Assignment.item_value), 0),
                func.count(Assignment.id),
            )
            .outerjoin(Assignment, and_(*join_on))
            .group_by(Person.id, Person.name)
        )
        if person_id is not None:
            stmt = stmt.where(Person.id == person_id)

        with get_session(self.engine) as session:
            return [
                ScoreRow(
                    person_id=pid,
                    person_name=name,
                    score=int(score),
                    assignment_count=int(count),
                )
                for pid, name, score, count in session.execute(stmt).all()
            ]
