"""
tally.database.models — SQLAlchemy 2.0 Data Models
===================================================

Tables:
- persons      — People who receive rewards and punishments
- actions      — Named, signed point values (tagged by kind: reward | punishment)
- assignments  — One person ↔ one action snapshot at a point in time

``assignments.item_name`` / ``assignments.item_value`` are copies taken when
the row is created.  They are never joined back to ``actions`` for scoring,
so editing an action does not rewrite history.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Column types
# ---------------------------------------------------------------------------
class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend.

    PostgreSQL keeps the offset natively.  SQLite has no timezone support,
    so values are stored as naive UTC and re-tagged with UTC on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        value = value.astimezone(UTC)
        if dialect.name == "sqlite":
            value = value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Tally ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ActionKind(enum.StrEnum):
    """The two action variants.  Only the sign rule differs between them."""
    REWARD = "reward"
    PUNISHMENT = "punishment"


# ---------------------------------------------------------------------------
# Persons
# ---------------------------------------------------------------------------
class Person(Base):
    __tablename__ = "persons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return f"<Person id={self.id} name={self.name!r}>"


# Names are unique regardless of case
Index("uq_persons_name_lower", func.lower(Person.name), unique=True)


# ---------------------------------------------------------------------------
# Actions — rewards and punishments share one table
# ---------------------------------------------------------------------------
class Action(Base):
    __tablename__ = "actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "(kind = 'reward' AND value > 0) OR (kind = 'punishment' AND value < 0)",
            name="ck_actions_value_sign",
        ),
        Index("ix_actions_kind", "kind"),
    )

    def __repr__(self) -> str:
        return f"<Action id={self.id} kind={self.kind} name={self.name!r} value={self.value}>"


Index("uq_actions_kind_name_lower", Action.kind, func.lower(Action.name), unique=True)


# ---------------------------------------------------------------------------
# Assignments — append-only, deleted individually, never updated
# ---------------------------------------------------------------------------
class Assignment(Base):
    __tablename__ = "assignments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    person_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("persons.id", ondelete="RESTRICT"), nullable=False
    )
    item_type: Mapped[str] = mapped_column(String(20), nullable=False)
    item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("actions.id", ondelete="RESTRICT"), nullable=False
    )
    # Snapshot of the action at creation time
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    item_value: Mapped[int] = mapped_column(Integer, nullable=False)
    assigned_at: Mapped[datetime] = mapped_column(
        UTCDateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("ix_assignments_person_time", "person_id", "assigned_at"),
        Index("ix_assignments_assigned_at", "assigned_at"),
        Index("ix_assignments_item", "item_type", "item_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Assignment id={self.id} person={self.person_id} "
            f"{self.item_type}={self.item_id} value={self.item_value}>"
        )
