"""
tally.api.serializers — ORM row → JSON dict helpers shared by the routes
=========================================================================
"""

from __future__ import annotations

from datetime import datetime

from tally.database.models import Action, Assignment, Person


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def person_dict(p: Person) -> dict:
    return {
        "id": p.id,
        "name": p.name,
        "createdAt": _iso(p.created_at),
        "updatedAt": _iso(p.updated_at),
    }


def action_dict(a: Action) -> dict:
    return {
        "id": a.id,
        "kind": a.kind,
        "name": a.name,
        "value": a.value,
        "createdAt": _iso(a.created_at),
        "updatedAt": _iso(a.updated_at),
    }


def assignment_dict(a: Assignment) -> dict:
    return {
        "id": a.id,
        "personId": a.person_id,
        "itemType": a.item_type,
        "itemId": a.item_id,
        "itemName": a.item_name,
        "itemValue": a.item_value,
        "assignedAt": _iso(a.assigned_at),
    }
