"""
tally.errors — Error Taxonomy
==============================

Every core operation either returns a value or raises exactly one of the
four kinds below.  None of them are transient, so nothing is retried.

* :class:`ValidationError`     — malformed or out-of-range input
* :class:`NotFoundError`       — referenced person/action/assignment is missing
* :class:`AlreadyExistsError`  — duplicate name
* :class:`BusinessRuleError`   — the operation would break an invariant

The HTTP layer maps each kind to a status code via :attr:`TallyError.status_code`.
"""

from __future__ import annotations

from typing import Any


class TallyError(Exception):
    """Base class for all domain errors raised by the core."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.kind, "detail": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(TallyError):
    kind = "validation_error"
    status_code = 400


class NotFoundError(TallyError):
    kind = "not_found"
    status_code = 404

    @classmethod
    def for_entity(cls, entity: str, entity_id: Any) -> NotFoundError:
        return cls(f"{entity} with ID {entity_id} not found", {"id": entity_id})


class AlreadyExistsError(TallyError):
    kind = "already_exists"
    status_code = 409


class BusinessRuleError(TallyError):
    kind = "business_rule_violation"
    status_code = 422
