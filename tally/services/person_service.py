"""
tally.services.person_service — Person Registry
================================================

Owns Person rows.  Names are trimmed, non-empty, bounded in length, and
unique case-insensitively.  A person with assignments cannot be deleted.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from tally.config import TallyConfig
from tally.database.models import Person
from tally.database.repository import Repository
from tally.engine.rules import check_id, clean_name
from tally.errors import AlreadyExistsError, BusinessRuleError, NotFoundError

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = TallyConfig()


def _name(name: object, cfg: TallyConfig | None) -> str:
    cfg = cfg or _DEFAULT_CONFIG
    return clean_name(name, max_length=cfg.person_name_max_length, label="Person name")


def get_person(repo: Repository, person_id: int) -> Person:
    check_id(person_id, "Person ID")
    person = repo.find_person_by_id(person_id)
    if person is None:
        raise NotFoundError.for_entity("Person", person_id)
    return person


def list_persons(repo: Repository) -> list[Person]:
    return repo.find_all_persons()


def search_persons(repo: Repository, term: str | None) -> list[Person]:
    """Case-insensitive substring search; a blank term matches nothing."""
    if not isinstance(term, str) or not term.strip():
        return []
    return repo.search_persons(term.strip())


def create_person(repo: Repository, name: str, *, cfg: TallyConfig | None = None) -> Person:
    """Register a new person.

    Raises
    ------
    ValidationError
        Blank name or name longer than the configured bound.
    AlreadyExistsError
        Another person already has this name (ignoring case).
    """
    cleaned = _name(name, cfg)
    if repo.person_name_exists(cleaned):
        raise AlreadyExistsError(
            f'A person named "{cleaned}" already exists', {"name": cleaned}
        )
    try:
        person = repo.create_person(cleaned)
    except IntegrityError:
        # Lost a race with a concurrent create of the same name
        raise AlreadyExistsError(
            f'A person named "{cleaned}" already exists', {"name": cleaned}
        ) from None
    logger.info("Person created: id=%s name=%r", person.id, person.name)
    return person


def rename_person(
    repo: Repository, person_id: int, new_name: str, *, cfg: TallyConfig | None = None
) -> Person:
    """Rename *person_id*.  Renaming to your own current name is allowed."""
    check_id(person_id, "Person ID")
    cleaned = _name(new_name, cfg)
    if repo.find_person_by_id(person_id) is None:
        raise NotFoundError.for_entity("Person", person_id)
    if repo.person_name_exists(cleaned, exclude_id=person_id):
        raise AlreadyExistsError(
            f'Another person named "{cleaned}" already exists', {"name": cleaned}
        )
    try:
        person = repo.update_person(person_id, cleaned)
    except IntegrityError:
        raise AlreadyExistsError(
            f'Another person named "{cleaned}" already exists', {"name": cleaned}
        ) from None
    if person is None:
        raise NotFoundError.for_entity("Person", person_id)
    logger.info("Person renamed: id=%s name=%r", person.id, person.name)
    return person


def delete_person(repo: Repository, person_id: int) -> None:
    check_id(person_id, "Person ID")
    person = repo.find_person_by_id(person_id)
    if person is None:
        raise NotFoundError.for_entity("Person", person_id)
    if repo.person_has_assignments(person_id):
        raise BusinessRuleError(
            f'Cannot delete person "{person.name}": has dependent assignments',
            {"id": person_id},
        )
    try:
        deleted = repo.delete_person(person_id)
    except IntegrityError:
        # An assignment was recorded between the check and the delete
        raise BusinessRuleError(
            f'Cannot delete person "{person.name}": has dependent assignments',
            {"id": person_id},
        ) from None
    if not deleted:
        raise NotFoundError.for_entity("Person", person_id)
    logger.info("Person deleted: id=%s name=%r", person_id, person.name)


def is_name_available(
    repo: Repository, name: str | None, exclude_id: int | None = None
) -> bool:
    if not isinstance(name, str) or not name.strip():
        return False
    return not repo.person_name_exists(name.strip(), exclude_id=exclude_id)


def person_statistics(repo: Repository) -> dict[str, int]:
    return {"totalPersons": repo.count_persons()}
