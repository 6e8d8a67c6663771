"""
tally.api.routes.persons — Person registry endpoints
======================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from tally.api.deps import get_config, get_repository
from tally.api.serializers import person_dict
from tally.config import TallyConfig
from tally.database.repository import Repository
from tally.services import person_service

router = APIRouter(prefix="/persons", tags=["persons"])


class PersonBody(BaseModel):
    name: str


@router.get("")
def list_persons(
    search: str | None = Query(None),
    repo: Repository = Depends(get_repository),
):
    if search is not None:
        rows = person_service.search_persons(repo, search)
    else:
        rows = person_service.list_persons(repo)
    return [person_dict(p) for p in rows]


@router.get("/stats")
def person_stats(repo: Repository = Depends(get_repository)):
    return person_service.person_statistics(repo)


@router.get("/name-available")
def name_available(
    name: str = Query(...),
    exclude_id: int | None = Query(None),
    repo: Repository = Depends(get_repository),
):
    return {"name": name, "available": person_service.is_name_available(repo, name, exclude_id)}


@router.get("/{person_id}")
def get_person(person_id: int, repo: Repository = Depends(get_repository)):
    return person_dict(person_service.get_person(repo, person_id))


@router.post("", status_code=201)
def create_person(
    body: PersonBody,
    repo: Repository = Depends(get_repository),
    cfg: TallyConfig = Depends(get_config),
):
    return person_dict(person_service.create_person(repo, body.name, cfg=cfg))


@router.put("/{person_id}")
def rename_person(
    person_id: int,
    body: PersonBody,
    repo: Repository = Depends(get_repository),
    cfg: TallyConfig = Depends(get_config),
):
    return person_dict(person_service.rename_person(repo, person_id, body.name, cfg=cfg))


@router.delete("/{person_id}", status_code=204)
def delete_person(person_id: int, repo: Repository = Depends(get_repository)):
    person_service.delete_person(repo, person_id)
    return None
