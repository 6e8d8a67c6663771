"""
tally.api.routes.assignments — Assignment endpoints
=====================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tally.api.deps import get_config, get_repository
from tally.api.serializers import action_dict, assignment_dict
from tally.config import TallyConfig
from tally.database.repository import Repository
from tally.services import assignment_service

router = APIRouter(prefix="/assignments", tags=["assignments"])


class AssignmentCreate(BaseModel):
    """``{"personIds": [1, 2], "itemType": "reward", "itemId": 3}``"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    person_ids: list[int]
    item_type: str
    item_id: int


@router.get("")
def list_assignments(
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    repo: Repository = Depends(get_repository),
):
    rows = assignment_service.get_assignments(repo, limit=limit, offset=offset)
    return [assignment_dict(a) for a in rows]


@router.get("/recent")
def recent_assignments(
    limit: int | None = Query(None, ge=1),
    repo: Repository = Depends(get_repository),
    cfg: TallyConfig = Depends(get_config),
):
    rows = assignment_service.get_recent_assignments(repo, limit, cfg=cfg)
    return [assignment_dict(a) for a in rows]


@router.get("/stats")
def assignment_stats(repo: Repository = Depends(get_repository)):
    return assignment_service.get_assignment_statistics(repo)


@router.get("/range")
def assignments_by_date_range(
    start: datetime = Query(...),
    end: datetime = Query(...),
    limit: int | None = Query(None, ge=1),
    repo: Repository = Depends(get_repository),
):
    rows = assignment_service.get_assignments_by_date_range(repo, start, end, limit=limit)
    return [assignment_dict(a) for a in rows]


@router.get("/person/{person_id}")
def assignments_by_person(person_id: int, repo: Repository = Depends(get_repository)):
    rows = assignment_service.get_assignments_by_person(repo, person_id)
    return [assignment_dict(a) for a in rows]


@router.get("/item/{item_type}/{item_id}")
def item_summary(item_type: str, item_id: int, repo: Repository = Depends(get_repository)):
    summary = assignment_service.get_item_assignment_summary(repo, item_type, item_id)
    return {
        **summary,
        "item": action_dict(summary["item"]),
        "assignments": [assignment_dict(a) for a in summary["assignments"]],
    }


@router.post("/validate")
def validate_assignment(
    body: AssignmentCreate,
    repo: Repository = Depends(get_repository),
    cfg: TallyConfig = Depends(get_config),
):
    result = assignment_service.validate_assignment(
        repo, body.person_ids, body.item_type, body.item_id, cfg=cfg
    )
    return result.to_dict()


@router.get("/{assignment_id}")
def get_assignment(assignment_id: int, repo: Repository = Depends(get_repository)):
    return assignment_dict(assignment_service.get_assignment(repo, assignment_id))


@router.post("", status_code=201)
def create_assignments(body: AssignmentCreate, repo: Repository = Depends(get_repository)):
    created = assignment_service.create_assignments(
        repo, body.person_ids, body.item_type, body.item_id
    )
    return [assignment_dict(a) for a in created]


@router.delete("/{assignment_id}", status_code=204)
def delete_assignment(assignment_id: int, repo: Repository = Depends(get_repository)):
    assignment_service.delete_assignment(repo, assignment_id)
    return None
