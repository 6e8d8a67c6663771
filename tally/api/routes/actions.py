"""
tally.api.routes.actions — Reward & punishment endpoints
==========================================================

Both resources share one set of handlers built by :func:`_build_router`;
only the :class:`ActionKind` differs.  Punishments get two extra read
endpoints for severity.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from tally.api.deps import get_config, get_repository
from tally.api.serializers import action_dict
from tally.config import TallyConfig
from tally.database.models import ActionKind
from tally.database.repository import Repository
from tally.services import action_service


class ActionBody(BaseModel):
    name: str
    value: int


def _build_router(kind: ActionKind, prefix: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])

    @router.get("")
    def list_actions(
        search: str | None = Query(None),
        repo: Repository = Depends(get_repository),
    ):
        if search is not None:
            rows = action_service.search_actions(repo, kind, search)
        else:
            rows = action_service.list_actions(repo, kind)
        return [action_dict(a) for a in rows]

    @router.get("/stats")
    def action_stats(repo: Repository = Depends(get_repository)):
        return action_service.get_action_statistics(repo, kind)

    @router.get("/recommended-value")
    def recommended_value(
        repo: Repository = Depends(get_repository),
        cfg: TallyConfig = Depends(get_config),
    ):
        return {"recommendedValue": action_service.get_recommended_value(repo, kind, cfg=cfg)}

    @router.get("/most-used")
    def most_used(
        limit: int = Query(10, ge=1, le=100),
        repo: Repository = Depends(get_repository),
    ):
        return [
            {**action_dict(a), "usageCount": count}
            for a, count in action_service.get_most_used_actions(repo, kind, limit)
        ]

    @router.get("/range")
    def by_value_range(
        min_value: int = Query(..., alias="min"),
        max_value: int = Query(..., alias="max"),
        repo: Repository = Depends(get_repository),
    ):
        rows = action_service.get_actions_by_value_range(repo, kind, min_value, max_value)
        return [action_dict(a) for a in rows]

    if kind == ActionKind.PUNISHMENT:

        @router.get("/by-severity")
        def by_severity(repo: Repository = Depends(get_repository)):
            return [
                {**action_dict(a), "severity": action_service.get_severity_level(a.value)}
                for a in action_service.get_punishments_by_severity(repo)
            ]

        @router.get("/severity-level")
        def severity_level(value: int = Query(...)):
            return {"value": value, "severity": action_service.get_severity_level(value)}

    @router.get("/{action_id}")
    def get_action(action_id: int, repo: Repository = Depends(get_repository)):
        return action_dict(action_service.get_action(repo, kind, action_id))

    @router.post("", status_code=201)
    def create_action(
        body: ActionBody,
        repo: Repository = Depends(get_repository),
        cfg: TallyConfig = Depends(get_config),
    ):
        return action_dict(
            action_service.create_action(repo, kind, body.name, body.value, cfg=cfg)
        )

    @router.put("/{action_id}")
    def update_action(
        action_id: int,
        body: ActionBody,
        repo: Repository = Depends(get_repository),
        cfg: TallyConfig = Depends(get_config),
    ):
        return action_dict(
            action_service.update_action(repo, kind, action_id, body.name, body.value, cfg=cfg)
        )

    @router.delete("/{action_id}", status_code=204)
    def delete_action(action_id: int, repo: Repository = Depends(get_repository)):
        action_service.delete_action(repo, kind, action_id)
        return None

    return router


rewards_router = _build_router(ActionKind.REWARD, "/rewards")
punishments_router = _build_router(ActionKind.PUNISHMENT, "/punishments")
