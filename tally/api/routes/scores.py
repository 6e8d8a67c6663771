"""
tally.api.routes.scores — Read-only score endpoints
=====================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from tally.api.deps import get_config, get_repository
from tally.config import TallyConfig
from tally.database.repository import Repository
from tally.services import score_service

router = APIRouter(prefix="/scores", tags=["scores"])


@router.get("/total")
def total_scores(repo: Repository = Depends(get_repository)):
    return [s.to_dict() for s in score_service.get_total_scores(repo)]


@router.get("/weekly")
def weekly_scores(
    week_start: datetime | None = Query(None, alias="weekStart"),
    repo: Repository = Depends(get_repository),
):
    return [s.to_dict() for s in score_service.get_weekly_scores(repo, week_start)]


@router.get("/stats")
def score_stats(repo: Repository = Depends(get_repository)):
    return score_service.get_score_statistics(repo).to_dict()


@router.get("/compare")
def compare_scores(
    person1: int = Query(...),
    person2: int = Query(...),
    repo: Repository = Depends(get_repository),
):
    return score_service.compare_person_scores(repo, person1, person2).to_dict()


@router.get("/person/{person_id}")
def person_score(person_id: int, repo: Repository = Depends(get_repository)):
    return score_service.get_person_score(repo, person_id).to_dict()


@router.get("/person/{person_id}/weekly")
def person_weekly_score(
    person_id: int,
    week_start: datetime | None = Query(None, alias="weekStart"),
    repo: Repository = Depends(get_repository),
):
    return score_service.get_person_weekly_score(repo, person_id, week_start).to_dict()


@router.get("/person/{person_id}/trends")
def person_trends(
    person_id: int,
    weeks: int | None = Query(None),
    repo: Repository = Depends(get_repository),
    cfg: TallyConfig = Depends(get_config),
):
    trend = score_service.get_person_score_trends(repo, person_id, weeks, cfg=cfg)
    return [s.to_dict() for s in trend]
