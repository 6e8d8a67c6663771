"""
tally.services.score_service — Score Aggregation Engine
========================================================

Derives standings from the live assignment set on every call; nothing is
cached.  Sums come from :meth:`Repository.score_rows` (which sums the
``item_value`` snapshots, never the current action values); ordering,
ranking, and statistics come from :mod:`tally.engine.scoring`.

Every function takes an optional ``now`` — the reference instant used to
resolve "the current week".  Leave it ``None`` in production.
"""

from __future__ import annotations

import logging
from datetime import datetime

from tally.config import TallyConfig
from tally.database.models import Person
from tally.database.repository import Repository
from tally.engine import scoring
from tally.engine.rules import check_id
from tally.engine.scoring import (
    PersonScore,
    PersonScoreView,
    ScoreComparison,
    ScoreStatistics,
    WeeklyScore,
)
from tally.engine.weeks import WeekWindow, recent_weeks, week_window
from tally.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = TallyConfig()


def _require_person(repo: Repository, person_id: int) -> Person:
    check_id(person_id, "Person ID")
    person = repo.find_person_by_id(person_id)
    if person is None:
        raise NotFoundError.for_entity("Person", person_id)
    return person


def _resolve_week(week_start: datetime | None, now: datetime | None) -> WeekWindow:
    """An explicit *week_start* is snapped to the Monday of its own week."""
    if week_start is not None:
        if not isinstance(week_start, datetime):
            raise ValidationError(f"week_start must be a datetime (got {week_start!r})")
        return WeekWindow.containing(week_start)
    return week_window(now)


# ---------------------------------------------------------------------------
# Standings
# ---------------------------------------------------------------------------
def get_total_scores(repo: Repository) -> list[PersonScore]:
    """All-time standings for every person, including those with no assignments."""
    return scoring.rank_total(repo.score_rows())


def get_weekly_scores(
    repo: Repository, week_start: datetime | None = None, *, now: datetime | None = None
) -> list[WeeklyScore]:
    """Standings restricted to one Monday-to-Sunday window (default: current week)."""
    window = _resolve_week(week_start, now)
    return scoring.rank_weekly(repo.score_rows(window.start, window.end), window)


def get_person_weekly_score(
    repo: Repository,
    person_id: int,
    week_start: datetime | None = None,
    *,
    now: datetime | None = None,
) -> WeeklyScore:
    """One person's score for one week, zero-filled when they had no assignments.

    ``rank`` is left at 0 — ranking needs the whole field, use
    :func:`get_weekly_scores` for that.
    """
    person = _require_person(repo, person_id)
    window = _resolve_week(week_start, now)
    rows = repo.score_rows(window.start, window.end, person_id=person_id)
    score, count = (rows[0].score, rows[0].assignment_count) if rows else (0, 0)
    return WeeklyScore(
        person_id=person.id,
        person_name=person.name,
        week_start=window.start,
        week_end=window.end,
        weekly_score=score,
        assignment_count=count,
        average_score=scoring.average_score(score, count),
    )


def get_person_score(
    repo: Repository, person_id: int, *, now: datetime | None = None
) -> PersonScoreView:
    """Total + current-week figures and ranks for one person."""
    person = _require_person(repo, person_id)
    window = week_window(now)

    total = next(
        (s for s in get_total_scores(repo) if s.person_id == person_id),
        PersonScore(person_id=person.id, person_name=person.name),
    )
    weekly = next(
        (s for s in get_weekly_scores(repo, now=now) if s.person_id == person_id),
        WeeklyScore(
            person_id=person.id,
            person_name=person.name,
            week_start=window.start,
            week_end=window.end,
        ),
    )

    return PersonScoreView(
        person_id=person.id,
        person_name=person.name,
        total_score=total.total_score,
        total_assignment_count=total.assignment_count,
        total_rank=total.rank,
        average_total_score=total.average_score,
        weekly_score=weekly.weekly_score,
        weekly_assignment_count=weekly.assignment_count,
        weekly_rank=weekly.rank,
        average_weekly_score=weekly.average_score,
        week_start=window.start,
        week_end=window.end,
    )


def compare_person_scores(
    repo: Repository, person_id1: int, person_id2: int, *, now: datetime | None = None
) -> ScoreComparison:
    """Head-to-head view; ``leader`` is a name or :data:`scoring.TIE`."""
    check_id(person_id1, "Person ID")
    check_id(person_id2, "Person ID")
    if person_id1 == person_id2:
        raise ValidationError(
            f"Cannot compare a person to themself: both IDs refer to the same person ({person_id1})"
        )
    first = get_person_score(repo, person_id1, now=now)
    second = get_person_score(repo, person_id2, now=now)
    return scoring.compare(first, second)


def get_score_statistics(
    repo: Repository, *, now: datetime | None = None
) -> ScoreStatistics:
    """min / max / average / median across everyone; all zero on an empty system."""
    return scoring.build_statistics(
        get_total_scores(repo), get_weekly_scores(repo, now=now)
    )


def get_person_score_trends(
    repo: Repository,
    person_id: int,
    weeks: int | None = None,
    *,
    now: datetime | None = None,
    cfg: TallyConfig | None = None,
) -> list[WeeklyScore]:
    """Weekly scores for the *weeks* most recent weeks, oldest first.

    The last entry is always the current week.
    """
    cfg = cfg or _DEFAULT_CONFIG
    weeks = cfg.default_trend_weeks if weeks is None else weeks
    if isinstance(weeks, bool) or not isinstance(weeks, int) or not 1 <= weeks <= cfg.max_trend_weeks:
        raise ValidationError(
            f"weeks must be an integer between 1 and {cfg.max_trend_weeks} (got {weeks!r})"
        )
    person = _require_person(repo, person_id)

    windows = recent_weeks(weeks, now)
    assignments = repo.find_assignments_by_date_range(
        windows[0].start, windows[-1].end, person_id=person_id
    )

    trend = []
    for window in windows:
        in_week = [a for a in assignments if window.contains(a.assigned_at)]
        score = sum(a.item_value for a in in_week)
        trend.append(
            WeeklyScore(
                person_id=person.id,
                person_name=person.name,
                week_start=window.start,
                week_end=window.end,
                weekly_score=score,
                assignment_count=len(in_week),
                average_score=scoring.average_score(score, len(in_week)),
            )
        )
    logger.debug("Computed %d-week trend for person id=%s", weeks, person_id)
    return trend
