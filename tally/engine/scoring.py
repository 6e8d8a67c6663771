"""
tally.engine.scoring — Ranking & Score Statistics
==================================================

Pure calculation layer.  No DB I/O inside the engine: the repository hands
over one :class:`ScoreRow` per person (already summed for the window in
question) and everything else — averages, ordering, ranks, summary
statistics, head-to-head comparison — is computed here.

Ordering rule: score descending, ties broken by name ascending.  ``rank``
is the 1-based position after that sort, so tied scores still get distinct
sequential ranks (1, 2, 3 — not 1, 1, 3).
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, NamedTuple

from tally.engine.weeks import WeekWindow

__all__ = [
    "TIE",
    "PersonScore",
    "PersonScoreView",
    "ScoreComparison",
    "ScoreRow",
    "ScoreStatistics",
    "ScoreSummary",
    "WeeklyScore",
    "average_score",
    "build_statistics",
    "compare",
    "leader",
    "median",
    "name_sort_key",
    "rank_total",
    "rank_weekly",
    "summarize",
]

TIE = "tie"


class ScoreRow(NamedTuple):
    """One person's summed score for some window (as read from the repository)."""

    person_id: int
    person_name: str
    score: int
    assignment_count: int


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------
def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class PersonScore:
    person_id: int
    person_name: str
    total_score: int = 0
    assignment_count: int = 0
    average_score: float = 0.0
    rank: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "personId": self.person_id,
            "personName": self.person_name,
            "totalScore": self.total_score,
            "assignmentCount": self.assignment_count,
            "averageScore": self.average_score,
            "rank": self.rank,
        }


@dataclass
class WeeklyScore:
    person_id: int
    person_name: str
    week_start: datetime
    week_end: datetime
    weekly_score: int = 0
    assignment_count: int = 0
    average_score: float = 0.0
    rank: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "personId": self.person_id,
            "personName": self.person_name,
            "weeklyScore": self.weekly_score,
            "assignmentCount": self.assignment_count,
            "averageScore": self.average_score,
            "rank": self.rank,
            "weekStart": _iso(self.week_start),
            "weekEnd": _iso(self.week_end),
        }


@dataclass
class PersonScoreView:
    """Merged total + current-week view of one person."""

    person_id: int
    person_name: str
    total_score: int
    total_assignment_count: int
    total_rank: int
    average_total_score: float
    weekly_score: int
    weekly_assignment_count: int
    weekly_rank: int
    average_weekly_score: float
    week_start: datetime
    week_end: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "personId": self.person_id,
            "personName": self.person_name,
            "totalScore": self.total_score,
            "totalAssignmentCount": self.total_assignment_count,
            "totalRank": self.total_rank,
            "averageTotalScore": self.average_total_score,
            "weeklyScore": self.weekly_score,
            "weeklyAssignmentCount": self.weekly_assignment_count,
            "weeklyRank": self.weekly_rank,
            "averageWeeklyScore": self.average_weekly_score,
            "weekStart": _iso(self.week_start),
            "weekEnd": _iso(self.week_end),
        }


@dataclass
class ScoreComparison:
    person1: PersonScoreView
    person2: PersonScoreView
    total_score_difference: int
    weekly_score_difference: int
    total_score_leader: str
    weekly_score_leader: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "person1": self.person1.to_dict(),
            "person2": self.person2.to_dict(),
            "comparison": {
                "totalScoreDifference": self.total_score_difference,
                "weeklyScoreDifference": self.weekly_score_difference,
                "totalScoreLeader": self.total_score_leader,
                "weeklyScoreLeader": self.weekly_score_leader,
            },
        }


@dataclass(frozen=True)
class ScoreSummary:
    min: float = 0
    max: float = 0
    average: float = 0
    median: float = 0

    def to_dict(self) -> dict[str, float]:
        return {
            "min": self.min,
            "max": self.max,
            "average": self.average,
            "median": self.median,
        }


@dataclass
class ScoreStatistics:
    total_persons: int
    total_score_stats: ScoreSummary
    weekly_score_stats: ScoreSummary
    top_performer: PersonScore | None
    bottom_performer: PersonScore | None
    weekly_top_performer: WeeklyScore | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalPersons": self.total_persons,
            "totalScoreStats": self.total_score_stats.to_dict(),
            "weeklyScoreStats": self.weekly_score_stats.to_dict(),
            "topPerformer": self.top_performer.to_dict() if self.top_performer else None,
            "bottomPerformer": (
                self.bottom_performer.to_dict() if self.bottom_performer else None
            ),
            "weeklyTopPerformer": (
                self.weekly_top_performer.to_dict() if self.weekly_top_performer else None
            ),
        }


# ---------------------------------------------------------------------------
# Averages & ordering
# ---------------------------------------------------------------------------
def average_score(score: int, count: int) -> float:
    """Mean value per assignment, 2 decimals; 0 when there are none."""
    if count <= 0:
        return 0.0
    return round(score / count, 2)


def name_sort_key(name: str) -> str:
    """Accent- and case-insensitive collation key ('Émile' sorts with 'Emile')."""
    decomposed = unicodedata.normalize("NFKD", name)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def _order_key(row: ScoreRow) -> tuple[int, str, str]:
    # raw name breaks ties between names that collate equal
    return (-row.score, name_sort_key(row.person_name), row.person_name)


def rank_total(rows: Iterable[ScoreRow]) -> list[PersonScore]:
    ordered = sorted(rows, key=_order_key)
    return [
        PersonScore(
            person_id=row.person_id,
            person_name=row.person_name,
            total_score=int(row.score),
            assignment_count=int(row.assignment_count),
            average_score=average_score(row.score, row.assignment_count),
            rank=position,
        )
        for position, row in enumerate(ordered, start=1)
    ]


def rank_weekly(rows: Iterable[ScoreRow], window: WeekWindow) -> list[WeeklyScore]:
    ordered = sorted(rows, key=_order_key)
    return [
        WeeklyScore(
            person_id=row.person_id,
            person_name=row.person_name,
            week_start=window.start,
            week_end=window.end,
            weekly_score=int(row.score),
            assignment_count=int(row.assignment_count),
            average_score=average_score(row.score, row.assignment_count),
            rank=position,
        )
        for position, row in enumerate(ordered, start=1)
    ]


# ---------------------------------------------------------------------------
# Summary statistics
# ---------------------------------------------------------------------------
def median(values: Sequence[float]) -> float:
    """Middle value; mean of the two middle values for an even count; 0 when empty."""
    if not values:
        return 0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def summarize(values: Sequence[float]) -> ScoreSummary:
    if not values:
        return ScoreSummary()
    return ScoreSummary(
        min=min(values),
        max=max(values),
        average=round(sum(values) / len(values), 2),
        median=median(values),
    )


def build_statistics(
    total: Sequence[PersonScore], weekly: Sequence[WeeklyScore]
) -> ScoreStatistics:
    """Aggregate already-ranked total and weekly lists into one summary."""
    if not total:
        return ScoreStatistics(
            total_persons=0,
            total_score_stats=ScoreSummary(),
            weekly_score_stats=ScoreSummary(),
            top_performer=None,
            bottom_performer=None,
            weekly_top_performer=None,
        )
    return ScoreStatistics(
        total_persons=len(total),
        total_score_stats=summarize([s.total_score for s in total]),
        weekly_score_stats=summarize([s.weekly_score for s in weekly]),
        top_performer=total[0],
        bottom_performer=total[-1],
        weekly_top_performer=weekly[0] if weekly else None,
    )


# ---------------------------------------------------------------------------
# Head-to-head
# ---------------------------------------------------------------------------
def leader(first: str, second: str, difference: int) -> str:
    """Name of whoever is ahead, or :data:`TIE` when *difference* is zero."""
    if difference > 0:
        return first
    if difference < 0:
        return second
    return TIE


def compare(first: PersonScoreView, second: PersonScoreView) -> ScoreComparison:
    total_diff = first.total_score - second.total_score
    weekly_diff = first.weekly_score - second.weekly_score
    return ScoreComparison(
        person1=first,
        person2=second,
        total_score_difference=total_diff,
        weekly_score_difference=weekly_diff,
        total_score_leader=leader(first.person_name, second.person_name, total_diff),
        weekly_score_leader=leader(first.person_name, second.person_name, weekly_diff),
    )
