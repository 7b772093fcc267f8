"""
Project Domain - Progress Calculator.

Pure functions deriving completion percentages and read-side statistics.
All rounding is half-up (``2.5 -> 3``), never banker's rounding.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Sequence

from domain.shared.value_objects import (
    Deliverable,
    MilestoneStatus,
    ProgressSnapshot,
    ProjectStatus,
)

from .aggregates import Project
from .entities import Milestone


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percentage(part: int, whole: int) -> int:
    """``round(part / whole * 100)`` with half-up rounding; 0 for an empty whole."""
    if whole <= 0:
        return 0
    return int((Decimal(part) * 100 / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def milestone_progress(deliverables: Sequence[Deliverable]) -> int:
    completed = sum(1 for d in deliverables if d.completed)
    return percentage(completed, len(deliverables))


def project_progress(completed_tasks: int, total_tasks: int) -> ProgressSnapshot:
    return ProgressSnapshot(
        completed_tasks=completed_tasks,
        total_tasks=total_tasks,
        percentage=percentage(completed_tasks, total_tasks),
    )


# =============================================================================
# STATISTICS
# =============================================================================

@dataclass(frozen=True)
class ProjectStats:
    total: int = 0
    by_status: Dict[str, int] = field(default_factory=dict)
    by_priority: Dict[str, int] = field(default_factory=dict)
    by_category: Dict[str, int] = field(default_factory=dict)
    overdue: int = 0
    at_risk: int = 0
    average_progress: int = 0
    total_budget: float = 0

    def as_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            "by_status": dict(self.by_status),
            "by_priority": dict(self.by_priority),
            "by_category": dict(self.by_category),
            "overdue": self.overdue,
            "at_risk": self.at_risk,
            "average_progress": self.average_progress,
            "total_budget": self.total_budget,
        }


@dataclass(frozen=True)
class MilestoneStats:
    total: int = 0
    upcoming: int = 0
    in_progress: int = 0
    completed: int = 0
    delayed: int = 0
    average_progress: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "upcoming": self.upcoming,
            "in_progress": self.in_progress,
            "completed": self.completed,
            "delayed": self.delayed,
            "average_progress": self.average_progress,
        }


def project_stats(projects: Iterable[Project], now: datetime, at_risk_days: int = 7) -> ProjectStats:
    """
    Portfolio summary over already access-filtered, non-deleted projects.

    ``at_risk`` counts projects due within ``at_risk_days`` that are not
    completed; ``overdue`` counts those already past due.
    """
    projects = list(projects)
    if not projects:
        return ProjectStats()

    by_status = Counter(ProjectStatus(p.status).value for p in projects)
    by_priority = Counter(p.priority.value for p in projects)
    by_category = Counter(p.category or "uncategorized" for p in projects)

    total_budget = 0.0
    for p in projects:
        budget = (p.extended_metadata or {}).get("budget")
        if isinstance(budget, (int, float)) and not isinstance(budget, bool):
            total_budget += budget

    return ProjectStats(
        total=len(projects),
        by_status=dict(by_status),
        by_priority=dict(by_priority),
        by_category=dict(by_category),
        overdue=sum(1 for p in projects if p.is_overdue(now)),
        at_risk=sum(1 for p in projects if p.is_at_risk(now, at_risk_days)),
        average_progress=round_half_up(
            sum(p.progress.percentage for p in projects) / len(projects)
        ),
        total_budget=total_budget,
    )


def milestone_stats(milestones: Iterable[Milestone], now: datetime) -> MilestoneStats:
    """``delayed`` means past due and neither completed nor cancelled."""
    milestones = list(milestones)
    if not milestones:
        return MilestoneStats()

    statuses = Counter(m.status for m in milestones)
    return MilestoneStats(
        total=len(milestones),
        upcoming=statuses[MilestoneStatus.UPCOMING],
        in_progress=statuses[MilestoneStatus.IN_PROGRESS],
        completed=statuses[MilestoneStatus.COMPLETED],
        delayed=sum(1 for m in milestones if m.is_overdue(now)),
        average_progress=round_half_up(
            sum(m.progress for m in milestones) / len(milestones)
        ),
    )
