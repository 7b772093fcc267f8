import pytest

from domain.project.aggregates import Project
from domain.project.entities import Milestone
from domain.project.progress import (
    milestone_progress,
    milestone_stats,
    percentage,
    project_progress,
    project_stats,
    round_half_up,
)
from domain.shared.value_objects import (
    Deliverable,
    MilestoneStatus,
    ProgressSnapshot,
    ProjectPriority,
    ProjectStatus,
)

from .helpers import NOW, days


@pytest.mark.parametrize("part, whole, expected", [
    (0, 0, 0),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),
    (5, 5, 100),
])
def test_percentage_rounds_half_up(part, whole, expected):
    assert percentage(part, whole) == expected


def test_round_half_up_is_not_bankers_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(62.5) == 63


def test_project_progress_snapshot():
    assert project_progress(2, 3) == ProgressSnapshot(2, 3, 67)
    assert project_progress(0, 0) == ProgressSnapshot.empty()


def test_milestone_progress_from_deliverables():
    deliverables = [Deliverable("a", True), Deliverable("b"), Deliverable("c")]
    assert milestone_progress(deliverables) == 33
    assert milestone_progress([]) == 0


class TestProjectStats:

    def test_empty_portfolio(self):
        assert project_stats([], NOW).as_dict()["total"] == 0

    def test_counts_and_average(self):
        portfolio = [
            Project(
                title="A", status=ProjectStatus.ACTIVE, priority=ProjectPriority.HIGH,
                category="web", due_date=days(-1),
                progress=ProgressSnapshot(1, 2, 50),
                extended_metadata={"budget": 1000},
            ),
            Project(
                title="B", status=ProjectStatus.ACTIVE, priority=ProjectPriority.LOW,
                due_date=days(3),
                progress=ProgressSnapshot(3, 4, 75),
                extended_metadata={"budget": 250.5},
            ),
            Project(
                title="C", status=ProjectStatus.COMPLETED, priority=ProjectPriority.LOW,
                category="web", due_date=days(-10),
                progress=ProgressSnapshot(2, 2, 100),
            ),
        ]

        stats = project_stats(portfolio, NOW, at_risk_days=7)

        assert stats.total == 3
        assert stats.by_status == {"active": 2, "completed": 1}
        assert stats.by_priority == {"high": 1, "low": 2}
        assert stats.by_category == {"web": 2, "uncategorized": 1}
        assert stats.overdue == 1
        assert stats.at_risk == 1
        # (50 + 75 + 100) / 3 = 75
        assert stats.average_progress == 75
        assert stats.total_budget == 1250.5


def test_milestone_stats_counts_delayed_work():
    milestones = [
        Milestone(status=MilestoneStatus.UPCOMING, due_date=days(5), progress=0),
        Milestone(status=MilestoneStatus.IN_PROGRESS, due_date=days(-2), progress=50),
        Milestone(status=MilestoneStatus.COMPLETED, due_date=days(-2), progress=100),
        Milestone(status=MilestoneStatus.CANCELLED, due_date=days(-2), progress=25),
    ]

    stats = milestone_stats(milestones, NOW)

    assert stats.as_dict() == {
        "total": 4,
        "upcoming": 1,
        "in_progress": 1,
        "completed": 1,
        "delayed": 1,
        # 175 / 4 = 43.75
        "average_progress": 44,
    }
