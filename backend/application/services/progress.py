"""
Aggregation Propagator.

Keeps derived progress consistent with the child records. Lifecycle
services call it inline, inside the transaction of the mutation that made the
snapshot stale.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Callable, Optional
from uuid import UUID

from domain.project.entities import Milestone
from domain.project.progress import milestone_progress, project_progress
from domain.project.repositories import Storage
from domain.shared.base_entity import utcnow
from domain.shared.exceptions import EntityNotFoundException
from domain.shared.value_objects import MilestoneStatus, ProgressSnapshot, TaskStatus

logger = logging.getLogger(__name__)


class ProgressPropagator:
    """Recomputes and persists progress snapshots."""

    def __init__(self, storage: Storage, clock: Callable[[], datetime] = utcnow):
        self._storage = storage
        self._clock = clock

    def refresh_project(self, project_id: UUID, now: Optional[datetime] = None) -> ProgressSnapshot:
        """Count non-deleted tasks of the project and store the new snapshot."""
        self._storage.lock_project(project_id)
        if self._storage.projects.get(project_id) is None:
            raise EntityNotFoundException("project", project_id)

        tasks = self._storage.tasks.get_by_project(project_id)
        completed = sum(1 for t in tasks if t.status == TaskStatus.COMPLETED)
        snapshot = project_progress(completed, len(tasks))

        now = now or self._clock()
        self._storage.projects.patch(project_id, {
            "progress": snapshot,
            "last_activity_at": now,
            "updated_at": now,
        })
        logger.debug(
            "Project %s progress %s/%s (%s%%)",
            project_id, snapshot.completed_tasks, snapshot.total_tasks, snapshot.percentage
        )
        return snapshot

    def refresh_milestone(self, milestone: Milestone) -> Optional[int]:
        """
        Re-derive a milestone's progress from its deliverables.

        Milestones without deliverables carry manually set progress and
        completed ones stay at 100; both are left alone.
        """
        if not milestone.deliverables or milestone.status == MilestoneStatus.COMPLETED:
            return None
        progress = milestone_progress(milestone.deliverables)
        if progress != milestone.progress:
            self._storage.milestones.patch(milestone.id, {"progress": progress})
        return progress

    def recalculate_all(self) -> int:
        """
        Consistency sweep over every non-deleted project and its milestones.
        Each project is refreshed in its own transaction.
        """
        count = 0
        projects = self._storage.projects.filter(lambda p: True)
        for project in projects:
            with self._storage.atomic():
                self.refresh_project(project.id)
                for milestone in self._storage.milestones.get_by_project(project.id):
                    self.refresh_milestone(milestone)
            count += 1
        logger.info("Recalculated progress for %s projects", count)
        return count
