"""
Project Domain - Aggregates.

Project is the aggregate root: milestones, tasks and memberships all
reference it and delegate their access rules to it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from domain.shared.base_entity import AuditableEntity
from domain.shared.value_objects import (
    ProgressSnapshot,
    ProjectPriority,
    ProjectSettings,
    ProjectStatus,
    ProjectVisibility,
)


@dataclass(eq=False)
class Project(AuditableEntity):
    """
    Project - the root of the work-tracking hierarchy.

    Key responsibilities:
    - Hold the derived progress snapshot (recomputed from tasks, never trusted
      from caller input)
    - Stamp/clear ``completed_at`` on status transitions
    - Carry the visibility and ownership used by the permission evaluator
    """

    title: str = ""
    description: Optional[str] = None

    status: ProjectStatus = ProjectStatus.ACTIVE
    priority: ProjectPriority = ProjectPriority.MEDIUM
    visibility: ProjectVisibility = ProjectVisibility.PRIVATE

    tags: List[str] = field(default_factory=list)
    category: Optional[str] = None

    owner_id: Optional[UUID] = None

    progress: ProgressSnapshot = field(default_factory=ProgressSnapshot.empty)

    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    settings: ProjectSettings = field(default_factory=ProjectSettings)
    extended_metadata: Dict[str, Any] = field(default_factory=dict)

    last_activity_at: Optional[datetime] = None

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def is_completed(self) -> bool:
        return self.status == ProjectStatus.COMPLETED

    @property
    def is_public(self) -> bool:
        return self.visibility == ProjectVisibility.PUBLIC

    def is_owned_by(self, user_id: Optional[UUID]) -> bool:
        return user_id is not None and self.owner_id == user_id

    def is_overdue(self, now: datetime) -> bool:
        """Past due date and not completed."""
        if self.is_completed or not self.due_date:
            return False
        return self.due_date < now

    def is_at_risk(self, now: datetime, window_days: int = 7) -> bool:
        """Due within the window and not completed."""
        if self.is_completed or not self.due_date:
            return False
        return now < self.due_date <= now + timedelta(days=window_days)

    # =========================================================================
    # STATUS TRANSITIONS
    # =========================================================================

    def status_change_patch(self, new_status: ProjectStatus, now: datetime) -> Dict[str, Any]:
        """
        Fields that change along with a status transition.

        Entering ``completed`` stamps ``completed_at``; re-saving an already
        completed project leaves it alone; any other status clears it.
        """
        patch: Dict[str, Any] = {"status": new_status}
        if new_status == ProjectStatus.COMPLETED:
            if self.status != ProjectStatus.COMPLETED:
                patch["completed_at"] = now
        else:
            patch["completed_at"] = None
        return patch

    def merged_settings(self, overrides: Optional[Dict[str, Any]]) -> ProjectSettings:
        return self.settings.merged(overrides)

    def merged_metadata(self, overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        merged = dict(self.extended_metadata or {})
        merged.update(overrides or {})
        return merged
