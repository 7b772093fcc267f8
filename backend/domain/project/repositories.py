"""
Project Domain - Repository Interfaces.

The core only needs get/insert/patch/delete plus a handful of indexed
lookups. Patches are field-scoped: only the keys passed are written.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar
from uuid import UUID

from domain.shared.audit import AuditLogEntry
from domain.shared.value_objects import TaskStatus

from .aggregates import Project
from .entities import Milestone, ProjectMember, Task


T = TypeVar("T")


class Repository(ABC, Generic[T]):
    """Common storage primitives for one entity kind."""

    entity_type: str = ""

    @abstractmethod
    def get(self, entity_id: UUID) -> Optional[T]:
        """Get entity by internal ID, including soft-deleted ones."""
        pass

    @abstractmethod
    def get_by_public_id(self, public_id: str) -> Optional[T]:
        """Get entity by public ID."""
        pass

    @abstractmethod
    def insert(self, entity: T) -> UUID:
        """Persist a new entity and return its storage-assigned ID."""
        pass

    @abstractmethod
    def patch(
        self,
        entity_id: UUID,
        changes: Dict[str, Any],
        expected_version: Optional[int] = None
    ) -> None:
        """
        Write only the given fields and bump the version.
        Raises ConflictException when ``expected_version`` does not match.
        """
        pass

    @abstractmethod
    def delete(self, entity_id: UUID) -> None:
        """Physically remove the entity."""
        pass

    @abstractmethod
    def filter(
        self,
        predicate: Callable[[T], bool],
        include_deleted: bool = False
    ) -> List[T]:
        """Scan with an arbitrary predicate."""
        pass


class ProjectRepository(Repository[Project]):
    """Repository interface for Project aggregate."""

    entity_type = "project"

    @abstractmethod
    def get_by_owner(self, user_id: UUID) -> List[Project]:
        """Get non-deleted projects owned by a user."""
        pass


class ProjectMemberRepository(Repository[ProjectMember]):
    """Repository interface for ProjectMember."""

    entity_type = "project_member"

    @abstractmethod
    def get_by_project(self, project_id: UUID) -> List[ProjectMember]:
        """Get all non-deleted memberships of a project."""
        pass

    @abstractmethod
    def get_by_user(self, user_id: UUID) -> List[ProjectMember]:
        """Get all non-deleted memberships of a user."""
        pass

    @abstractmethod
    def get_membership(self, project_id: UUID, user_id: UUID) -> Optional[ProjectMember]:
        """Get the non-deleted membership linking a user to a project."""
        pass


class MilestoneRepository(Repository[Milestone]):
    """Repository interface for Milestone."""

    entity_type = "milestone"

    @abstractmethod
    def get_by_project(self, project_id: UUID, include_deleted: bool = False) -> List[Milestone]:
        pass

    @abstractmethod
    def get_by_assignee(self, user_id: UUID) -> List[Milestone]:
        pass


class TaskRepository(Repository[Task]):
    """Repository interface for Task."""

    entity_type = "task"

    @abstractmethod
    def get_by_project(self, project_id: UUID, include_deleted: bool = False) -> List[Task]:
        pass

    @abstractmethod
    def get_by_project_and_status(self, project_id: UUID, status: TaskStatus) -> List[Task]:
        """Non-deleted tasks of one board column."""
        pass

    @abstractmethod
    def get_by_assignee(self, user_id: UUID) -> List[Task]:
        pass


class AuditLogRepository(ABC):
    """Append-only audit storage."""

    @abstractmethod
    def append(self, entry: AuditLogEntry) -> UUID:
        pass

    @abstractmethod
    def get_by_entity(self, entity_id: str) -> List[AuditLogEntry]:
        pass

    @abstractmethod
    def all(self) -> List[AuditLogEntry]:
        pass


class Storage(ABC):
    """
    Unit of work over the entity graph.

    Every mutation runs inside ``atomic()``; an exception raised inside the
    block discards all writes made in it.
    """

    projects: ProjectRepository
    members: ProjectMemberRepository
    milestones: MilestoneRepository
    tasks: TaskRepository
    audit_log: AuditLogRepository

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        pass

    @abstractmethod
    def lock_project(self, project_id: UUID) -> None:
        """
        Hold the project row until the surrounding ``atomic()`` block ends.

        Task writers and the progress recount take it before touching the
        project's tasks.
        """
        pass
