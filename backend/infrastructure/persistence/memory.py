"""
In-process implementation of the domain repositories.

Used by the test-suite and by tooling that needs the lifecycle rules without
a database. Rows are deep-copied on the way in and out so callers can never
mutate stored state, and ``atomic()`` restores a snapshot of every table when
the block raises.
"""

from contextlib import contextmanager
from copy import deepcopy
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID, uuid4

from domain.project.aggregates import Project
from domain.project.entities import Milestone, ProjectMember, Task
from domain.project.repositories import (
    AuditLogRepository,
    MilestoneRepository,
    ProjectMemberRepository,
    ProjectRepository,
    Storage,
    TaskRepository,
)
from domain.shared.audit import AuditLogEntry
from domain.shared.exceptions import ConflictException, EntityNotFoundException
from domain.shared.value_objects import TaskStatus


class InMemoryRepository:
    """Dict-backed table keyed by internal id."""

    def __init__(self):
        self.rows: Dict[UUID, Any] = {}

    def get(self, entity_id: UUID):
        row = self.rows.get(entity_id)
        return deepcopy(row) if row is not None else None

    def get_by_public_id(self, public_id: str):
        for row in self.rows.values():
            if row.public_id == public_id:
                return deepcopy(row)
        return None

    def insert(self, entity) -> UUID:
        if entity.public_id and any(r.public_id == entity.public_id for r in self.rows.values()):
            raise ValueError(f"Duplicate public id {entity.public_id}")
        entity_id = entity.id or uuid4()
        self.rows[entity_id] = deepcopy(replace(entity, id=entity_id))
        return entity_id

    def patch(self, entity_id: UUID, changes: Dict[str, Any], expected_version: Optional[int] = None) -> None:
        row = self.rows.get(entity_id)
        if row is None:
            raise EntityNotFoundException(self.entity_type, entity_id)
        if expected_version is not None and row.version != expected_version:
            raise ConflictException(self.entity_type, entity_id, expected_version)
        self.rows[entity_id] = replace(row, version=row.version + 1, **deepcopy(changes))

    def delete(self, entity_id: UUID) -> None:
        self.rows.pop(entity_id, None)

    def filter(self, predicate: Callable[[Any], bool], include_deleted: bool = False) -> list:
        return [
            deepcopy(row) for row in self.rows.values()
            if (include_deleted or not row.is_deleted) and predicate(row)
        ]

    def _live(self, predicate: Callable[[Any], bool]) -> list:
        return self.filter(predicate)


class InMemoryProjectRepository(InMemoryRepository, ProjectRepository):

    def get_by_owner(self, user_id: UUID) -> List[Project]:
        return self._live(lambda p: p.owner_id == user_id)


class InMemoryProjectMemberRepository(InMemoryRepository, ProjectMemberRepository):

    def get_by_project(self, project_id: UUID) -> List[ProjectMember]:
        return self._live(lambda m: m.project_id == project_id)

    def get_by_user(self, user_id: UUID) -> List[ProjectMember]:
        return self._live(lambda m: m.user_id == user_id)

    def get_membership(self, project_id: UUID, user_id: UUID) -> Optional[ProjectMember]:
        matches = self._live(lambda m: m.project_id == project_id and m.user_id == user_id)
        return matches[0] if matches else None


class InMemoryMilestoneRepository(InMemoryRepository, MilestoneRepository):

    def get_by_project(self, project_id: UUID, include_deleted: bool = False) -> List[Milestone]:
        return self.filter(lambda m: m.project_id == project_id, include_deleted=include_deleted)

    def get_by_assignee(self, user_id: UUID) -> List[Milestone]:
        return self._live(lambda m: m.assignee_id == user_id)


class InMemoryTaskRepository(InMemoryRepository, TaskRepository):

    def get_by_project(self, project_id: UUID, include_deleted: bool = False) -> List[Task]:
        return self.filter(lambda t: t.project_id == project_id, include_deleted=include_deleted)

    def get_by_project_and_status(self, project_id: UUID, status: TaskStatus) -> List[Task]:
        return self._live(lambda t: t.project_id == project_id and t.status == status)

    def get_by_assignee(self, user_id: UUID) -> List[Task]:
        return self._live(lambda t: t.assignee_id == user_id)


class InMemoryAuditLogRepository(AuditLogRepository):

    def __init__(self):
        self.rows: Dict[UUID, AuditLogEntry] = {}

    def append(self, entry: AuditLogEntry) -> UUID:
        entry_id = entry.id or uuid4()
        self.rows[entry_id] = replace(entry, id=entry_id)
        return entry_id

    def get_by_entity(self, entity_id: str) -> List[AuditLogEntry]:
        return [e for e in self.rows.values() if e.entity_id == entity_id]

    def all(self) -> List[AuditLogEntry]:
        return list(self.rows.values())


class InMemoryStorage(Storage):
    """
    Unit of work over dict tables.

    Nested ``atomic()`` blocks behave like savepoints: an exception rolls
    back only the innermost block before propagating.
    """

    def __init__(self):
        self.projects = InMemoryProjectRepository()
        self.members = InMemoryProjectMemberRepository()
        self.milestones = InMemoryMilestoneRepository()
        self.tasks = InMemoryTaskRepository()
        self.audit_log = InMemoryAuditLogRepository()

    def _tables(self):
        return (self.projects, self.members, self.milestones, self.tasks, self.audit_log)

    @contextmanager
    def atomic(self):
        snapshot = [dict(table.rows) for table in self._tables()]
        try:
            yield self
        except BaseException:
            for table, rows in zip(self._tables(), snapshot):
                table.rows = rows
            raise

    def lock_project(self, project_id: UUID) -> None:
        # single process, callers never interleave
        pass
