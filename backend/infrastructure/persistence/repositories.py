"""
Django ORM implementation of the domain repositories.

Patches are field-scoped ``QuerySet.update`` calls that bump ``version``
with an ``F()`` expression, so two writers touching different fields of the
same row do not overwrite each other.
"""

from dataclasses import fields
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID
import logging

from django.db import transaction
from django.db.models import F

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
from domain.shared.value_objects import (
    Deliverable,
    MemberRole,
    MemberSettings,
    MemberStatus,
    MilestoneStatus,
    ProgressSnapshot,
    ProjectPriority,
    ProjectSettings,
    ProjectStatus,
    ProjectVisibility,
    TaskStatus,
    WorkPriority,
)

from . import models

logger = logging.getLogger(__name__)


# Domain reference fields whose column is a foreign key attname
USER_REFERENCES = ('created_by', 'updated_by', 'deleted_by', 'invited_by')
UUID_LIST_FIELDS = ('dependencies', 'blocked_by', 'depends_on')


def _uuid_list(values) -> List[UUID]:
    return [v if isinstance(v, UUID) else UUID(str(v)) for v in values or []]


class DjangoRepository:
    """
    Shared get/insert/patch/delete/filter over one Django model.

    Subclasses set ``model`` and implement ``to_domain``; ``encode`` turns a
    domain field into column values.
    """

    model = None

    def to_domain(self, obj):
        raise NotImplementedError

    def encode(self, name: str, value: Any) -> Dict[str, Any]:
        if name in USER_REFERENCES:
            return {f"{name}_id": value}
        if name in UUID_LIST_FIELDS:
            return {name: [str(v) for v in value or []]}
        if hasattr(value, 'value') and isinstance(value.value, str):
            return {name: value.value}
        return {name: value}

    def to_columns(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        columns: Dict[str, Any] = {}
        for name, value in changes.items():
            columns.update(self.encode(name, value))
        return columns

    # -- Repository -----------------------------------------------------------

    def get(self, entity_id: UUID):
        obj = self.model.objects.filter(pk=entity_id).first()
        return self.to_domain(obj) if obj else None

    def get_by_public_id(self, public_id: str):
        obj = self.model.objects.filter(public_id=public_id).first()
        return self.to_domain(obj) if obj else None

    def insert(self, entity) -> UUID:
        values = {f.name: getattr(entity, f.name) for f in fields(entity)}
        if values.get('id') is None:
            values.pop('id')
        obj = self.model.objects.create(**self.to_columns(values))
        return obj.pk

    def patch(self, entity_id: UUID, changes: Dict[str, Any], expected_version: Optional[int] = None) -> None:
        queryset = self.model.objects.filter(pk=entity_id)
        if expected_version is not None:
            queryset = queryset.filter(version=expected_version)

        updated = queryset.update(version=F('version') + 1, **self.to_columns(changes))
        if updated:
            return
        if expected_version is not None and self.model.objects.filter(pk=entity_id).exists():
            logger.warning(f"Version conflict on {self.entity_type} {entity_id}")
            raise ConflictException(self.entity_type, entity_id, expected_version)
        raise EntityNotFoundException(self.entity_type, entity_id)

    def delete(self, entity_id: UUID) -> None:
        self.model.objects.filter(pk=entity_id).delete()

    def filter(self, predicate: Callable[[Any], bool], include_deleted: bool = False) -> list:
        manager = self.model.objects if include_deleted else self.model.active_objects
        return [e for e in map(self.to_domain, manager.all()) if predicate(e)]

    def _live(self, **lookup) -> list:
        return [self.to_domain(obj) for obj in self.model.active_objects.filter(**lookup)]


def _audit_fields(obj) -> Dict[str, Any]:
    return {
        'id': obj.id,
        'public_id': obj.public_id,
        'created_at': obj.created_at,
        'updated_at': obj.updated_at,
        'version': obj.version,
        'created_by': obj.created_by_id,
        'updated_by': obj.updated_by_id,
        'deleted_at': obj.deleted_at,
        'deleted_by': obj.deleted_by_id,
    }


# =============================================================================
# PROJECTS
# =============================================================================

class DjangoProjectRepository(DjangoRepository, ProjectRepository):
    model = models.Project

    def encode(self, name: str, value: Any) -> Dict[str, Any]:
        if name == 'progress':
            return {
                'completed_tasks': value.completed_tasks,
                'total_tasks': value.total_tasks,
                'progress_percentage': value.percentage,
            }
        if name == 'settings':
            return {'settings': value.as_dict()}
        return super().encode(name, value)

    def to_domain(self, obj) -> Project:
        return Project(
            **_audit_fields(obj),
            title=obj.title,
            description=obj.description,
            status=ProjectStatus(obj.status),
            priority=ProjectPriority(obj.priority),
            visibility=ProjectVisibility(obj.visibility),
            tags=list(obj.tags or []),
            category=obj.category,
            owner_id=obj.owner_id,
            progress=ProgressSnapshot(obj.completed_tasks, obj.total_tasks, obj.progress_percentage),
            start_date=obj.start_date,
            due_date=obj.due_date,
            completed_at=obj.completed_at,
            settings=ProjectSettings().merged(obj.settings),
            extended_metadata=dict(obj.extended_metadata or {}),
            last_activity_at=obj.last_activity_at,
        )

    def get_by_owner(self, user_id: UUID) -> List[Project]:
        return self._live(owner_id=user_id)


class DjangoProjectMemberRepository(DjangoRepository, ProjectMemberRepository):
    model = models.ProjectMember

    def encode(self, name: str, value: Any) -> Dict[str, Any]:
        if name == 'settings':
            return {'settings': value.as_dict()}
        return super().encode(name, value)

    def to_domain(self, obj) -> ProjectMember:
        return ProjectMember(
            **_audit_fields(obj),
            project_id=obj.project_id,
            user_id=obj.user_id,
            role=MemberRole(obj.role),
            status=MemberStatus(obj.status),
            settings=MemberSettings().merged(obj.settings),
            joined_at=obj.joined_at,
            invited_by=obj.invited_by_id,
            department=obj.department,
            job_title=obj.job_title,
        )

    def get_by_project(self, project_id: UUID) -> List[ProjectMember]:
        return self._live(project_id=project_id)

    def get_by_user(self, user_id: UUID) -> List[ProjectMember]:
        return self._live(user_id=user_id)

    def get_membership(self, project_id: UUID, user_id: UUID) -> Optional[ProjectMember]:
        obj = self.model.active_objects.filter(project_id=project_id, user_id=user_id).first()
        return self.to_domain(obj) if obj else None


class DjangoMilestoneRepository(DjangoRepository, MilestoneRepository):
    model = models.Milestone

    def encode(self, name: str, value: Any) -> Dict[str, Any]:
        if name == 'deliverables':
            return {'deliverables': [d.as_dict() for d in value or []]}
        return super().encode(name, value)

    def to_domain(self, obj) -> Milestone:
        return Milestone(
            **_audit_fields(obj),
            project_id=obj.project_id,
            title=obj.title,
            description=obj.description,
            status=MilestoneStatus(obj.status),
            priority=WorkPriority(obj.priority),
            start_date=obj.start_date,
            due_date=obj.due_date,
            completed_date=obj.completed_date,
            progress=obj.progress,
            deliverables=[Deliverable.from_value(d) for d in obj.deliverables or []],
            dependencies=_uuid_list(obj.dependencies),
            order=obj.order,
            assignee_id=obj.assignee_id,
            color=obj.color,
            metadata=dict(obj.metadata or {}),
        )

    def get_by_project(self, project_id: UUID, include_deleted: bool = False) -> List[Milestone]:
        manager = self.model.objects if include_deleted else self.model.active_objects
        return [self.to_domain(obj) for obj in manager.filter(project_id=project_id)]

    def get_by_assignee(self, user_id: UUID) -> List[Milestone]:
        return self._live(assignee_id=user_id)


class DjangoTaskRepository(DjangoRepository, TaskRepository):
    model = models.Task

    def to_domain(self, obj) -> Task:
        return Task(
            **_audit_fields(obj),
            project_id=obj.project_id,
            milestone_id=obj.milestone_id,
            title=obj.title,
            description=obj.description,
            status=TaskStatus(obj.status),
            priority=WorkPriority(obj.priority),
            assignee_id=obj.assignee_id,
            tags=list(obj.tags or []),
            start_date=obj.start_date,
            due_date=obj.due_date,
            completed_at=obj.completed_at,
            estimated_hours=obj.estimated_hours,
            actual_hours=obj.actual_hours,
            order=obj.order,
            blocked_by=_uuid_list(obj.blocked_by),
            depends_on=_uuid_list(obj.depends_on),
            metadata=dict(obj.metadata or {}),
        )

    def get_by_project(self, project_id: UUID, include_deleted: bool = False) -> List[Task]:
        manager = self.model.objects if include_deleted else self.model.active_objects
        return [self.to_domain(obj) for obj in manager.filter(project_id=project_id)]

    def get_by_project_and_status(self, project_id: UUID, status: TaskStatus) -> List[Task]:
        return self._live(project_id=project_id, status=TaskStatus(status).value)

    def get_by_assignee(self, user_id: UUID) -> List[Task]:
        return self._live(assignee_id=user_id)


# =============================================================================
# AUDIT
# =============================================================================

class DjangoAuditLogRepository(AuditLogRepository):

    def _to_domain(self, obj) -> AuditLogEntry:
        return AuditLogEntry(
            id=obj.id,
            public_id=obj.public_id,
            action=obj.action,
            entity_type=obj.entity_type,
            entity_id=obj.entity_id,
            user_id=obj.user_id,
            user_name=obj.user_name,
            entity_title=obj.entity_title,
            description=obj.description,
            metadata=dict(obj.metadata or {}),
            created_at=obj.created_at,
        )

    def append(self, entry: AuditLogEntry) -> UUID:
        obj = models.AuditLog.objects.create(
            public_id=entry.public_id,
            created_at=entry.created_at,
            user_id=entry.user_id,
            user_name=entry.user_name,
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            entity_title=entry.entity_title,
            description=entry.description,
            metadata=entry.metadata,
        )
        return obj.pk

    def get_by_entity(self, entity_id: str) -> List[AuditLogEntry]:
        return [self._to_domain(obj) for obj in models.AuditLog.objects.filter(entity_id=entity_id)]

    def all(self) -> List[AuditLogEntry]:
        return [self._to_domain(obj) for obj in models.AuditLog.objects.all()]


class DjangoStorage(Storage):
    """Unit of work backed by the default database."""

    def __init__(self):
        self.projects = DjangoProjectRepository()
        self.members = DjangoProjectMemberRepository()
        self.milestones = DjangoMilestoneRepository()
        self.tasks = DjangoTaskRepository()
        self.audit_log = DjangoAuditLogRepository()

    def atomic(self):
        return transaction.atomic()

    def lock_project(self, project_id):
        list(
            models.Project.objects.select_for_update()
            .filter(pk=project_id)
            .values_list('pk', flat=True)
        )
