"""
Lifecycle service plumbing shared by the project, milestone and task
services: authentication, loading with the soft-delete precondition,
validation and the bulk-operation loop.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar
from uuid import UUID

from domain.project.permissions import Authorizable, PermissionEvaluator
from domain.project.repositories import Repository, Storage
from domain.project.validators import validate
from domain.shared.base_entity import AuditableEntity, utcnow
from domain.shared.exceptions import (
    DomainException,
    EntityNotFoundException,
    InvalidStateException,
    PermissionDeniedException,
    UnauthenticatedException,
    ValidationFailedException,
)
from domain.shared.identifiers import PublicIdGenerator
from domain.shared.value_objects import EntityKind, Principal

from .audit import AuditRecorder
from .progress import ProgressPropagator

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=AuditableEntity)
Clock = Callable[[], datetime]

REASON_NOT_FOUND = "Not found"
REASON_NO_PERMISSION = "No permission"


@dataclass(frozen=True)
class CreatedRef:
    """What a create operation hands back."""

    id: UUID
    public_id: str

    def as_dict(self) -> Dict[str, str]:
        return {"id": str(self.id), "public_id": self.public_id}


@dataclass(frozen=True)
class BulkFailure:
    id: Any
    reason: str

    def as_dict(self) -> Dict[str, str]:
        return {"id": str(self.id), "reason": self.reason}


@dataclass
class BulkResult:
    """Per-id outcome of a bulk operation; a failure never aborts the batch."""

    succeeded: List[Any] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)

    def as_dict(self, verb: str) -> Dict[str, Any]:
        return {
            verb: len(self.succeeded),
            "failed": len(self.failed),
            "failures": [f.as_dict() for f in self.failed],
        }


def failure_reason(exc: DomainException) -> str:
    if isinstance(exc, EntityNotFoundException):
        return REASON_NOT_FOUND
    if isinstance(exc, PermissionDeniedException):
        return REASON_NO_PERMISSION
    return exc.message


def require_principal(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise UnauthenticatedException()
    return principal


def enum_or_none(enum_cls, value):
    return None if value is None else enum_cls(value)


def strip_or_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


class LifecycleService:
    """
    Base class for the three lifecycle controllers.

    Collaborators default to what a storage provides, so a service can be
    built from a ``Storage`` alone; tests inject a fixed clock.
    """

    kind: EntityKind = EntityKind.PROJECT

    def __init__(
        self,
        storage: Storage,
        permissions: Optional[Authorizable] = None,
        audit: Optional[AuditRecorder] = None,
        propagator: Optional[ProgressPropagator] = None,
        id_generator: Optional[PublicIdGenerator] = None,
        clock: Clock = utcnow
    ):
        self.storage = storage
        self.clock = clock
        self.ids = id_generator or PublicIdGenerator()
        self.permissions = permissions or PermissionEvaluator(storage.projects, storage.members)
        self.audit = audit or AuditRecorder(storage.audit_log, self.ids, clock)
        self.propagator = propagator or ProgressPropagator(storage, clock)

    # =========================================================================
    # PIPELINE STEPS
    # =========================================================================

    def _load(self, repository: Repository[E], entity_id: UUID) -> E:
        entity = repository.get(entity_id)
        if entity is None:
            raise EntityNotFoundException(repository.entity_type, entity_id)
        return entity

    def _load_live(self, repository: Repository[E], entity_id: UUID) -> E:
        """Load and reject soft-deleted entities."""
        entity = self._load(repository, entity_id)
        if entity.is_deleted:
            raise InvalidStateException(
                f"Cannot modify deleted {repository.entity_type}",
                current_state="deleted"
            )
        return entity

    def _validate(
        self,
        payload: Mapping[str, Any],
        partial: bool = False,
        kind: Optional[EntityKind] = None
    ) -> None:
        kind = kind or self.kind
        errors = validate(kind, payload, partial=partial)
        if errors:
            logger.warning(
                "Rejected %s payload: %s", kind.value, "; ".join(e.message for e in errors)
            )
            raise ValidationFailedException(errors)

    @staticmethod
    def _with_dates(entity: Any, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """Update payload with the stored dates filled in for ordering checks."""
        payload = dict(changes)
        payload.setdefault("start_date", entity.start_date)
        payload.setdefault("due_date", entity.due_date)
        return payload

    # =========================================================================
    # BULK
    # =========================================================================

    def _run_bulk(self, ids: Iterable[Any], operation: Callable[[Any], None]) -> BulkResult:
        """
        Apply ``operation`` to each id inside its own savepoint.

        Domain failures are collected per id and the loop continues.
        """
        result = BulkResult()
        for entity_id in ids:
            try:
                with self.storage.atomic():
                    operation(entity_id)
            except DomainException as exc:
                result.failed.append(BulkFailure(entity_id, failure_reason(exc)))
            else:
                result.succeeded.append(entity_id)
        return result
