"""
Base Entity class for all domain entities.

Entities have identity and lifecycle.
Two entities are equal if they have the same ID.
"""

from __future__ import annotations
from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


@dataclass(eq=False)
class Entity(ABC):
    """
    Base class for all domain entities.

    The internal ``id`` is assigned by storage on insert; ``public_id`` is the
    stable, externally shareable identifier generated once at creation.
    """

    id: Optional[UUID] = None
    public_id: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Entity) or self.id is None:
            return False
        return type(self) is type(other) and self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.id))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={self.id} public_id={self.public_id!r}>"


@dataclass(eq=False)
class VersionedEntity(Entity):
    """
    Entity with optimistic locking support.
    Storage bumps ``version`` on every patch.
    """

    version: int = 1


@dataclass(eq=False)
class AuditableEntity(VersionedEntity):
    """
    Entity with full audit trail support.
    Tracks who created and modified the entity, and soft deletion.
    """

    created_by: Optional[UUID] = None
    updated_by: Optional[UUID] = None
    deleted_at: Optional[datetime] = None
    deleted_by: Optional[UUID] = None

    @property
    def is_deleted(self) -> bool:
        """Check if entity is soft-deleted."""
        return self.deleted_at is not None

    def touch_patch(self, user_id: Optional[UUID], now: datetime) -> Dict[str, Any]:
        """Audit fields every update carries."""
        return {"updated_at": now, "updated_by": user_id}

    def soft_delete_patch(self, user_id: UUID, now: datetime) -> Dict[str, Any]:
        """
        Patch that marks the entity deleted without removing it.
        Only the marker pair changes, so a later restore is an exact undo.
        """
        return {"deleted_at": now, "deleted_by": user_id}

    def restore_patch(self) -> Dict[str, Any]:
        """Patch that clears the soft-delete marker."""
        return {"deleted_at": None, "deleted_by": None}
