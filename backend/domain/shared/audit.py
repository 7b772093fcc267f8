"""
Audit trail record.

Audit entries are immutable and append-only: the core never updates or
deletes them.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from .base_entity import utcnow


@dataclass(frozen=True)
class AuditLogEntry:
    """One record per mutation (or one per bulk operation)."""

    action: str
    entity_type: str
    entity_id: str
    user_id: Optional[UUID] = None
    user_name: str = ""
    entity_title: str = ""
    description: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    public_id: str = ""
    created_at: datetime = field(default_factory=utcnow)
    id: Optional[UUID] = None
