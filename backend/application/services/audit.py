"""
Audit Recorder.

Append-only writer of one immutable record per mutation. A failed write is
fatal: it is re-raised as ``AuditWriteError`` so the enclosing transaction
rolls the mutation back.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from domain.project.repositories import AuditLogRepository
from domain.shared.audit import AuditLogEntry
from domain.shared.base_entity import utcnow
from domain.shared.exceptions import AuditWriteError
from domain.shared.identifiers import PublicIdGenerator
from domain.shared.value_objects import EntityKind, Principal

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Writes ``AuditLogEntry`` records through an ``AuditLogRepository``."""

    def __init__(
        self,
        audit_log: AuditLogRepository,
        id_generator: Optional[PublicIdGenerator] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self._audit_log = audit_log
        self._ids = id_generator or PublicIdGenerator()
        self._clock = clock

    def record(
        self,
        actor: Principal,
        action: str,
        entity_type: str,
        entity_id: str,
        entity_title: str = "",
        description: str = "",
        metadata: Optional[Dict[str, Any]] = None
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=actor.id,
            user_name=actor.display_name,
            entity_title=entity_title,
            description=description,
            metadata=dict(metadata or {}),
            public_id=self._ids.generate(EntityKind.AUDIT_LOG),
            created_at=self._clock(),
        )
        try:
            self._audit_log.append(entry)
        except Exception as exc:
            logger.error("Audit write failed for %s on %s: %s", action, entity_id, exc)
            raise AuditWriteError(action, exc) from exc

        logger.debug("Audit %s %s by %s", action, entity_id, actor.id)
        return entry
