"""
Audit ORM Models.

Append-only audit trail: one row per mutation, one per bulk operation.
"""

from django.db import models
from django.conf import settings
from django.utils import timezone

import uuid


class AuditLog(models.Model):
    """
    Audit log for all lifecycle mutations.

    Tracks who did what, when, and to which entity. Rows are never updated
    or deleted by the application.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )
    public_id = models.CharField(
        max_length=64,
        unique=True,
        verbose_name="Public ID"
    )

    # When
    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        verbose_name="Time"
    )

    # Who
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        verbose_name="User"
    )
    user_name = models.CharField(
        max_length=255,
        blank=True,
        verbose_name="User name"
    )

    # What action, e.g. ``task.status_updated``
    action = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name="Action"
    )

    # Which object (public id, or ``bulk``)
    entity_type = models.CharField(
        max_length=32,
        verbose_name="Entity type"
    )
    entity_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name="Entity ID"
    )
    entity_title = models.CharField(
        max_length=500,
        blank=True,
        verbose_name="Entity title"
    )
    description = models.TextField(
        blank=True,
        verbose_name="Description"
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Metadata"
    )

    class Meta:
        db_table = 'audit_log'
        verbose_name = 'Audit log entry'
        verbose_name_plural = 'Audit log'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='audit_log_user_id_5c9d3e_idx'),
            models.Index(fields=['action', 'created_at'], name='audit_log_action_7a1f4b_idx'),
        ]

    def __str__(self):
        return f"{self.created_at}: {self.user_name} - {self.action} {self.entity_id}"
