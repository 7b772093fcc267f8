"""
Base ORM Models and Mixins.

Provides common functionality for all models:
- UUID primary keys and public identifiers
- Timestamps (created_at, updated_at)
- Soft delete
- Version control
- Audit tracking

Timestamps default to ``timezone.now`` instead of ``auto_now`` because the
application layer supplies them from its own clock on every write.
"""

import uuid
from django.db import models
from django.conf import settings
from django.utils import timezone


def enum_choices(enum_cls):
    """Django choices from a domain enumeration."""
    return [(member.value, member.value.replace('_', ' ').capitalize()) for member in enum_cls]


class TimeStampedMixin(models.Model):
    """Mixin for created_at and updated_at timestamps."""

    created_at = models.DateTimeField(
        default=timezone.now,
        verbose_name="Created at"
    )
    updated_at = models.DateTimeField(
        default=timezone.now,
        verbose_name="Updated at"
    )

    class Meta:
        abstract = True


class SoftDeleteMixin(models.Model):
    """Mixin for soft delete functionality."""

    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name="Deleted at"
    )
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="%(class)s_deleted",
        verbose_name="Deleted by"
    )

    class Meta:
        abstract = True

    @property
    def is_deleted(self):
        return self.deleted_at is not None


class VersionedMixin(models.Model):
    """
    Mixin for optimistic locking with version control.
    Repositories bump the version with an F() expression on every patch.
    """

    version = models.PositiveIntegerField(
        default=1,
        verbose_name="Version"
    )

    class Meta:
        abstract = True


class AuditMixin(models.Model):
    """Mixin for tracking who created/modified records."""

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="%(class)s_created",
        verbose_name="Created by"
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="%(class)s_updated",
        verbose_name="Updated by"
    )

    class Meta:
        abstract = True


# =============================================================================
# MANAGER FOR SOFT DELETE
# =============================================================================

class ActiveManager(models.Manager):
    """Manager that excludes soft-deleted records by default."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class BaseModel(TimeStampedMixin, SoftDeleteMixin, VersionedMixin, AuditMixin):
    """
    Base model with all common functionality.

    Includes:
    - UUID primary key
    - Public identifier (stable, externally shareable)
    - Timestamps (created_at, updated_at)
    - Soft delete (deleted_at, deleted_by)
    - Version control (version)
    - Audit (created_by, updated_by)
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        verbose_name="ID"
    )
    public_id = models.CharField(
        max_length=64,
        unique=True,
        verbose_name="Public ID"
    )

    objects = models.Manager()
    active_objects = ActiveManager()

    class Meta:
        abstract = True

    def __str__(self):
        return self.public_id or str(self.id)
