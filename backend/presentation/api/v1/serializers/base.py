"""
Base Serializers.

Common serializer mixins and fields. Output serializers read domain
dataclasses attribute by attribute, exactly like model instances.
"""

from rest_framework import serializers


class EnumField(serializers.Field):
    """Renders a domain enumeration as its value."""

    def __init__(self, **kwargs):
        kwargs.setdefault('read_only', True)
        super().__init__(**kwargs)

    def to_representation(self, value):
        return getattr(value, 'value', value)


class AuditFieldsMixin(serializers.Serializer):
    """Mixin for audit fields (created_at, updated_at, etc.)"""

    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)
    created_by = serializers.UUIDField(read_only=True)
    updated_by = serializers.UUIDField(read_only=True)


class SoftDeleteFieldsMixin(serializers.Serializer):
    """Mixin for soft delete fields."""

    is_deleted = serializers.BooleanField(read_only=True)
    deleted_at = serializers.DateTimeField(read_only=True)


class VersionedFieldsMixin(serializers.Serializer):
    """Mixin for versioned fields."""

    version = serializers.IntegerField(read_only=True)


class EntitySerializer(AuditFieldsMixin, SoftDeleteFieldsMixin, VersionedFieldsMixin):
    """Identity plus the audit, soft delete and version columns."""

    id = serializers.UUIDField(read_only=True)
    public_id = serializers.CharField(read_only=True)


class PayloadSerializer(serializers.Serializer):
    """
    Input shape check only.

    Every field is optional; the lifecycle services apply the business rules
    and report them together. ``payload()`` returns the keys the client sent.
    """

    def payload(self):
        return dict(self.validated_data)


class BulkIdsSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)

