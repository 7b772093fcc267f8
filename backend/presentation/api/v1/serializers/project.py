"""
Project Serializers.

Serializers for projects, memberships, the audit trail and statistics.
"""

from rest_framework import serializers

from .base import (
    EntitySerializer,
    EnumField,
    PayloadSerializer,
)


def text(allow_null=True):
    """Optional free text; emptiness and length are checked by the services."""
    return serializers.CharField(
        required=False, allow_blank=True, allow_null=allow_null, trim_whitespace=False
    )


def choice():
    """Enumeration value; membership is checked by the services."""
    return serializers.CharField(required=False)


def tag_list():
    return serializers.ListField(
        child=serializers.CharField(allow_blank=True, trim_whitespace=False),
        required=False,
    )


# =============================================================================
# OUTPUT
# =============================================================================

class ProgressSnapshotSerializer(serializers.Serializer):
    completed_tasks = serializers.IntegerField(read_only=True)
    total_tasks = serializers.IntegerField(read_only=True)
    percentage = serializers.IntegerField(read_only=True)


class ProjectSerializer(EntitySerializer):
    """Full project representation."""

    title = serializers.CharField(read_only=True)
    description = serializers.CharField(read_only=True, allow_null=True)
    status = EnumField()
    priority = EnumField()
    visibility = EnumField()
    tags = serializers.ListField(child=serializers.CharField(), read_only=True)
    category = serializers.CharField(read_only=True, allow_null=True)
    owner_id = serializers.UUIDField(read_only=True)
    progress = ProgressSnapshotSerializer(read_only=True)
    start_date = serializers.DateTimeField(read_only=True)
    due_date = serializers.DateTimeField(read_only=True)
    completed_at = serializers.DateTimeField(read_only=True)
    settings = serializers.SerializerMethodField()
    extended_metadata = serializers.DictField(read_only=True)
    last_activity_at = serializers.DateTimeField(read_only=True)

    def get_settings(self, obj):
        return obj.settings.as_dict()


class ProjectListSerializer(serializers.Serializer):
    """Compact project for listings."""

    id = serializers.UUIDField(read_only=True)
    public_id = serializers.CharField(read_only=True)
    title = serializers.CharField(read_only=True)
    status = EnumField()
    priority = EnumField()
    visibility = EnumField()
    tags = serializers.ListField(child=serializers.CharField(), read_only=True)
    category = serializers.CharField(read_only=True, allow_null=True)
    owner_id = serializers.UUIDField(read_only=True)
    progress = ProgressSnapshotSerializer(read_only=True)
    due_date = serializers.DateTimeField(read_only=True)
    last_activity_at = serializers.DateTimeField(read_only=True)


class ProjectMemberSerializer(EntitySerializer):
    project_id = serializers.UUIDField(read_only=True)
    user_id = serializers.UUIDField(read_only=True)
    role = EnumField()
    status = EnumField()
    settings = serializers.SerializerMethodField()
    joined_at = serializers.DateTimeField(read_only=True)
    invited_by = serializers.UUIDField(read_only=True)
    department = serializers.CharField(read_only=True, allow_null=True)
    job_title = serializers.CharField(read_only=True, allow_null=True)

    def get_settings(self, obj):
        return obj.settings.as_dict()


class AuditLogEntrySerializer(serializers.Serializer):
    public_id = serializers.CharField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    user_id = serializers.UUIDField(read_only=True)
    user_name = serializers.CharField(read_only=True)
    action = serializers.CharField(read_only=True)
    entity_type = serializers.CharField(read_only=True)
    entity_id = serializers.CharField(read_only=True)
    entity_title = serializers.CharField(read_only=True)
    description = serializers.CharField(read_only=True)
    metadata = serializers.DictField(read_only=True)


# =============================================================================
# INPUT
# =============================================================================

class ProjectWriteSerializer(PayloadSerializer):
    """Create and update payload for a project."""

    title = text()
    description = text()
    status = choice()
    priority = choice()
    visibility = choice()
    tags = tag_list()
    category = text()
    start_date = serializers.DateTimeField(required=False, allow_null=True)
    due_date = serializers.DateTimeField(required=False, allow_null=True)
    settings = serializers.DictField(required=False)
    extended_metadata = serializers.DictField(required=False)
    version = serializers.IntegerField(required=False, min_value=1)

    def payload(self):
        data = super().payload()
        data.pop('version', None)
        return data


class ProjectProgressSerializer(serializers.Serializer):
    """Explicit counts, or nothing to recompute from the task set."""

    completed_tasks = serializers.IntegerField(required=False)
    total_tasks = serializers.IntegerField(required=False)


class ProjectBulkChangesSerializer(PayloadSerializer):
    status = choice()
    priority = choice()
    visibility = choice()
    tags = tag_list()


class ProjectBulkUpdateSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    updates = ProjectBulkChangesSerializer()


class MemberWriteSerializer(PayloadSerializer):
    user_id = serializers.UUIDField(required=False)
    role = choice()
    status = choice()
    settings = serializers.DictField(child=serializers.BooleanField(), required=False)
    department = text()
    job_title = text()
