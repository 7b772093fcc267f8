"""
Task Serializers.
"""

from rest_framework import serializers

from .base import EntitySerializer, EnumField, PayloadSerializer
from .project import choice, tag_list, text


class TaskSerializer(EntitySerializer):
    """Full task representation."""

    project_id = serializers.UUIDField(read_only=True)
    milestone_id = serializers.UUIDField(read_only=True)
    title = serializers.CharField(read_only=True)
    description = serializers.CharField(read_only=True, allow_null=True)
    status = EnumField()
    priority = EnumField()
    assignee_id = serializers.UUIDField(read_only=True)
    tags = serializers.ListField(child=serializers.CharField(), read_only=True)
    start_date = serializers.DateTimeField(read_only=True)
    due_date = serializers.DateTimeField(read_only=True)
    completed_at = serializers.DateTimeField(read_only=True)
    estimated_hours = serializers.FloatField(read_only=True)
    actual_hours = serializers.FloatField(read_only=True)
    order = serializers.IntegerField(read_only=True)
    blocked_by = serializers.ListField(child=serializers.UUIDField(), read_only=True)
    depends_on = serializers.ListField(child=serializers.UUIDField(), read_only=True)
    metadata = serializers.DictField(read_only=True)


class TaskWriteSerializer(PayloadSerializer):
    """Create and update payload for a task."""

    title = text()
    description = text()
    status = choice()
    priority = choice()
    milestone_id = serializers.UUIDField(required=False, allow_null=True)
    assignee_id = serializers.UUIDField(required=False, allow_null=True)
    tags = tag_list()
    start_date = serializers.DateTimeField(required=False, allow_null=True)
    due_date = serializers.DateTimeField(required=False, allow_null=True)
    estimated_hours = serializers.FloatField(required=False, allow_null=True)
    actual_hours = serializers.FloatField(required=False, allow_null=True)
    order = serializers.IntegerField(required=False)
    blocked_by = serializers.ListField(child=serializers.UUIDField(), required=False)
    depends_on = serializers.ListField(child=serializers.UUIDField(), required=False)
    metadata = serializers.DictField(required=False)
    version = serializers.IntegerField(required=False, min_value=1)

    def payload(self):
        data = super().payload()
        data.pop('version', None)
        return data


class TaskStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class TaskOrderSerializer(serializers.Serializer):
    order = serializers.IntegerField()
    status = serializers.CharField(required=False)


class TaskBulkChangesSerializer(PayloadSerializer):
    status = choice()
    priority = choice()
    assignee_id = serializers.UUIDField(required=False, allow_null=True)


class TaskBulkUpdateSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    updates = TaskBulkChangesSerializer()
