"""
Milestone Serializers.
"""

from rest_framework import serializers

from .base import EntitySerializer, EnumField, PayloadSerializer
from .project import choice, text


class DeliverableSerializer(serializers.Serializer):
    title = serializers.CharField(allow_blank=True, trim_whitespace=False)
    completed = serializers.BooleanField(required=False, default=False)
    completed_at = serializers.DateTimeField(required=False, allow_null=True)


class MilestoneSerializer(EntitySerializer):
    """Full milestone representation."""

    project_id = serializers.UUIDField(read_only=True)
    title = serializers.CharField(read_only=True)
    description = serializers.CharField(read_only=True, allow_null=True)
    status = EnumField()
    priority = EnumField()
    start_date = serializers.DateTimeField(read_only=True)
    due_date = serializers.DateTimeField(read_only=True)
    completed_date = serializers.DateTimeField(read_only=True)
    progress = serializers.IntegerField(read_only=True)
    deliverables = DeliverableSerializer(many=True, read_only=True)
    dependencies = serializers.ListField(child=serializers.UUIDField(), read_only=True)
    order = serializers.IntegerField(read_only=True)
    assignee_id = serializers.UUIDField(read_only=True)
    color = serializers.CharField(read_only=True, allow_null=True)
    metadata = serializers.DictField(read_only=True)


class MilestoneWriteSerializer(PayloadSerializer):
    """Create and update payload for a milestone."""

    title = text()
    description = text()
    status = choice()
    priority = choice()
    start_date = serializers.DateTimeField(required=False, allow_null=True)
    due_date = serializers.DateTimeField(required=False, allow_null=True)
    progress = serializers.IntegerField(required=False)
    deliverables = DeliverableSerializer(many=True, required=False)
    dependencies = serializers.ListField(child=serializers.UUIDField(), required=False)
    order = serializers.IntegerField(required=False)
    assignee_id = serializers.UUIDField(required=False, allow_null=True)
    color = text()
    metadata = serializers.DictField(required=False)
    version = serializers.IntegerField(required=False, min_value=1)

    def payload(self):
        data = super().payload()
        data.pop('version', None)
        if 'deliverables' in data:
            data['deliverables'] = [dict(d) for d in data['deliverables']]
        return data


class MilestoneStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class MilestoneProgressSerializer(serializers.Serializer):
    progress = serializers.IntegerField()


class MilestoneBulkChangesSerializer(PayloadSerializer):
    status = choice()
    priority = choice()
    assignee_id = serializers.UUIDField(required=False, allow_null=True)


class MilestoneBulkUpdateSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)
    updates = MilestoneBulkChangesSerializer()
