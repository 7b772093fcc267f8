"""
Milestone Views.
"""

from uuid import UUID

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from ..serializers import (
    BulkIdsSerializer,
    MilestoneBulkUpdateSerializer,
    MilestoneProgressSerializer,
    MilestoneSerializer,
    MilestoneStatusSerializer,
    MilestoneWriteSerializer,
)
from .base import BaseServiceViewSet
from .project import UUID_PATTERN


class MilestoneViewSet(BaseServiceViewSet):
    """
    ViewSet for milestones. Creation and listing live under
    ``/projects/{id}/milestones/``.

    Endpoints:
    - GET /milestones/{id}/ - get milestone detail
    - PATCH /milestones/{id}/ - update milestone
    - DELETE /milestones/{id}/ - soft delete milestone
    - POST /milestones/{id}/restore/ - restore milestone
    - POST /milestones/{id}/status/ - change status
    - POST /milestones/{id}/progress/ - set progress (100 completes)
    - GET /milestones/{id}/history/ - audit trail
    - POST /milestones/bulk_update/ - bulk update
    - POST /milestones/bulk_delete/ - bulk soft delete
    - GET /milestones/stats/?project={id} - milestone statistics
    - GET /milestones/upcoming/?days=30&limit=10 - due soon
    """

    lookup_value_regex = UUID_PATTERN

    def retrieve(self, request, pk=None):
        milestone = self.queries.get_milestone(self.principal, UUID(pk))
        return Response(MilestoneSerializer(milestone).data)

    def partial_update(self, request, pk=None):
        serializer = MilestoneWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        milestone = self.milestone_service.update(
            self.principal, UUID(pk), serializer.payload(),
            expected_version=self.expected_version(request, serializer),
        )
        return Response(MilestoneSerializer(milestone).data)

    def destroy(self, request, pk=None):
        self.milestone_service.delete(self.principal, UUID(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def restore(self, request, pk=None):
        milestone = self.milestone_service.restore(self.principal, UUID(pk))
        return Response(MilestoneSerializer(milestone).data)

    @action(detail=True, methods=['post'], url_path='status')
    def change_status(self, request, pk=None):
        serializer = MilestoneStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        milestone = self.milestone_service.update_status(
            self.principal, UUID(pk), serializer.validated_data['status']
        )
        return Response(MilestoneSerializer(milestone).data)

    @action(detail=True, methods=['post'])
    def progress(self, request, pk=None):
        serializer = MilestoneProgressSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        milestone = self.milestone_service.update_progress(
            self.principal, UUID(pk), serializer.validated_data['progress']
        )
        return Response(MilestoneSerializer(milestone).data)

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        milestone = self.queries.get_milestone(self.principal, UUID(pk))
        return self.history_response(milestone)

    @action(detail=False, methods=['post'])
    def bulk_update(self, request):
        serializer = MilestoneBulkUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.milestone_service.bulk_update(
            self.principal,
            serializer.validated_data['ids'],
            dict(serializer.validated_data['updates']),
        )
        return self.bulk_response(result, 'updated')

    @action(detail=False, methods=['post'])
    def bulk_delete(self, request):
        serializer = BulkIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.milestone_service.bulk_delete(self.principal, serializer.validated_data['ids'])
        return self.bulk_response(result, 'deleted')

    @action(detail=False, methods=['get'])
    def stats(self, request):
        project = request.query_params.get('project')
        stats = self.queries.milestone_stats(self.principal, UUID(project) if project else None)
        return Response(stats.as_dict())

    @action(detail=False, methods=['get'])
    def upcoming(self, request):
        params = request.query_params
        milestones = self.queries.upcoming_milestones(
            self.principal,
            days=self._int_param(params, 'days', 30),
            limit=self._int_param(params, 'limit', 10),
        )
        return Response(MilestoneSerializer(milestones, many=True).data)
