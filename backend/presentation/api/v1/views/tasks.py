"""
Task Views.
"""

from uuid import UUID

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from ..serializers import (
    BulkIdsSerializer,
    TaskBulkUpdateSerializer,
    TaskOrderSerializer,
    TaskSerializer,
    TaskStatusSerializer,
    TaskWriteSerializer,
)
from .base import BaseServiceViewSet
from .project import UUID_PATTERN


class TaskViewSet(BaseServiceViewSet):
    """
    ViewSet for tasks. Creation and listing live under
    ``/projects/{id}/tasks/``.

    Endpoints:
    - GET /tasks/{id}/ - get task detail
    - PATCH /tasks/{id}/ - update task
    - DELETE /tasks/{id}/ - soft delete task
    - POST /tasks/{id}/restore/ - restore task
    - POST /tasks/{id}/status/ - move to another board column
    - POST /tasks/{id}/reorder/ - change position (and optionally column)
    - GET /tasks/{id}/history/ - audit trail
    - POST /tasks/bulk_update/ - bulk update
    - POST /tasks/bulk_delete/ - bulk soft delete
    """

    lookup_value_regex = UUID_PATTERN

    def retrieve(self, request, pk=None):
        task = self.queries.get_task(self.principal, UUID(pk))
        return Response(TaskSerializer(task).data)

    def partial_update(self, request, pk=None):
        serializer = TaskWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = self.task_service.update(
            self.principal, UUID(pk), serializer.payload(),
            expected_version=self.expected_version(request, serializer),
        )
        return Response(TaskSerializer(task).data)

    def destroy(self, request, pk=None):
        self.task_service.delete(self.principal, UUID(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def restore(self, request, pk=None):
        task = self.task_service.restore(self.principal, UUID(pk))
        return Response(TaskSerializer(task).data)

    @action(detail=True, methods=['post'], url_path='status')
    def change_status(self, request, pk=None):
        serializer = TaskStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = self.task_service.update_status(
            self.principal, UUID(pk), serializer.validated_data['status']
        )
        return Response(TaskSerializer(task).data)

    @action(detail=True, methods=['post'])
    def reorder(self, request, pk=None):
        serializer = TaskOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        task = self.task_service.update_order(
            self.principal, UUID(pk),
            serializer.validated_data['order'],
            status=serializer.validated_data.get('status'),
        )
        return Response(TaskSerializer(task).data)

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        task = self.queries.get_task(self.principal, UUID(pk))
        return self.history_response(task)

    @action(detail=False, methods=['post'])
    def bulk_update(self, request):
        serializer = TaskBulkUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.task_service.bulk_update(
            self.principal,
            serializer.validated_data['ids'],
            dict(serializer.validated_data['updates']),
        )
        return self.bulk_response(result, 'updated')

    @action(detail=False, methods=['post'])
    def bulk_delete(self, request):
        serializer = BulkIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.task_service.bulk_delete(self.principal, serializer.validated_data['ids'])
        return self.bulk_response(result, 'deleted')
