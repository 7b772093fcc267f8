"""
Project Views.

API views for projects, their team and the nested milestone/task
collections.
"""

from uuid import UUID

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from application.services.queries import MILESTONE_FILTERS, PROJECT_FILTERS, TASK_FILTERS

from ..serializers import (
    BulkIdsSerializer,
    MemberWriteSerializer,
    MilestoneSerializer,
    MilestoneWriteSerializer,
    ProjectBulkUpdateSerializer,
    ProjectListSerializer,
    ProjectMemberSerializer,
    ProjectProgressSerializer,
    ProjectSerializer,
    ProjectWriteSerializer,
    TaskSerializer,
    TaskWriteSerializer,
)
from .base import BaseServiceViewSet

UUID_PATTERN = '[0-9a-fA-F-]{36}'


class ProjectViewSet(BaseServiceViewSet):
    """
    ViewSet for projects.

    Endpoints:
    - GET /projects/ - list visible projects
    - POST /projects/ - create project
    - GET /projects/{id}/ - get project detail
    - PATCH /projects/{id}/ - update project
    - DELETE /projects/{id}/ - soft delete (?hard=true for admins)
    - POST /projects/{id}/archive/ - archive project
    - POST /projects/{id}/restore/ - restore soft-deleted project
    - POST /projects/{id}/progress/ - recompute or set progress
    - GET /projects/{id}/history/ - audit trail
    - GET|POST /projects/{id}/members/ - team
    - GET|POST /projects/{id}/milestones/ - milestones
    - GET|POST /projects/{id}/tasks/ - tasks
    - POST /projects/bulk_update/ - bulk update
    - POST /projects/bulk_delete/ - bulk soft delete
    - GET /projects/stats/ - portfolio statistics
    - GET /projects/mine/ - owned and collaborated projects
    """

    lookup_value_regex = UUID_PATTERN
    filter_fields = PROJECT_FILTERS

    def list(self, request):
        options = self.list_options(request)
        page = self.queries.list_projects(self.principal, options)
        return self.paginated(page, ProjectListSerializer, options)

    def create(self, request):
        serializer = ProjectWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ref = self.project_service.create(self.principal, serializer.payload())
        return self.created_response(ref)

    def retrieve(self, request, pk=None):
        project = self.queries.get_project(self.principal, UUID(pk))
        return Response(ProjectSerializer(project).data)

    def partial_update(self, request, pk=None):
        serializer = ProjectWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        project = self.project_service.update(
            self.principal, UUID(pk), serializer.payload(),
            expected_version=self.expected_version(request, serializer),
        )
        return Response(ProjectSerializer(project).data)

    def destroy(self, request, pk=None):
        hard = request.query_params.get('hard', '').lower() in ('1', 'true', 'yes')
        self.project_service.delete(self.principal, UUID(pk), hard=hard)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'])
    def archive(self, request, pk=None):
        project = self.project_service.archive(self.principal, UUID(pk))
        return Response(ProjectSerializer(project).data)

    @action(detail=True, methods=['post'])
    def restore(self, request, pk=None):
        project = self.project_service.restore(self.principal, UUID(pk))
        return Response(ProjectSerializer(project).data)

    @action(detail=True, methods=['post'])
    def progress(self, request, pk=None):
        serializer = ProjectProgressSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        snapshot = self.project_service.update_progress(
            self.principal, UUID(pk),
            completed_tasks=serializer.validated_data.get('completed_tasks'),
            total_tasks=serializer.validated_data.get('total_tasks'),
        )
        return Response(snapshot.as_dict())

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        project = self.queries.get_project(self.principal, UUID(pk))
        return self.history_response(project)

    @action(detail=True, methods=['get', 'post'])
    def members(self, request, pk=None):
        if request.method == 'POST':
            serializer = MemberWriteSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            ref = self.project_service.add_member(self.principal, UUID(pk), serializer.payload())
            return self.created_response(ref)

        members = self.queries.project_members(self.principal, UUID(pk))
        return Response(ProjectMemberSerializer(members, many=True).data)

    @action(detail=True, methods=['get', 'post'])
    def milestones(self, request, pk=None):
        if request.method == 'POST':
            serializer = MilestoneWriteSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            ref = self.milestone_service.create(self.principal, UUID(pk), serializer.payload())
            return self.created_response(ref)

        options = self.list_options(request, MILESTONE_FILTERS)
        page = self.queries.list_milestones(self.principal, UUID(pk), options)
        return self.paginated(page, MilestoneSerializer, options)

    @action(detail=True, methods=['get', 'post'])
    def tasks(self, request, pk=None):
        if request.method == 'POST':
            serializer = TaskWriteSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            ref = self.task_service.create(self.principal, UUID(pk), serializer.payload())
            return self.created_response(ref)

        options = self.list_options(request, TASK_FILTERS)
        page = self.queries.list_tasks(self.principal, UUID(pk), options)
        return self.paginated(page, TaskSerializer, options)

    @action(detail=False, methods=['post'])
    def bulk_update(self, request):
        serializer = ProjectBulkUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.project_service.bulk_update(
            self.principal,
            serializer.validated_data['ids'],
            dict(serializer.validated_data['updates']),
        )
        return self.bulk_response(result, 'updated')

    @action(detail=False, methods=['post'])
    def bulk_delete(self, request):
        serializer = BulkIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self.project_service.bulk_delete(self.principal, serializer.validated_data['ids'])
        return self.bulk_response(result, 'deleted')

    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(self.queries.project_stats(self.principal).as_dict())

    @action(detail=False, methods=['get'])
    def mine(self, request):
        include_archived = request.query_params.get('include_archived', '').lower() in ('1', 'true', 'yes')
        result = self.queries.user_projects(self.principal, include_archived=include_archived)
        return Response({
            'owned': ProjectListSerializer(result['owned'], many=True).data,
            'collaborated': ProjectListSerializer(result['collaborated'], many=True).data,
            'stats': result['stats'],
        })


class ProjectMemberViewSet(BaseServiceViewSet):
    """
    ViewSet for project memberships.

    Endpoints:
    - PATCH /members/{id}/ - change role, status, grants or job details
    - DELETE /members/{id}/ - remove member from the project
    """

    lookup_value_regex = UUID_PATTERN

    def partial_update(self, request, pk=None):
        serializer = MemberWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        member = self.project_service.update_member(self.principal, UUID(pk), serializer.payload())
        return Response(ProjectMemberSerializer(member).data)

    def destroy(self, request, pk=None):
        self.project_service.remove_member(self.principal, UUID(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)
