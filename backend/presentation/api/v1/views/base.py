"""
Base Views.

Common view mixins and base classes. Views never touch the ORM: they build
the application services over ``DjangoStorage`` and hand them the caller's
``Principal``.
"""

from django.conf import settings
from django.utils.functional import cached_property
from rest_framework import viewsets, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from application.services import (
    ListOptions,
    MilestoneService,
    ProjectQueries,
    ProjectService,
    TaskService,
)
from infrastructure.persistence.repositories import DjangoStorage

from ..serializers import AuditLogEntrySerializer


def worktrack_setting(name, default):
    return getattr(settings, 'WORKTRACK', {}).get(name, default)


class ServiceViewMixin:
    """Services and principal for the current request."""

    @cached_property
    def storage(self):
        return DjangoStorage()

    @property
    def principal(self):
        return self.request.user.to_principal()

    @cached_property
    def project_service(self):
        return ProjectService(self.storage)

    @cached_property
    def milestone_service(self):
        return MilestoneService(self.storage)

    @cached_property
    def task_service(self):
        return TaskService(self.storage)

    @cached_property
    def queries(self):
        return ProjectQueries(
            self.storage,
            at_risk_days=worktrack_setting('AT_RISK_WINDOW_DAYS', 7),
            max_limit=worktrack_setting('MAX_PAGE_SIZE', 200),
        )


class ListingMixin:
    """
    Query-string parsing for listings.

    Supports ``limit``, ``offset``, ``sort_by``, ``sort_order``, ``search``
    and any of the view's ``filter_fields`` (comma separated for several
    values).
    """

    filter_fields = ()

    def list_options(self, request, filter_fields=None):
        params = request.query_params
        filters = {}
        for name in (self.filter_fields if filter_fields is None else filter_fields):
            raw = params.get(name)
            if raw:
                values = [v for v in raw.split(',') if v]
                filters[name] = values if len(values) > 1 else values[0]
        return ListOptions(
            limit=self._int_param(params, 'limit', worktrack_setting('DEFAULT_PAGE_SIZE', 50)),
            offset=self._int_param(params, 'offset', 0),
            sort_by=params.get('sort_by'),
            sort_order=params.get('sort_order'),
            search=params.get('search'),
            filters=filters,
        )

    @staticmethod
    def _int_param(params, name, default):
        try:
            return int(params.get(name, default))
        except (TypeError, ValueError):
            return default

    @staticmethod
    def paginated(page, serializer_class, options):
        return Response({
            'count': page.total,
            'has_more': page.has_more,
            'limit': options.limit,
            'offset': options.offset,
            'results': serializer_class(page.items, many=True).data,
        })


class HistoryViewMixin:
    """
    Mixin for accessing object history from the audit trail.
    """

    def history_response(self, entity):
        entries = self.queries.history(self.principal, entity)[:50]
        return Response(AuditLogEntrySerializer(entries, many=True).data)


class BaseServiceViewSet(
    ServiceViewMixin,
    ListingMixin,
    HistoryViewMixin,
    viewsets.ViewSet
):
    """
    Base viewset with common functionality.
    """
    permission_classes = [IsAuthenticated]

    @staticmethod
    def expected_version(request, serializer):
        """Optimistic-locking token from the body ``version`` or an ``If-Match`` header."""
        version = serializer.validated_data.get('version')
        if version is None:
            header = request.headers.get('If-Match', '').strip('"')
            if header.isdigit():
                version = int(header)
        return version

    @staticmethod
    def bulk_response(result, verb):
        return Response(result.as_dict(verb), status=status.HTTP_200_OK)

    @staticmethod
    def created_response(ref):
        return Response(ref.as_dict(), status=status.HTTP_201_CREATED)
