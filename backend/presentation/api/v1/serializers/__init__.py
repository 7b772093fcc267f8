"""
Serializers Package.

All API serializers for the work-tracking system.
"""

from .base import (
    BulkIdsSerializer,
    EntitySerializer,
    EnumField,
    PayloadSerializer,
)

from .users import (
    LoginSerializer,
    UserMinimalSerializer,
    UserProfileSerializer,
)

from .project import (
    AuditLogEntrySerializer,
    MemberWriteSerializer,
    ProjectBulkUpdateSerializer,
    ProjectListSerializer,
    ProjectMemberSerializer,
    ProjectProgressSerializer,
    ProjectSerializer,
    ProjectWriteSerializer,
)

from .milestones import (
    MilestoneBulkUpdateSerializer,
    MilestoneProgressSerializer,
    MilestoneSerializer,
    MilestoneStatusSerializer,
    MilestoneWriteSerializer,
)

from .tasks import (
    TaskBulkUpdateSerializer,
    TaskOrderSerializer,
    TaskSerializer,
    TaskStatusSerializer,
    TaskWriteSerializer,
)
