"""
Persistence Models Package.

All Django ORM models for the work-tracking system.
"""

# Base mixins and managers
from .base import (
    TimeStampedMixin,
    SoftDeleteMixin,
    VersionedMixin,
    AuditMixin,
    ActiveManager,
    BaseModel,
)

# User models
from .users import User

# Project models
from .project import (
    Project,
    ProjectMember,
    Milestone,
    Task,
)

# Audit models
from .audit import AuditLog


__all__ = [
    # Base
    'TimeStampedMixin',
    'SoftDeleteMixin',
    'VersionedMixin',
    'AuditMixin',
    'ActiveManager',
    'BaseModel',
    # Users
    'User',
    # Project
    'Project',
    'ProjectMember',
    'Milestone',
    'Task',
    # Audit
    'AuditLog',
]
