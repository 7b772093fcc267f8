"""
Application services: the lifecycle controllers and the read side.
"""

from .audit import AuditRecorder
from .base import BulkFailure, BulkResult, CreatedRef
from .milestones import MilestoneService
from .progress import ProgressPropagator
from .projects import ProjectService
from .queries import ListOptions, Page, ProjectQueries
from .tasks import TaskService

__all__ = [
    'AuditRecorder',
    'BulkFailure',
    'BulkResult',
    'CreatedRef',
    'ListOptions',
    'MilestoneService',
    'Page',
    'ProgressPropagator',
    'ProjectQueries',
    'ProjectService',
    'TaskService',
]
