"""
Project Tasks.

Celery tasks for project maintenance. Request handling never waits on these:
task mutations refresh the project snapshot inline, and the sweep here only
repairs drift (e.g. after direct database edits).
"""

from celery import shared_task
import logging
from uuid import UUID

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def recalculate_project_progress(self, project_id: str):
    """
    Recalculate the progress snapshot of a single project.
    """
    from application.services.progress import ProgressPropagator
    from domain.shared.exceptions import EntityNotFoundException
    from infrastructure.persistence.repositories import DjangoStorage

    storage = DjangoStorage()
    try:
        with storage.atomic():
            snapshot = ProgressPropagator(storage).refresh_project(UUID(project_id))
    except EntityNotFoundException:
        logger.error(f"Project {project_id} not found")
        return {'error': 'Project not found'}
    except Exception as e:
        logger.error(f"Error recalculating project {project_id}: {e}")
        raise self.retry(exc=e, countdown=60)

    logger.info(f"Recalculated project {project_id}: {snapshot.percentage}%")
    return {'project_id': project_id, **snapshot.as_dict()}


@shared_task
def recalculate_all_projects():
    """Schedule a recalculation for every non-deleted project."""
    from infrastructure.persistence.models import Project

    project_ids = [
        str(pk) for pk in Project.objects.filter(deleted_at__isnull=True).values_list('id', flat=True)
    ]
    for project_id in project_ids:
        recalculate_project_progress.delay(project_id)

    return {'scheduled': len(project_ids), 'project_ids': project_ids}
