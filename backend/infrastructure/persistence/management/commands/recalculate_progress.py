"""
Recalculate Progress Command.

Rebuilds the progress snapshot of one project or of every live project.
"""

from django.core.management.base import BaseCommand, CommandError

from application.services import ProgressPropagator
from domain.shared.exceptions import EntityNotFoundException
from infrastructure.persistence.repositories import DjangoStorage


class Command(BaseCommand):
    help = 'Recalculate task-based progress for projects'

    def add_arguments(self, parser):
        parser.add_argument(
            '--project',
            type=str,
            help='Public id of a single project to recalculate'
        )

    def handle(self, *args, **options):
        storage = DjangoStorage()
        propagator = ProgressPropagator(storage)

        public_id = options.get('project')
        if not public_id:
            count = propagator.recalculate_all()
            self.stdout.write(self.style.SUCCESS(f'Recalculated {count} projects.'))
            return

        project = storage.projects.get_by_public_id(public_id)
        if project is None:
            raise CommandError(f'Project {public_id} not found')

        try:
            with storage.atomic():
                snapshot = propagator.refresh_project(project.id)
        except EntityNotFoundException as e:
            raise CommandError(str(e))

        self.stdout.write(self.style.SUCCESS(
            f'{public_id}: {snapshot.completed_tasks}/{snapshot.total_tasks} ({snapshot.percentage}%)'
        ))
