"""
Initialize System Command.

Creates the superadmin account used to bootstrap a fresh installation.
"""

from django.core.management.base import BaseCommand
from django.db import transaction

from domain.shared.value_objects import SystemRole


class Command(BaseCommand):
    help = 'Initialize system with default data (superadmin user)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--admin-email',
            type=str,
            default='admin@example.com',
            help='Email for admin user'
        )
        parser.add_argument(
            '--admin-password',
            type=str,
            default='admin123',
            help='Password for admin user'
        )

    def handle(self, *args, **options):
        with transaction.atomic():
            self._create_admin_user(options['admin_email'], options['admin_password'])

        self.stdout.write(
            self.style.SUCCESS('System initialization completed!')
        )

    def _create_admin_user(self, email, password):
        from infrastructure.persistence.models import User

        user, created = User.objects.get_or_create(
            username='admin',
            defaults={
                'email': email,
                'first_name': 'System',
                'last_name': 'Administrator',
                'role': SystemRole.SUPERADMIN.value,
                'permissions': ['*'],
                'is_staff': True,
                'is_superuser': True,
            }
        )
        if created:
            user.set_password(password)
            user.save()
            self.stdout.write(f'Created admin user: {user.username}')
        else:
            self.stdout.write(f'Admin user already exists: {user.username}')
