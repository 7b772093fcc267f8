import uuid

import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models

import infrastructure.persistence.models.users


PRIORITY_CHOICES = [
    ('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent'),
]
WORK_PRIORITY_CHOICES = PRIORITY_CHOICES + [('critical', 'Critical')]


def base_fields(prefix):
    """Columns shared by every BaseModel table."""
    return [
        ('created_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Created at')),
        ('updated_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Updated at')),
        ('deleted_at', models.DateTimeField(blank=True, db_index=True, null=True, verbose_name='Deleted at')),
        ('version', models.PositiveIntegerField(default=1, verbose_name='Version')),
        ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False, verbose_name='ID')),
        ('public_id', models.CharField(max_length=64, unique=True, verbose_name='Public ID')),
        ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name=f'{prefix}_created', to=settings.AUTH_USER_MODEL, verbose_name='Created by')),
        ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name=f'{prefix}_updated', to=settings.AUTH_USER_MODEL, verbose_name='Updated by')),
        ('deleted_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name=f'{prefix}_deleted', to=settings.AUTH_USER_MODEL, verbose_name='Deleted by')),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('username', models.CharField(max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='Username')),
                ('email', models.EmailField(max_length=254, unique=True, verbose_name='Email')),
                ('role', models.CharField(choices=[('user', 'User'), ('admin', 'Admin'), ('superadmin', 'Superadmin')], default='user', max_length=20, verbose_name='System role')),
                ('permissions', models.JSONField(blank=True, default=infrastructure.persistence.models.users.default_permissions, verbose_name='Permission grants')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'db_table': 'users',
                'ordering': ['last_name', 'first_name'],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Project',
            fields=base_fields('project') + [
                ('title', models.CharField(max_length=200, verbose_name='Title')),
                ('description', models.TextField(blank=True, null=True, verbose_name='Description')),
                ('status', models.CharField(choices=[('active', 'Active'), ('on_hold', 'On hold'), ('completed', 'Completed'), ('archived', 'Archived'), ('cancelled', 'Cancelled')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='medium', max_length=20, verbose_name='Priority')),
                ('visibility', models.CharField(choices=[('private', 'Private'), ('team', 'Team'), ('public', 'Public')], default='private', max_length=20, verbose_name='Visibility')),
                ('tags', models.JSONField(blank=True, default=list, verbose_name='Tags')),
                ('category', models.CharField(blank=True, max_length=100, null=True, verbose_name='Category')),
                ('completed_tasks', models.PositiveIntegerField(default=0, verbose_name='Completed tasks')),
                ('total_tasks', models.PositiveIntegerField(default=0, verbose_name='Total tasks')),
                ('progress_percentage', models.PositiveSmallIntegerField(default=0, verbose_name='Progress, %')),
                ('start_date', models.DateTimeField(blank=True, null=True, verbose_name='Start date')),
                ('due_date', models.DateTimeField(blank=True, null=True, verbose_name='Due date')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Completed at')),
                ('last_activity_at', models.DateTimeField(blank=True, db_index=True, null=True, verbose_name='Last activity')),
                ('settings', models.JSONField(blank=True, default=dict, verbose_name='Settings')),
                ('extended_metadata', models.JSONField(blank=True, default=dict, verbose_name='Extended metadata')),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='owned_projects', to=settings.AUTH_USER_MODEL, verbose_name='Owner')),
            ],
            options={
                'verbose_name': 'Project',
                'verbose_name_plural': 'Projects',
                'db_table': 'projects',
                'ordering': ['-last_activity_at'],
                'indexes': [models.Index(fields=['owner', 'status'], name='projects_owner_i_8f2c1d_idx')],
            },
        ),
        migrations.CreateModel(
            name='ProjectMember',
            fields=base_fields('projectmember') + [
                ('role', models.CharField(choices=[('owner', 'Owner'), ('admin', 'Admin'), ('member', 'Member'), ('viewer', 'Viewer')], default='member', max_length=20, verbose_name='Role')),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('invited', 'Invited'), ('removed', 'Removed')], default='active', max_length=20, verbose_name='Status')),
                ('settings', models.JSONField(blank=True, default=dict, verbose_name='Member settings')),
                ('joined_at', models.DateTimeField(blank=True, null=True, verbose_name='Joined at')),
                ('department', models.CharField(blank=True, max_length=100, null=True, verbose_name='Department')),
                ('job_title', models.CharField(blank=True, max_length=100, null=True, verbose_name='Job title')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='members', to='persistence.project', verbose_name='Project')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='project_memberships', to=settings.AUTH_USER_MODEL, verbose_name='User')),
                ('invited_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='project_invitations', to=settings.AUTH_USER_MODEL, verbose_name='Invited by')),
            ],
            options={
                'verbose_name': 'Project member',
                'verbose_name_plural': 'Project members',
                'db_table': 'project_members',
            },
        ),
        migrations.AddConstraint(
            model_name='projectmember',
            constraint=models.UniqueConstraint(condition=models.Q(('deleted_at__isnull', True)), fields=('project', 'user'), name='unique_live_project_member'),
        ),
        migrations.CreateModel(
            name='Milestone',
            fields=base_fields('milestone') + [
                ('title', models.CharField(max_length=200, verbose_name='Title')),
                ('description', models.TextField(blank=True, null=True, verbose_name='Description')),
                ('status', models.CharField(choices=[('upcoming', 'Upcoming'), ('in_progress', 'In progress'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='upcoming', max_length=20, verbose_name='Status')),
                ('priority', models.CharField(choices=WORK_PRIORITY_CHOICES, default='medium', max_length=20, verbose_name='Priority')),
                ('start_date', models.DateTimeField(blank=True, null=True, verbose_name='Start date')),
                ('due_date', models.DateTimeField(blank=True, db_index=True, null=True, verbose_name='Due date')),
                ('completed_date', models.DateTimeField(blank=True, null=True, verbose_name='Completed at')),
                ('progress', models.PositiveSmallIntegerField(default=0, verbose_name='Progress, %')),
                ('deliverables', models.JSONField(blank=True, default=list, verbose_name='Deliverables')),
                ('dependencies', models.JSONField(blank=True, default=list, verbose_name='Dependencies')),
                ('order', models.IntegerField(default=0, verbose_name='Order')),
                ('color', models.CharField(blank=True, max_length=20, null=True, verbose_name='Color')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='milestones', to='persistence.project', verbose_name='Project')),
                ('assignee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_milestones', to=settings.AUTH_USER_MODEL, verbose_name='Assignee')),
            ],
            options={
                'verbose_name': 'Milestone',
                'verbose_name_plural': 'Milestones',
                'db_table': 'project_milestones',
                'ordering': ['project', 'order'],
            },
        ),
        migrations.CreateModel(
            name='Task',
            fields=base_fields('task') + [
                ('title', models.CharField(max_length=200, verbose_name='Title')),
                ('description', models.TextField(blank=True, null=True, verbose_name='Description')),
                ('status', models.CharField(choices=[('todo', 'Todo'), ('in_progress', 'In progress'), ('in_review', 'In review'), ('completed', 'Completed'), ('blocked', 'Blocked'), ('cancelled', 'Cancelled')], default='todo', max_length=20, verbose_name='Status')),
                ('priority', models.CharField(choices=WORK_PRIORITY_CHOICES, default='medium', max_length=20, verbose_name='Priority')),
                ('tags', models.JSONField(blank=True, default=list, verbose_name='Tags')),
                ('start_date', models.DateTimeField(blank=True, null=True, verbose_name='Start date')),
                ('due_date', models.DateTimeField(blank=True, null=True, verbose_name='Due date')),
                ('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Completed at')),
                ('estimated_hours', models.FloatField(blank=True, null=True, verbose_name='Estimated hours')),
                ('actual_hours', models.FloatField(blank=True, null=True, verbose_name='Actual hours')),
                ('order', models.IntegerField(default=0, verbose_name='Order')),
                ('blocked_by', models.JSONField(blank=True, default=list, verbose_name='Blocked by')),
                ('depends_on', models.JSONField(blank=True, default=list, verbose_name='Depends on')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tasks', to='persistence.project', verbose_name='Project')),
                ('milestone', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='tasks', to='persistence.milestone', verbose_name='Milestone')),
                ('assignee', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_tasks', to=settings.AUTH_USER_MODEL, verbose_name='Assignee')),
            ],
            options={
                'verbose_name': 'Task',
                'verbose_name_plural': 'Tasks',
                'db_table': 'project_tasks',
                'ordering': ['project', 'status', 'order'],
                'indexes': [models.Index(fields=['project', 'status'], name='project_tas_project_4b7e2a_idx')],
            },
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('public_id', models.CharField(max_length=64, unique=True, verbose_name='Public ID')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Time')),
                ('user_name', models.CharField(blank=True, max_length=255, verbose_name='User name')),
                ('action', models.CharField(db_index=True, max_length=64, verbose_name='Action')),
                ('entity_type', models.CharField(max_length=32, verbose_name='Entity type')),
                ('entity_id', models.CharField(db_index=True, max_length=64, verbose_name='Entity ID')),
                ('entity_title', models.CharField(blank=True, max_length=500, verbose_name='Entity title')),
                ('description', models.TextField(blank=True, verbose_name='Description')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Audit log entry',
                'verbose_name_plural': 'Audit log',
                'db_table': 'audit_log',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'created_at'], name='audit_log_user_id_5c9d3e_idx'),
                    models.Index(fields=['action', 'created_at'], name='audit_log_action_7a1f4b_idx'),
                ],
            },
        ),
    ]
