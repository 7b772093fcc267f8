"""
Project ORM Models.

Models for projects, their memberships, milestones and tasks.
"""

from django.db import models
from django.conf import settings as django_settings
from django.db.models import Q

from domain.shared.value_objects import (
    MemberRole,
    MemberStatus,
    MilestoneStatus,
    ProjectPriority,
    ProjectStatus,
    ProjectVisibility,
    TaskStatus,
    WorkPriority,
)

from .base import BaseModel, enum_choices


class Project(BaseModel):
    """
    Project - the root of the work-tracking hierarchy.

    The progress snapshot is stored as three columns and rewritten by the
    progress propagator after every task mutation.
    """

    title = models.CharField(
        max_length=200,
        verbose_name="Title"
    )
    description = models.TextField(
        null=True,
        blank=True,
        verbose_name="Description"
    )

    status = models.CharField(
        max_length=20,
        choices=enum_choices(ProjectStatus),
        default=ProjectStatus.ACTIVE.value,
        db_index=True,
        verbose_name="Status"
    )
    priority = models.CharField(
        max_length=20,
        choices=enum_choices(ProjectPriority),
        default=ProjectPriority.MEDIUM.value,
        verbose_name="Priority"
    )
    visibility = models.CharField(
        max_length=20,
        choices=enum_choices(ProjectVisibility),
        default=ProjectVisibility.PRIVATE.value,
        verbose_name="Visibility"
    )

    tags = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Tags"
    )
    category = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        verbose_name="Category"
    )

    owner = models.ForeignKey(
        django_settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='owned_projects',
        verbose_name="Owner"
    )

    # Progress snapshot
    completed_tasks = models.PositiveIntegerField(
        default=0,
        verbose_name="Completed tasks"
    )
    total_tasks = models.PositiveIntegerField(
        default=0,
        verbose_name="Total tasks"
    )
    progress_percentage = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Progress, %"
    )

    # Dates
    start_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Start date"
    )
    due_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Due date"
    )
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Completed at"
    )
    last_activity_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name="Last activity"
    )

    settings = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Settings"
    )
    extended_metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Extended metadata"
    )

    class Meta:
        db_table = 'projects'
        verbose_name = "Project"
        verbose_name_plural = "Projects"
        ordering = ['-last_activity_at']
        indexes = [
            models.Index(fields=['owner', 'status'], name='projects_owner_i_8f2c1d_idx'),
        ]

    def __str__(self):
        return self.title


class ProjectMember(BaseModel):
    """Link between a user and a project."""

    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='members',
        verbose_name="Project"
    )
    user = models.ForeignKey(
        django_settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='project_memberships',
        verbose_name="User"
    )
    role = models.CharField(
        max_length=20,
        choices=enum_choices(MemberRole),
        default=MemberRole.MEMBER.value,
        verbose_name="Role"
    )
    status = models.CharField(
        max_length=20,
        choices=enum_choices(MemberStatus),
        default=MemberStatus.ACTIVE.value,
        verbose_name="Status"
    )
    settings = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Member settings"
    )
    joined_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Joined at"
    )
    invited_by = models.ForeignKey(
        django_settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='project_invitations',
        verbose_name="Invited by"
    )
    department = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        verbose_name="Department"
    )
    job_title = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        verbose_name="Job title"
    )

    class Meta:
        db_table = 'project_members'
        verbose_name = "Project member"
        verbose_name_plural = "Project members"
        constraints = [
            models.UniqueConstraint(
                fields=['project', 'user'],
                condition=Q(deleted_at__isnull=True),
                name='unique_live_project_member',
            ),
        ]

    def __str__(self):
        return f"{self.user_id} @ {self.project_id} ({self.role})"


class Milestone(BaseModel):
    """A dated checkpoint of a project with a deliverables checklist."""

    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='milestones',
        verbose_name="Project"
    )
    title = models.CharField(
        max_length=200,
        verbose_name="Title"
    )
    description = models.TextField(
        null=True,
        blank=True,
        verbose_name="Description"
    )
    status = models.CharField(
        max_length=20,
        choices=enum_choices(MilestoneStatus),
        default=MilestoneStatus.UPCOMING.value,
        db_index=True,
        verbose_name="Status"
    )
    priority = models.CharField(
        max_length=20,
        choices=enum_choices(WorkPriority),
        default=WorkPriority.MEDIUM.value,
        verbose_name="Priority"
    )
    start_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Start date"
    )
    due_date = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name="Due date"
    )
    completed_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Completed at"
    )
    progress = models.PositiveSmallIntegerField(
        default=0,
        verbose_name="Progress, %"
    )
    deliverables = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Deliverables"
    )
    dependencies = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Dependencies"
    )
    order = models.IntegerField(
        default=0,
        verbose_name="Order"
    )
    assignee = models.ForeignKey(
        django_settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_milestones',
        verbose_name="Assignee"
    )
    color = models.CharField(
        max_length=20,
        null=True,
        blank=True,
        verbose_name="Color"
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Metadata"
    )

    class Meta:
        db_table = 'project_milestones'
        verbose_name = "Milestone"
        verbose_name_plural = "Milestones"
        ordering = ['project', 'order']

    def __str__(self):
        return self.title


class Task(BaseModel):
    """A unit of work on the project board."""

    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='tasks',
        verbose_name="Project"
    )
    milestone = models.ForeignKey(
        Milestone,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tasks',
        verbose_name="Milestone"
    )
    title = models.CharField(
        max_length=200,
        verbose_name="Title"
    )
    description = models.TextField(
        null=True,
        blank=True,
        verbose_name="Description"
    )
    status = models.CharField(
        max_length=20,
        choices=enum_choices(TaskStatus),
        default=TaskStatus.TODO.value,
        verbose_name="Status"
    )
    priority = models.CharField(
        max_length=20,
        choices=enum_choices(WorkPriority),
        default=WorkPriority.MEDIUM.value,
        verbose_name="Priority"
    )
    assignee = models.ForeignKey(
        django_settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_tasks',
        verbose_name="Assignee"
    )
    tags = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Tags"
    )
    start_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Start date"
    )
    due_date = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Due date"
    )
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Completed at"
    )
    estimated_hours = models.FloatField(
        null=True,
        blank=True,
        verbose_name="Estimated hours"
    )
    actual_hours = models.FloatField(
        null=True,
        blank=True,
        verbose_name="Actual hours"
    )
    order = models.IntegerField(
        default=0,
        verbose_name="Order"
    )
    blocked_by = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Blocked by"
    )
    depends_on = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Depends on"
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name="Metadata"
    )

    class Meta:
        db_table = 'project_tasks'
        verbose_name = "Task"
        verbose_name_plural = "Tasks"
        ordering = ['project', 'status', 'order']
        indexes = [
            models.Index(fields=['project', 'status'], name='project_tas_project_4b7e2a_idx'),
        ]

    def __str__(self):
        return self.title
