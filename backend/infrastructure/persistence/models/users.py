"""
User Models.

Custom user model. The identity provider turns a ``User`` into the domain
``Principal`` carried by every service call.
"""

from django.db import models
from django.contrib.auth.models import AbstractUser
from django.contrib.auth.validators import UnicodeUsernameValidator

from domain.shared.value_objects import Principal, SystemRole

from .base import enum_choices

import uuid


def default_permissions():
    return ['projects.create']


class User(AbstractUser):
    """
    Custom User model.

    Extends Django's AbstractUser with a system-wide role and explicit
    permission grants.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    username_validator = UnicodeUsernameValidator()

    username = models.CharField(
        max_length=150,
        unique=True,
        validators=[username_validator],
        verbose_name="Username"
    )
    email = models.EmailField(
        unique=True,
        verbose_name="Email"
    )

    role = models.CharField(
        max_length=20,
        choices=enum_choices(SystemRole),
        default=SystemRole.USER.value,
        verbose_name="System role"
    )
    permissions = models.JSONField(
        default=default_permissions,
        blank=True,
        verbose_name="Permission grants"
    )

    class Meta:
        db_table = 'users'
        verbose_name = "User"
        verbose_name_plural = "Users"
        ordering = ['last_name', 'first_name']

    def __str__(self):
        return self.display_name

    @property
    def display_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email or self.username

    @property
    def system_role(self) -> SystemRole:
        """Django superusers are treated as superadmins."""
        if self.is_superuser:
            return SystemRole.SUPERADMIN
        return SystemRole(self.role)

    def to_principal(self) -> Principal:
        return Principal(
            id=self.id,
            role=self.system_role,
            permissions=frozenset(self.permissions or []),
            name=self.display_name,
        )
