"""
User, Role and UserRole.

Roles drive every authorization decision in the system: which statuses a
caller may request, which approval steps they may act on, and which API
endpoints they may reach. Assignments are effective-dated so a revoked role
keeps its history.
"""

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone

from radiopharm.core.models import BaseModel
from radiopharm.core.querysets import EffectiveDatedQuerySet

from .mixins import RoleUserMixin


class User(RoleUserMixin, AbstractUser):
    """Custom user model with role lookups.

    Customer-portal users are linked to the Customer they act for.
    """

    customer = models.ForeignKey(
        "orders.Customer",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="portal_users",
    )
    phone = models.CharField(max_length=30, blank=True)

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        swappable = "AUTH_USER_MODEL"


class Role(BaseModel):
    """Named role with a hierarchy level (10-100)."""

    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(unique=True)
    description = models.TextField(blank=True)
    hierarchy_level = models.IntegerField(
        default=20,
        help_text="Higher number = more authority (10-100)",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-hierarchy_level", "name"]

    def __str__(self):
        return self.name


class UserRole(BaseModel):
    """Effective-dated assignment of a role to a user.

        # Only currently valid assignments
        UserRole.objects.current().filter(user=user)

        # Revoke
        user_role.valid_to = timezone.now()
        user_role.save()
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="user_roles",
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name="user_roles",
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="roles_assigned",
    )
    is_primary = models.BooleanField(default=False)

    valid_from = models.DateTimeField(default=timezone.now, db_index=True)
    valid_to = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = EffectiveDatedQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.user} - {self.role}"
