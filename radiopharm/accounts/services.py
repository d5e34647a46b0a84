"""Role provisioning and assignment."""

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils.text import slugify

from radiopharm.core.exceptions import BusinessRuleError, DomainValidationError

from . import roles
from .models import Role, UserRole

logger = logging.getLogger(__name__)


def ensure_default_roles() -> dict[str, Role]:
    """Create any missing canonical roles. Returns {name: Role}."""
    result = {}
    for name, level in roles.DEFAULT_ROLES.items():
        role, created = Role.objects.get_or_create(
            name=name,
            defaults={"slug": slugify(name), "hierarchy_level": level},
        )
        if created:
            logger.info(f"Created role {name}")
        result[name] = role
    return result


def get_role(name: str) -> Role:
    try:
        return Role.objects.get(name=name, is_active=True)
    except Role.DoesNotExist:
        raise DomainValidationError(
            f"Unknown role '{name}'",
            field_errors={"role": [f"Unknown role '{name}'"]},
        )


@transaction.atomic
def assign_role(user, role_name: str, assigned_by=None, is_primary: bool = True) -> UserRole:
    """Assign a role to a user.

    Raises:
        BusinessRuleError(CUSTOMER_ROLE_REQUIRES_CUSTOMER): Customer role on
            a user not linked to a customer record
    """
    role = get_role(role_name)
    if role.name == roles.CUSTOMER and not user.customer_id:
        raise BusinessRuleError(
            "Customer role requires a linked customer",
            code="CUSTOMER_ROLE_REQUIRES_CUSTOMER",
        )
    return UserRole.objects.create(
        user=user,
        role=role,
        assigned_by=assigned_by,
        is_primary=is_primary,
    )


def users_with_role(role_name: str):
    """Active users currently holding role_name."""
    User = get_user_model()
    user_ids = (
        UserRole.objects.current()
        .filter(role__name=role_name, role__is_active=True)
        .values_list("user_id", flat=True)
    )
    return User.objects.filter(pk__in=user_ids, is_active=True)


def require_linked_customer(user):
    """Return the customer a portal user acts for.

    Raises:
        BusinessRuleError(CUSTOMER_NOT_LINKED)
    """
    if not user.customer_id:
        raise BusinessRuleError(
            "User is not linked to a customer",
            code="CUSTOMER_NOT_LINKED",
        )
    return user.customer
