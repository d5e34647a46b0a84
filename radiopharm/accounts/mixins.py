"""
Role helpers mixed into the custom User model.

    class User(RoleUserMixin, AbstractUser):
        pass

Provides:
- user.role_names() -> set of currently effective role names
- user.has_role(*names) -> bool
- user.primary_role_name -> str
"""

from . import roles


class RoleUserMixin:
    """Mixin that adds role lookups to a User model."""

    def role_names(self) -> set[str]:
        """Names of roles whose assignment is currently valid.

        Superusers always carry Admin.
        """
        if not self.is_authenticated:
            return set()
        names = set(
            self.user_roles.current()
            .filter(role__is_active=True)
            .values_list("role__name", flat=True)
        )
        if self.is_superuser:
            names.add(roles.ADMIN)
        return names

    def has_role(self, *names) -> bool:
        return bool(self.role_names() & set(names))

    @property
    def primary_role_name(self) -> str:
        """Role shown on events and audit rows (primary, else highest)."""
        current = self.user_roles.current().select_related("role")
        primary = current.filter(is_primary=True).first()
        if primary:
            return primary.role.name
        top = current.order_by("-role__hierarchy_level").first()
        if top:
            return top.role.name
        return roles.ADMIN if self.is_superuser else ""
