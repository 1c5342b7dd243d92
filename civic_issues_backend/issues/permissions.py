from rest_framework.permissions import BasePermission
from .lifecycle import Actor, ROLE_ADMIN, ROLE_CITIZEN


def actor_for_user(user):
    """Build the lifecycle Actor for an authenticated Django user."""
    role = ROLE_ADMIN if getattr(user, 'is_admin_role', False) else ROLE_CITIZEN
    return Actor(id=str(user.pk), role=role)


class IsAdminRole(BasePermission):
    """
    Allow users with role='admin' and Django staff users.
    """

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and getattr(request.user, 'is_admin_role', False)
        )
