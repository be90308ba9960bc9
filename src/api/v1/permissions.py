"""Role-based DRF permissions for the portal API."""
from rest_framework.permissions import SAFE_METHODS, BasePermission

from approvals.workflow import ActorRole, actor_role_for


class IsReviewer(BasePermission):
    """Allow access to directors and administrators."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and actor_role_for(request.user) in (
            ActorRole.DIRECTOR,
            ActorRole.ADMIN,
        )


class ReadOnlyOrAdmin(BasePermission):
    """Anyone authenticated may read; only administrators may write."""

    def has_permission(self, request, view):
        if not request.user.is_authenticated:
            return False
        if request.method in SAFE_METHODS:
            return True
        return actor_role_for(request.user) is ActorRole.ADMIN
