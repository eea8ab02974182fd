from rest_framework.permissions import BasePermission


class IsPlatformAdmin(BasePermission):
    """
    Allow access only to platform staff. Superusers automatically pass.
    """

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return bool(request.user.is_superuser or request.user.is_staff)
