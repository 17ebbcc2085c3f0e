from rest_framework import permissions


class IsSelfOrAdmin(permissions.BasePermission):
    """The user named in the URL, or an Admin"""

    def has_permission(self, request, view):
        if not (request.user and request.user.is_authenticated):
            return False
        if request.user.is_admin:
            return True
        return str(view.kwargs.get('user_id')) == str(request.user.pk)
