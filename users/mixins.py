"""
Owner scoping mixins for per-user data isolation.
"""
import logging

from rest_framework.exceptions import PermissionDenied

logger = logging.getLogger(__name__)

FOREIGN_USER_MESSAGE = "You do not have access to this user's resources."


def require_path_user(request, user_id):
    """
    Return the principal when it is the user named in the URL.

    Raises PermissionDenied for anyone else, whether or not that user exists.
    """
    user = request.user

    if user_id is None or int(user_id) != user.pk:
        logger.warning(f"User {user.pk} refused access to resources of user {user_id}")
        raise PermissionDenied(FOREIGN_USER_MESSAGE)

    return user


class PathUserMixin:
    """
    Resolve ``<user_id>`` from the URL and pin it to the principal.

    The check runs in ``initial()``, after authentication and before the
    handler touches the request body, so a foreign caller learns nothing
    from validation errors.
    """

    user_url_kwarg = 'user_id'

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.path_user = require_path_user(request, self.kwargs.get(self.user_url_kwarg))


class UserScopedMixin(PathUserMixin):
    """
    Filter querysets to the path user and assign it on create.

    Usage:
        class ContactListCreateView(UserScopedMixin, generics.ListCreateAPIView):
            queryset = Contact.objects.all()
            ...
    """

    owner_field = 'user'

    def get_queryset(self):
        queryset = super().get_queryset()
        return queryset.filter(**{self.owner_field: self.path_user})
