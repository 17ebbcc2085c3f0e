import logging

from oauth2_provider.contrib.rest_framework import OAuth2Authentication
from rest_framework.exceptions import AuthenticationFailed

logger = logging.getLogger(__name__)


class CurrentTokenAuthentication(OAuth2Authentication):
    """
    OAuth2 bearer authentication that only accepts the user's current token.

    Logging out or signing in again replaces ``user.access_token``, so any
    older token stops working immediately even if it has not expired yet.
    """

    def authenticate(self, request):
        result = super().authenticate(request)
        if result is None:
            return None

        user, access_token = result
        if not user.access_token or user.access_token != access_token.token:
            logger.warning(f"Rejected superseded token for user {user.pk}")
            raise AuthenticationFailed('Token is no longer valid')

        return user, access_token
