"""
Social-auth pipeline steps.

The pipeline in settings.SOCIAL_AUTH_PIPELINE keeps social_core's details,
uid and auth_allowed steps, then hands the provider profile to
federated_login() instead of social_django's own user storage.
"""
import logging

from social_core.exceptions import AuthException

from . import services
from .serializers import FederatedProfileSerializer

logger = logging.getLogger(__name__)


def require_email(strategy, details, backend, user=None, *args, **kwargs):
    """Federated accounts are keyed on email, so one is required"""
    if not details.get('email'):
        raise AuthException(backend, 'Email is required for registration')


def federated_user(strategy, details, backend, uid, response=None, *args, **kwargs):
    response = response or {}
    profile = FederatedProfileSerializer(data={
        'provider': backend.name,
        'provider_account_id': uid,
        'email': details.get('email'),
        'name': details.get('fullname') or details.get('email'),
        'image': response.get('picture'),
        'email_verified': bool(response.get('email_verified')),
        'access_token': response.get('access_token'),
        'refresh_token': response.get('refresh_token'),
    })
    profile.is_valid(raise_exception=True)

    user = services.federated_login(profile.validated_data)
    logger.info(f"User {user.id} signed in with {backend.name}")
    return {'user': user}
