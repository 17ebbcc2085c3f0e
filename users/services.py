"""
Authentication and profile services.

Every function takes the acting user explicitly; views only translate HTTP
to these calls and back.
"""
import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth.hashers import check_password, make_password
from django.db import transaction
from django.utils import timezone
from oauth2_provider.models import AccessToken, Application, RefreshToken
from oauth2_provider.settings import oauth2_settings
from oauthlib.common import generate_token
from rest_framework.exceptions import AuthenticationFailed, PermissionDenied, ValidationError

from main.exceptions import InternalError
from main.uploads import UploadError, upload_image
from .models import Account, User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = 'Invalid email or password'
EMAIL_TAKEN_MESSAGE = 'This email is already registered.'


# ============== Tokens ==============

def get_oauth_application():
    """Return the OAuth2 application every issued token is attached to."""
    application, _ = Application.objects.get_or_create(
        name=settings.OAUTH_APPLICATION_NAME,
        defaults={
            'client_type': Application.CLIENT_PUBLIC,
            'authorization_grant_type': Application.GRANT_PASSWORD,
        },
    )
    return application


def revoke_tokens(user):
    RefreshToken.objects.filter(user=user).delete()
    AccessToken.objects.filter(user=user).delete()


def issue_tokens(user):
    """
    Issue a fresh access/refresh pair and make it the user's only valid one.

    The plaintext access token is stored on the user so authentication can
    reject anything older; only a hash of the refresh token is stored.
    """
    application = get_oauth_application()

    with transaction.atomic():
        revoke_tokens(user)

        access_token = AccessToken.objects.create(
            user=user,
            application=application,
            token=generate_token(),
            expires=timezone.now() + timedelta(seconds=oauth2_settings.ACCESS_TOKEN_EXPIRE_SECONDS),
            scope='read write',
        )
        refresh_token = RefreshToken.objects.create(
            user=user,
            application=application,
            token=generate_token(),
            access_token=access_token,
        )

        user.access_token = access_token.token
        user.refresh_token = make_password(refresh_token.token)
        user.save(update_fields=['access_token', 'refresh_token', 'updated_at'])

    return {
        'access_token': access_token.token,
        'refresh_token': refresh_token.token,
        'expires_in': oauth2_settings.ACCESS_TOKEN_EXPIRE_SECONDS,
        'token_type': 'Bearer',
    }


# ============== Local accounts ==============

def register(validated_data):
    user = User.objects.create_user(
        email=validated_data['email'],
        password=validated_data['password'],
        name=validated_data['name'],
    )
    logger.info(f"User {user.id} registered")
    return user


def login(email, password):
    """
    Authenticate with email and password.

    Unknown email and wrong password fail identically.
    """
    user = User.objects.filter(email__iexact=email).first()

    if user is None or not user.check_password(password):
        logger.warning("Failed login attempt")
        raise AuthenticationFailed(INVALID_CREDENTIALS_MESSAGE)

    if not user.is_active:
        raise AuthenticationFailed(INVALID_CREDENTIALS_MESSAGE)

    tokens = issue_tokens(user)
    logger.info(f"User {user.id} logged in")
    return user, tokens


def refresh(raw_refresh_token):
    refresh_token = (
        RefreshToken.objects.select_related('user')
        .filter(token=raw_refresh_token, revoked__isnull=True)
        .first()
    )
    if refresh_token is None:
        raise AuthenticationFailed('Invalid refresh token')

    expires_at = refresh_token.created + timedelta(seconds=oauth2_settings.REFRESH_TOKEN_EXPIRE_SECONDS)
    if expires_at <= timezone.now():
        raise AuthenticationFailed('Refresh token has expired')

    user = refresh_token.user
    if not user.refresh_token or not check_password(raw_refresh_token, user.refresh_token):
        raise AuthenticationFailed('Invalid refresh token')

    tokens = issue_tokens(user)
    logger.info(f"Tokens refreshed for user {user.id}")
    return user, tokens


def logout(user):
    with transaction.atomic():
        revoke_tokens(user)
        user.access_token = None
        user.refresh_token = None
        user.save(update_fields=['access_token', 'refresh_token', 'updated_at'])
    logger.info(f"User {user.id} logged out")


# ============== Federated accounts ==============

def federated_login(profile):
    """
    Find or create the user behind a federated provider profile.

    Runs as the last step of the social-auth pipeline (see users.pipeline);
    the caller issues fresh tokens for the returned user on every sign-in.

    ``profile`` is the validated provider profile (see
    FederatedProfileSerializer). The first sign-in creates the user and its
    account together; an email already used by another user is refused.
    """
    account = (
        Account.objects.select_related('user')
        .filter(provider=profile['provider'], provider_account_id=profile['provider_account_id'])
        .first()
    )

    if account is None:
        with transaction.atomic():
            if User.objects.filter(email__iexact=profile['email']).exists():
                logger.warning(f"Federated sign-in refused: email already registered ({profile['provider']})")
                raise ValidationError({'email': [EMAIL_TAKEN_MESSAGE]})

            user = User.objects.create_user(
                email=profile['email'],
                password=None,
                name=profile['name'],
                image=profile.get('image') or None,
                email_verified=timezone.now() if profile.get('email_verified') else None,
            )
            account = Account.objects.create(
                user=user,
                provider=profile['provider'],
                provider_account_id=profile['provider_account_id'],
                access_token=profile.get('access_token'),
                refresh_token=profile.get('refresh_token'),
            )
        logger.info(f"Created user {user.id} from {account.provider} sign-in")
    else:
        account.access_token = profile.get('access_token')
        if profile.get('refresh_token'):
            account.refresh_token = profile['refresh_token']
        account.save(update_fields=['access_token', 'refresh_token', 'updated_at'])

    return account.user


# ============== Profile ==============

def update_profile(principal, user, validated_data, file=None):
    """
    Apply a partial profile update to ``user`` on behalf of ``principal``.

    Only an administrator may change a role.
    """
    if 'role' in validated_data and validated_data['role'] != user.role and not principal.is_admin:
        raise PermissionDenied('Only administrators can change roles.')

    if 'name' in validated_data:
        user.name = validated_data['name']
    if 'role' in validated_data:
        user.role = validated_data['role']
    if validated_data.get('password'):
        user.set_password(validated_data['password'])

    if file is not None:
        try:
            user.image = upload_image(file).url
        except UploadError as e:
            logger.error(f"Profile image upload failed for user {user.id}: {e}")
            raise InternalError('Failed to upload image') from e

    user.save()
    logger.info(f"User {user.id} updated by user {principal.id}")
    return user


def delete_user(principal, user):
    user_id = user.id
    with transaction.atomic():
        revoke_tokens(user)
        user.delete()
    logger.info(f"User {user_id} deleted by user {principal.id}")
