"""
Tests for Users Module.
Tests for: User model, token issuance, authentication, federated sign-in, profile and account endpoints.
"""
from datetime import timedelta
from unittest import mock
from urllib.parse import parse_qs, urlparse

import pytest
from django.conf import settings
from django.contrib.auth.hashers import check_password
from django.utils import timezone
from oauth2_provider.models import AccessToken, RefreshToken
from oauthlib.common import generate_token
from rest_framework import status
from rest_framework.exceptions import ValidationError
from social_core.backends.google import GoogleOAuth2

from users import services
from users.models import Account, User
from users.tasks import clear_expired_tokens


def google_profile(**overrides):
    profile = {
        'provider': 'google',
        'provider_account_id': 'google-123',
        'email': 'googler@test.com',
        'name': 'Googler',
        'image': 'https://lh3.googleusercontent.com/a/photo.png',
        'email_verified': True,
        'access_token': 'provider-access',
        'refresh_token': 'provider-refresh',
    }
    profile.update(overrides)
    return profile


# ============== User Model Tests ==============

@pytest.mark.django_db
class TestUserModel:
    """Test cases for User model"""

    def test_create_user(self):
        """Test creating a new user"""
        user = User.objects.create_user(
            email='test@example.com',
            password='testpass123',
            name='Test User'
        )

        assert user.email == 'test@example.com'
        assert user.role == User.Role.CUSTOMER
        assert user.is_customer
        assert user.check_password('testpass123')

    def test_create_user_without_password(self):
        """Federated users have no usable password"""
        user = User.objects.create_user(email='fed@example.com', password=None, name='Fed')

        assert not user.has_usable_password()

    def test_create_superuser_is_admin(self):
        user = User.objects.create_superuser(email='root@example.com', password='rootpass123', name='Root')

        assert user.is_admin
        assert user.is_staff
        assert user.is_superuser

    def test_email_required(self):
        with pytest.raises(ValueError):
            User.objects.create_user(email='', password='testpass123', name='Nobody')

    def test_delete_user_cascades(self, user, store, contact, address):
        """Deleting a user removes everything the user owns"""
        from profiles.models import Address, Contact
        from stores.models import Store

        user.delete()

        assert not Store.objects.filter(pk=store.pk).exists()
        assert not Contact.objects.filter(pk=contact.pk).exists()
        assert not Address.objects.filter(pk=address.pk).exists()


# ============== Token Service Tests ==============

@pytest.mark.django_db
class TestTokenService:
    """Test token issuance and revocation"""

    def test_issue_tokens_records_current_token(self, user):
        tokens = services.issue_tokens(user)
        user.refresh_from_db()

        assert user.access_token == tokens['access_token']
        assert user.refresh_token != tokens['refresh_token']
        assert check_password(tokens['refresh_token'], user.refresh_token)
        assert tokens['token_type'] == 'Bearer'
        assert tokens['expires_in'] == 7200

    def test_access_token_expires_in_two_hours(self, user):
        tokens = services.issue_tokens(user)
        access_token = AccessToken.objects.get(token=tokens['access_token'])

        remaining = access_token.expires - timezone.now()
        assert timedelta(hours=1, minutes=59) < remaining <= timedelta(hours=2)

    def test_issue_tokens_replaces_previous_pair(self, user):
        first = services.issue_tokens(user)
        second = services.issue_tokens(user)

        assert not AccessToken.objects.filter(token=first['access_token']).exists()
        assert not RefreshToken.objects.filter(token=first['refresh_token']).exists()
        assert AccessToken.objects.filter(user=user).count() == 1
        assert second['access_token'] != first['access_token']

    def test_oauth_application_created_on_demand(self, db):
        from oauth2_provider.models import Application
        user = User.objects.create_user(email='solo@test.com', password='testpass123', name='Solo')

        services.issue_tokens(user)

        assert Application.objects.filter(name='store-admin-frontend').count() == 1


# ============== Authentication API Tests ==============

@pytest.mark.django_db
class TestRegisterAPI:
    """Test sign-up endpoint"""

    def test_register_success(self, api_client):
        response = api_client.post('/api/auth/register/', {
            'name': 'New Owner',
            'email': 'new@test.com',
            'password': 'newpass123'
        })

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body['statusCode'] == 201
        assert body['data']['email'] == 'new@test.com'
        assert 'password' not in body['data']
        assert User.objects.get(email='new@test.com').check_password('newpass123')

    def test_register_duplicate_email(self, api_client, user):
        response = api_client.post('/api/auth/register/', {
            'name': 'Copycat',
            'email': user.email,
            'password': 'newpass123'
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body['success'] is False
        assert body['errors'] == [{'message': 'This email is already registered.', 'path': 'email'}]

    def test_register_validation_errors_per_field(self, api_client):
        response = api_client.post('/api/auth/register/', {
            'name': '',
            'email': 'not-an-email',
            'password': 'short'
        })

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        paths = {error['path'] for error in response.json()['errors']}
        assert paths == {'name', 'email', 'password'}


@pytest.mark.django_db
class TestLoginAPI:
    """Test local login endpoint"""

    def test_login_success(self, api_client, user):
        """Test successful login returns tokens"""
        response = api_client.post('/api/auth/login/', {
            'email': user.email,
            'password': 'testpass123'
        })

        assert response.status_code == status.HTTP_200_OK
        data = response.json()['data']
        assert data['id'] == user.id
        assert data['email'] == user.email
        assert data['token_type'] == 'Bearer'
        assert 'refresh_token' in data

        user.refresh_from_db()
        assert user.access_token == data['access_token']

    def test_wrong_password_and_unknown_email_look_the_same(self, api_client, user):
        wrong_password = api_client.post('/api/auth/login/', {
            'email': user.email,
            'password': 'wrongpassword'
        })
        unknown_email = api_client.post('/api/auth/login/', {
            'email': 'nobody@test.com',
            'password': 'wrongpassword'
        })

        assert wrong_password.status_code == status.HTTP_401_UNAUTHORIZED
        assert unknown_email.status_code == status.HTTP_401_UNAUTHORIZED
        assert wrong_password.json()['errors'] == unknown_email.json()['errors']
        assert wrong_password.json()['errors'][0]['message'] == 'Invalid email or password'

    def test_login_federated_user_without_password(self, api_client, db):
        User.objects.create_user(email='fed@test.com', password=None, name='Fed')

        response = api_client.post('/api/auth/login/', {
            'email': 'fed@test.com',
            'password': 'whatever123'
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_login_missing_credentials(self, api_client):
        """Test login without credentials fails"""
        response = api_client.post('/api/auth/login/', {})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_login_invalidates_previous_token(self, auth_client, api_client, user):
        api_client.post('/api/auth/login/', {'email': user.email, 'password': 'testpass123'})

        response = auth_client.get('/api/users/current/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestTokenAuthentication:
    """Test bearer token verification"""

    def test_missing_token(self, api_client):
        response = api_client.get('/api/users/current/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()['success'] is False

    def test_unknown_token(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer not-a-real-token')

        response = api_client.get('/api/users/current/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_live_token_that_is_not_current_is_rejected(self, api_client, user, user_tokens, oauth_application):
        stray = AccessToken.objects.create(
            user=user,
            application=oauth_application,
            token=generate_token(),
            expires=timezone.now() + timedelta(hours=1),
            scope='read write'
        )
        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {stray.token}')

        response = api_client.get('/api/users/current/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_expired_token_is_rejected(self, auth_client, user):
        AccessToken.objects.filter(user=user).update(expires=timezone.now() - timedelta(minutes=1))

        response = auth_client.get('/api/users/current/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestLogoutAPI:
    """Test logout endpoints"""

    def test_logout_success(self, auth_client, user):
        """Test successful logout"""
        response = auth_client.post('/api/auth/logout/')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['success'] is True

        user.refresh_from_db()
        assert user.access_token is None
        assert user.refresh_token is None
        assert not AccessToken.objects.filter(user=user).exists()
        assert not RefreshToken.objects.filter(user=user).exists()

    def test_token_unusable_after_logout(self, auth_client):
        auth_client.post('/api/auth/logout/')

        response = auth_client.get('/api/users/current/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_delete_current_logs_out(self, auth_client, user):
        response = auth_client.delete('/api/users/current/')

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.access_token is None
        assert User.objects.filter(pk=user.pk).exists()


@pytest.mark.django_db
class TestRefreshAPI:
    """Test refresh token exchange"""

    def test_refresh_success(self, api_client, user, user_tokens):
        response = api_client.post('/api/auth/refresh/', {'refresh_token': user_tokens['refresh_token']})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()['data']
        assert data['access_token'] != user_tokens['access_token']

        user.refresh_from_db()
        assert user.access_token == data['access_token']

    def test_refresh_token_is_single_use(self, api_client, user_tokens):
        api_client.post('/api/auth/refresh/', {'refresh_token': user_tokens['refresh_token']})

        response = api_client.post('/api/auth/refresh/', {'refresh_token': user_tokens['refresh_token']})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh_expired(self, api_client, user, user_tokens):
        RefreshToken.objects.filter(user=user).update(created=timezone.now() - timedelta(days=31))

        response = api_client.post('/api/auth/refresh/', {'refresh_token': user_tokens['refresh_token']})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh_hash_mismatch(self, api_client, user, user_tokens):
        User.objects.filter(pk=user.pk).update(refresh_token='not-a-hash')

        response = api_client.post('/api/auth/refresh/', {'refresh_token': user_tokens['refresh_token']})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh_unknown_token(self, api_client, db):
        response = api_client.post('/api/auth/refresh/', {'refresh_token': 'nope'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# ============== Federated Sign-in Tests ==============

@pytest.mark.django_db
class TestFederatedLogin:
    """Test federated_login service"""

    def test_first_sign_in_creates_user_and_account(self, oauth_application):
        user = services.federated_login(google_profile())

        assert user.email == 'googler@test.com'
        assert not user.has_usable_password()
        assert user.email_verified is not None
        account = Account.objects.get(user=user)
        assert account.provider == 'google'
        assert account.provider_account_id == 'google-123'

    def test_returning_user_reuses_account(self, oauth_application):
        first_user = services.federated_login(google_profile())
        second_user = services.federated_login(google_profile(access_token='newer'))

        assert first_user.pk == second_user.pk
        assert User.objects.filter(email='googler@test.com').count() == 1
        assert Account.objects.get(user=second_user).access_token == 'newer'

    def test_email_collision_is_refused(self, user):
        with pytest.raises(ValidationError):
            services.federated_login(google_profile(email=user.email))

        assert not Account.objects.exists()
        assert User.objects.filter(email=user.email).count() == 1


GOOGLE_TOKEN_RESPONSE = {
    'access_token': 'g-access',
    'refresh_token': 'g-refresh',
    'expires_in': 3599,
    'token_type': 'Bearer',
}

GOOGLE_USERINFO = {
    'sub': '42',
    'email': 'googler@test.com',
    'email_verified': True,
    'name': 'Google User',
    'given_name': 'Google',
    'family_name': 'User',
    'picture': 'https://lh3.googleusercontent.com/a/g.png',
}


@pytest.fixture
def google_host():
    """
    Fake Google token and userinfo endpoints.

    Yields the mocked token request so tests can check whether the code was
    ever exchanged.
    """
    with mock.patch.object(GoogleOAuth2, 'request_access_token',
                           side_effect=lambda *args, **kwargs: dict(GOOGLE_TOKEN_RESPONSE)) as token_request, \
            mock.patch.object(GoogleOAuth2, 'user_data',
                              side_effect=lambda *args, **kwargs: dict(GOOGLE_USERINFO)):
        yield token_request


def start_google_sign_in(client):
    """Hit the login endpoint and return the state Google will send back"""
    response = client.get('/api/auth/google/login/')
    return parse_qs(urlparse(response['Location']).query)['state'][0]


@pytest.mark.django_db
class TestGoogleAPI:
    """Test Google browser flow endpoints"""

    def test_login_redirects_to_google_with_state(self, api_client):
        response = api_client.get('/api/auth/google/login/')

        assert response.status_code == status.HTTP_302_FOUND
        location = urlparse(response['Location'])
        assert f'{location.scheme}://{location.netloc}' == 'https://accounts.google.com'
        query = parse_qs(location.query)
        assert query['state'][0]
        assert query['redirect_uri'] == [settings.GOOGLE_CALLBACK_URL]

    def test_redirect_signs_user_in(self, api_client, oauth_application, google_host):
        state = start_google_sign_in(api_client)

        response = api_client.get('/api/auth/google/redirect/', {'code': 'auth-code', 'state': state})

        assert response.status_code == status.HTTP_200_OK
        data = response.json()['data']
        assert data['user']['email'] == 'googler@test.com'
        assert data['user']['access_token']
        assert 'message' in data
        account = Account.objects.get(user__email='googler@test.com')
        assert account.provider == 'google-oauth2'
        assert account.provider_account_id == '42'
        assert account.refresh_token == 'g-refresh'

    def test_returning_google_user_gets_new_tokens(self, api_client, oauth_application, google_host):
        state = start_google_sign_in(api_client)
        first = api_client.get('/api/auth/google/redirect/', {'code': 'one', 'state': state}).json()['data']

        state = start_google_sign_in(api_client)
        second = api_client.get('/api/auth/google/redirect/', {'code': 'two', 'state': state}).json()['data']

        assert first['user']['id'] == second['user']['id']
        assert first['user']['access_token'] != second['user']['access_token']

    def test_callback_without_state_is_rejected(self, api_client, oauth_application, google_host):
        start_google_sign_in(api_client)

        response = api_client.get('/api/auth/google/redirect/', {'code': 'attacker-code'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert not google_host.called
        assert not User.objects.filter(email='googler@test.com').exists()

    def test_callback_with_wrong_state_is_rejected(self, api_client, oauth_application, google_host):
        start_google_sign_in(api_client)

        response = api_client.get('/api/auth/google/redirect/', {'code': 'attacker-code', 'state': 'forged'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert not google_host.called

    def test_callback_without_started_sign_in_is_rejected(self, api_client, oauth_application, google_host):
        response = api_client.get('/api/auth/google/redirect/', {'code': 'attacker-code', 'state': 'forged'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert not User.objects.filter(email='googler@test.com').exists()

    def test_denied_consent(self, api_client, google_host):
        state = start_google_sign_in(api_client)

        response = api_client.get('/api/auth/google/redirect/', {'error': 'access_denied', 'state': state})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_email_already_registered(self, api_client, user, google_host):
        state = start_google_sign_in(api_client)

        with mock.patch.object(GoogleOAuth2, 'user_data',
                               return_value={**GOOGLE_USERINFO, 'email': user.email}):
            response = api_client.get('/api/auth/google/redirect/', {'code': 'auth-code', 'state': state})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert not Account.objects.exists()

    def test_redirect_without_code(self, api_client):
        response = api_client.get('/api/auth/google/redirect/')

        assert response.status_code == status.HTTP_400_BAD_REQUEST


# ============== User API Tests ==============

@pytest.mark.django_db
class TestCurrentUserAPI:
    """Test the current user endpoint"""

    def test_get_current_user(self, auth_client, user):
        """Test getting current user info"""
        response = auth_client.get('/api/users/current/')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['email'] == user.email
        assert 'access_token' not in response.json()['data']

    def test_update_name_and_password(self, auth_client, user):
        response = auth_client.patch('/api/users/current/', {
            'name': 'Renamed',
            'password': 'brandnew123'
        })

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.name == 'Renamed'
        assert user.check_password('brandnew123')

    def test_customer_cannot_change_role(self, auth_client, user):
        response = auth_client.patch('/api/users/current/', {'role': 'ADMIN'})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        user.refresh_from_db()
        assert user.role == User.Role.CUSTOMER

    def test_upload_profile_image(self, auth_client, user, image_host, upload):
        response = auth_client.patch(
            '/api/users/current/',
            {'file': upload('me.png')},
            format='multipart'
        )

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.image.startswith('https://res.cloudinary.com/')

    def test_upload_failure_is_internal_error(self, auth_client, user, image_host, upload):
        import requests
        image_host.side_effect = requests.ConnectionError('down')

        response = auth_client.patch(
            '/api/users/current/',
            {'file': upload('me.png')},
            format='multipart'
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        user.refresh_from_db()
        assert user.image is None


@pytest.mark.django_db
class TestUserDetailAPI:
    """Test account endpoints addressed by id"""

    def test_get_self(self, auth_client, user):
        response = auth_client.get(f'/api/users/{user.id}/')

        assert response.status_code == status.HTTP_200_OK

    def test_other_user_forbidden(self, other_client, user):
        response = other_client.get(f'/api/users/{user.id}/')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_can_change_role(self, admin_client, user):
        response = admin_client.patch(f'/api/users/{user.id}/', {'role': 'ADMIN'})

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.is_admin

    def test_delete_account(self, auth_client, user, store):
        response = auth_client.delete(f'/api/users/{user.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data'] == {'message': 'User successfully deleted', 'success': True}
        assert not User.objects.filter(pk=user.pk).exists()


# ============== Task Tests ==============

@pytest.mark.django_db
class TestClearExpiredTokens:

    def test_live_tokens_survive(self, user, user_tokens):
        clear_expired_tokens()

        assert AccessToken.objects.filter(token=user_tokens['access_token']).exists()
