"""
Pytest fixtures for Store Admin API tests.
Provides common test data and utilities for all test modules.
"""
import itertools
from decimal import Decimal
from unittest import mock

import pytest
from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from oauth2_provider.models import Application
from rest_framework.test import APIClient

User = get_user_model()

PASSWORD = 'testpass123'


@pytest.fixture(autouse=True)
def fast_password_hasher(settings):
    """Hashing with the default PBKDF2 rounds makes every login test slow"""
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']


# ============== OAuth2 Application Fixture ==============

@pytest.fixture
def oauth_application(db):
    """OAuth2 application that issued tokens are attached to"""
    return Application.objects.create(
        name=settings.OAUTH_APPLICATION_NAME,
        client_type=Application.CLIENT_PUBLIC,
        authorization_grant_type=Application.GRANT_PASSWORD,
    )


# ============== User Fixtures ==============

@pytest.fixture
def user(db, oauth_application):
    """Create a store owner"""
    return User.objects.create_user(
        email='owner@test.com',
        password=PASSWORD,
        name='Store Owner'
    )


@pytest.fixture
def other_user(db, oauth_application):
    """Create a second owner for isolation tests"""
    return User.objects.create_user(
        email='other@test.com',
        password=PASSWORD,
        name='Other Owner'
    )


@pytest.fixture
def admin_user(db, oauth_application):
    """Create an admin user"""
    return User.objects.create_user(
        email='admin@test.com',
        password=PASSWORD,
        name='Admin',
        role=User.Role.ADMIN
    )


# ============== Token Fixtures ==============

def issue_tokens(user):
    """Issue tokens the same way login does, so they pass authentication"""
    from users.services import issue_tokens as issue
    tokens = issue(user)
    user.refresh_from_db()
    return tokens


def authenticated_client(tokens):
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access_token']}")
    return client


@pytest.fixture
def user_tokens(user):
    return issue_tokens(user)


@pytest.fixture
def other_user_tokens(other_user):
    return issue_tokens(other_user)


@pytest.fixture
def admin_tokens(admin_user):
    return issue_tokens(admin_user)


# ============== API Client Fixtures ==============

@pytest.fixture
def api_client():
    """Create unauthenticated API test client"""
    return APIClient()


@pytest.fixture
def auth_client(user_tokens):
    """API client authenticated as the store owner"""
    return authenticated_client(user_tokens)


@pytest.fixture
def other_client(other_user_tokens):
    """API client authenticated as the other owner"""
    return authenticated_client(other_user_tokens)


@pytest.fixture
def admin_client(admin_tokens):
    """API client authenticated as admin"""
    return authenticated_client(admin_tokens)


# ============== Profile Fixtures ==============

@pytest.fixture
def contact(db, user):
    from profiles.models import Contact
    return Contact.objects.create(user=user, phone='+62 812-3456-7890')


@pytest.fixture
def address(db, user):
    """Create the user's primary address"""
    from profiles.models import Address
    return Address.objects.create(
        user=user,
        street='Jl. Merdeka 1',
        city='Bandung',
        province='West Java',
        country='Indonesia',
        postal_code='40111',
        is_primary=True
    )


@pytest.fixture
def second_address(db, user):
    from profiles.models import Address
    return Address.objects.create(
        user=user,
        street='Jl. Asia Afrika 8',
        city='Bandung',
        province='West Java',
        country='Indonesia',
        postal_code='40112',
        is_primary=False
    )


# ============== Store Fixtures ==============

@pytest.fixture
def store(db, user):
    """Create a store owned by the store owner"""
    from stores.models import Store
    return Store.objects.create(user=user, name='Main Store')


@pytest.fixture
def other_store(db, other_user):
    """Create a store owned by the other owner"""
    from stores.models import Store
    return Store.objects.create(user=other_user, name='Other Store')


@pytest.fixture
def banner(db, store):
    from stores.models import Banner
    return Banner.objects.create(
        store=store,
        name='Summer Sale',
        image_url='https://res.cloudinary.com/demo/image/upload/banner.png'
    )


# ============== Catalog Fixtures ==============

@pytest.fixture
def category(db, store):
    from catalog.models import Category
    return Category.objects.create(store=store, name='Shirts')


@pytest.fixture
def color(db, store):
    from catalog.models import Color
    return Color.objects.create(store=store, name='Black', value='#000000')


@pytest.fixture
def other_category(db, other_store):
    from catalog.models import Category
    return Category.objects.create(store=other_store, name='Other Shirts')


@pytest.fixture
def other_color(db, other_store):
    from catalog.models import Color
    return Color.objects.create(store=other_store, name='White', value='#fff')


@pytest.fixture
def product(db, store, category, color):
    from catalog.models import Product
    return Product.objects.create(
        store=store,
        category=category,
        color=color,
        name='Basic Tee',
        price=Decimal('150000.00'),
        description='Cotton t-shirt'
    )


@pytest.fixture
def image(db, product):
    from catalog.models import Image
    return Image.objects.create(
        product=product,
        url='https://res.cloudinary.com/demo/image/upload/tee.png',
        public_id='tee'
    )


# ============== Image Host Fixtures ==============

def make_upload(name='photo.png'):
    """A small in-memory multipart file"""
    return SimpleUploadedFile(name, b'\x89PNG\r\n\x1a\n fake image bytes', content_type='image/png')


@pytest.fixture
def image_host():
    """
    Fake image host: every upload succeeds with a new public id.

    Yields the mocked ``requests.post`` used by main.uploads so tests can
    change its behaviour or inspect the calls.
    """
    counter = itertools.count(1)

    def post(url, data=None, files=None, timeout=None):
        response = mock.Mock()
        response.raise_for_status.return_value = None
        if url.endswith('/destroy'):
            response.json.return_value = {'result': 'ok'}
        else:
            public_id = f'uploaded-{next(counter)}'
            response.json.return_value = {
                'secure_url': f'https://res.cloudinary.com/demo/image/upload/{public_id}.png',
                'public_id': public_id,
            }
        return response

    with mock.patch('main.uploads.requests.post', side_effect=post) as post_mock:
        yield post_mock


@pytest.fixture
def upload():
    """Factory for multipart files: ``upload('a.png')``"""
    return make_upload
