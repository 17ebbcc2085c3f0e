"""
Tests for Stores Module.
Tests for: store CRUD, banners and ownership resolution.
"""
from unittest import mock

import pytest
from rest_framework import status

from stores.models import Banner, Store


def store_url(user, store=None):
    base = f'/api/users/{user.id}/stores/'
    return f'{base}{store.id}/' if store else base


# ============== Store API Tests ==============

@pytest.mark.django_db
class TestStoreAPI:
    """Test store endpoints"""

    def test_create_store(self, auth_client, user):
        response = auth_client.post(store_url(user), {'name': 'Second Store'})

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()['data']
        assert data['name'] == 'Second Store'
        assert data['user_id'] == user.id

    def test_create_then_get_round_trip(self, auth_client, user):
        created = auth_client.post(store_url(user), {'name': 'Round Trip'}).json()['data']

        response = auth_client.get(f"{store_url(user)}{created['id']}/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data'] == created

    def test_duplicate_name_is_conflict(self, auth_client, user, store):
        response = auth_client.post(store_url(user), {'name': store.name})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert Store.objects.filter(user=user, name=store.name).count() == 1

    def test_same_name_other_user_is_fine(self, other_client, other_user, store):
        response = other_client.post(store_url(other_user), {'name': store.name})

        assert response.status_code == status.HTTP_201_CREATED

    def test_rename_to_existing_is_conflict(self, auth_client, user, store):
        second = Store.objects.create(user=user, name='Second')

        response = auth_client.patch(store_url(user, second), {'name': store.name})

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_rename_to_own_name(self, auth_client, user, store):
        response = auth_client.put(store_url(user, store), {'name': store.name})

        assert response.status_code == status.HTTP_200_OK

    def test_empty_name_rejected(self, auth_client, user):
        response = auth_client.post(store_url(user), {'name': ''})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['errors'][0]['path'] == 'name'

    def test_list_stores(self, auth_client, user, store, other_store):
        response = auth_client.get(store_url(user))

        assert response.status_code == status.HTTP_200_OK
        assert [item['id'] for item in response.json()['data']] == [store.id]

    def test_empty_store_list_is_ok(self, auth_client, user):
        response = auth_client.get(store_url(user))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data'] == []

    def test_list_pagination(self, auth_client, user):
        for number in range(15):
            Store.objects.create(user=user, name=f'Store {number}')

        response = auth_client.get(store_url(user), {'page': 2, 'limit': 10})

        body = response.json()
        assert len(body['data']) == 5
        assert body['paging'] == {'current_page': 2, 'size': 10, 'total_page': 2}

    def test_missing_store(self, auth_client, user):
        response = auth_client.get(f'{store_url(user)}999999/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Store not found'

    def test_store_of_other_user_is_forbidden(self, auth_client, user, other_store):
        response = auth_client.get(f'{store_url(user)}{other_store.id}/')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_foreign_user_path_is_forbidden(self, other_client, user, store):
        response = other_client.get(store_url(user, store))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_delete_store_cascades(self, auth_client, user, store, banner, category, product):
        from catalog.models import Category, Product

        response = auth_client.delete(store_url(user, store))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data'] == {'message': 'Store successfully deleted', 'success': True}
        assert not Banner.objects.filter(pk=banner.pk).exists()
        assert not Category.objects.filter(pk=category.pk).exists()
        assert not Product.objects.filter(pk=product.pk).exists()

    def test_delete_store_queues_remote_image_cleanup(self, auth_client, user, store, image,
                                                      django_capture_on_commit_callbacks):
        with mock.patch('catalog.tasks.delete_remote_image.delay') as delay:
            with django_capture_on_commit_callbacks(execute=True):
                auth_client.delete(store_url(user, store))

        delay.assert_called_once_with('tee')


# ============== Banner API Tests ==============

@pytest.mark.django_db
class TestBannerAPI:
    """Test banner endpoints"""

    def test_create_banner_with_url(self, auth_client, user, store):
        response = auth_client.post(f'{store_url(user, store)}banners/', {
            'name': 'Launch',
            'image_url': 'https://example.com/launch.png'
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['store_id'] == store.id

    def test_create_banner_with_file(self, auth_client, user, store, image_host, upload):
        response = auth_client.post(
            f'{store_url(user, store)}banners/',
            {'name': 'Launch', 'file': upload('banner.png')},
            format='multipart'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['image_url'].startswith('https://res.cloudinary.com/')
        assert image_host.call_count == 1

    def test_banner_needs_image(self, auth_client, user, store):
        response = auth_client.post(f'{store_url(user, store)}banners/', {'name': 'No Image'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['errors'][0]['path'] == 'image_url'

    def test_banner_upload_failure(self, auth_client, user, store, image_host, upload):
        import requests
        image_host.side_effect = requests.Timeout('slow')

        response = auth_client.post(
            f'{store_url(user, store)}banners/',
            {'name': 'Launch', 'file': upload('banner.png')},
            format='multipart'
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert not Banner.objects.exists()

    def test_empty_banner_list_is_not_found(self, auth_client, user, store):
        response = auth_client.get(f'{store_url(user, store)}banners/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Banners not found'

    def test_list_banners(self, auth_client, user, store, banner):
        response = auth_client.get(f'{store_url(user, store)}banners/')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data'][0]['name'] == banner.name

    def test_update_banner(self, auth_client, user, store, banner):
        response = auth_client.patch(f'{store_url(user, store)}banners/{banner.id}/', {'name': 'Winter Sale'})

        assert response.status_code == status.HTTP_200_OK
        banner.refresh_from_db()
        assert banner.name == 'Winter Sale'

    def test_delete_banner(self, auth_client, user, store, banner):
        response = auth_client.delete(f'{store_url(user, store)}banners/{banner.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert not Banner.objects.filter(pk=banner.pk).exists()

    def test_banner_of_other_store_is_not_found(self, auth_client, user, store, other_store):
        foreign = Banner.objects.create(store=other_store, name='Theirs', image_url='https://example.com/x.png')

        response = auth_client.get(f'{store_url(user, store)}banners/{foreign.id}/')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_banners_of_other_users_store_forbidden(self, auth_client, user, other_store):
        response = auth_client.post(f'{store_url(user)}{other_store.id}/banners/', {'name': 'x'})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_banners_of_missing_store(self, auth_client, user):
        response = auth_client.get(f'{store_url(user)}999999/banners/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Store not found'
