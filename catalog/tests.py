"""
Tests for Catalog Module.
Tests for: categories, colors, products, product images and remote cleanup.
"""
from decimal import Decimal
from unittest import mock

import pytest
import requests
from rest_framework import status

from catalog.models import Category, Color, Image, Product
from catalog.tasks import delete_remote_image
from main.uploads import UploadError


def catalog_url(user, store, resource):
    return f'/api/users/{user.id}/stores/{store.id}/{resource}/'


def image_url(user, store, product, image=None):
    base = f'{catalog_url(user, store, "products")}{product.id}/images/'
    return f'{base}{image.id}/' if image else base


def product_payload(category, color, **overrides):
    payload = {
        'name': 'Linen Shirt',
        'price': '249000.00',
        'category_id': category.id,
        'color_id': color.id,
    }
    payload.update(overrides)
    return payload


# ============== Category API Tests ==============

@pytest.mark.django_db
class TestCategoryAPI:
    """Test category endpoints"""

    def test_create_category(self, auth_client, user, store):
        response = auth_client.post(catalog_url(user, store, 'categories'), {'name': 'Pants'})

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()['data']
        assert data['name'] == 'Pants'
        assert data['store_id'] == store.id

    def test_empty_name_rejected(self, auth_client, user, store):
        response = auth_client.post(catalog_url(user, store, 'categories'), {'name': ''})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['errors'][0]['path'] == 'name'

    def test_empty_list_is_not_found(self, auth_client, user, store):
        response = auth_client.get(catalog_url(user, store, 'categories'))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Categories not found'

    def test_list_pagination(self, auth_client, user, store):
        Category.objects.bulk_create([
            Category(store=store, name=f'Category {number}') for number in range(15)
        ])

        response = auth_client.get(catalog_url(user, store, 'categories'), {'page': 2, 'limit': 10})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert len(body['data']) == 5
        assert body['paging'] == {'current_page': 2, 'size': 10, 'total_page': 2}

    def test_list_only_this_store(self, auth_client, user, store, category, other_category):
        response = auth_client.get(catalog_url(user, store, 'categories'))

        assert [item['id'] for item in response.json()['data']] == [category.id]

    def test_update_category(self, auth_client, user, store, category):
        response = auth_client.patch(
            f"{catalog_url(user, store, 'categories')}{category.id}/", {'name': 'Tops'}
        )

        assert response.status_code == status.HTTP_200_OK
        category.refresh_from_db()
        assert category.name == 'Tops'

    def test_delete_category_removes_products(self, auth_client, user, store, category, product):
        response = auth_client.delete(f"{catalog_url(user, store, 'categories')}{category.id}/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['message'] == 'Category successfully deleted'
        assert not Product.objects.filter(pk=product.pk).exists()

    def test_category_of_other_store_is_not_found(self, auth_client, user, store, other_category):
        response = auth_client.get(f"{catalog_url(user, store, 'categories')}{other_category.id}/")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Category not found'

    def test_other_users_store_is_forbidden(self, auth_client, user, other_store):
        response = auth_client.get(catalog_url(user, other_store, 'categories'))

        assert response.status_code == status.HTTP_403_FORBIDDEN


# ============== Color API Tests ==============

@pytest.mark.django_db
class TestColorAPI:
    """Test color endpoints"""

    @pytest.mark.parametrize('value', ['#fff', '#1a2b3c'])
    def test_create_color(self, auth_client, user, store, value):
        response = auth_client.post(catalog_url(user, store, 'colors'), {'name': 'Any', 'value': value})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['value'] == value

    @pytest.mark.parametrize('value', ['#f', '#1a2b3c4d'])
    def test_invalid_value(self, auth_client, user, store, value):
        response = auth_client.post(catalog_url(user, store, 'colors'), {'name': 'Any', 'value': value})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['errors'][0]['path'] == 'value'

    def test_empty_list_is_not_found(self, auth_client, user, store):
        response = auth_client.get(catalog_url(user, store, 'colors'))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Colors not found'

    def test_update_color(self, auth_client, user, store, color):
        response = auth_client.put(f"{catalog_url(user, store, 'colors')}{color.id}/", {'value': '#111'})

        assert response.status_code == status.HTTP_200_OK
        color.refresh_from_db()
        assert color.value == '#111'
        assert color.name == 'Black'

    def test_delete_color(self, auth_client, user, store, color):
        response = auth_client.delete(f"{catalog_url(user, store, 'colors')}{color.id}/")

        assert response.status_code == status.HTTP_200_OK
        assert not Color.objects.filter(pk=color.pk).exists()


# ============== Product API Tests ==============

@pytest.mark.django_db
class TestProductAPI:
    """Test product endpoints"""

    def test_create_product(self, auth_client, user, store, category, color):
        response = auth_client.post(catalog_url(user, store, 'products'), product_payload(category, color))

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()['data']
        assert data['price'] == '249000.00'
        assert data['is_featured'] is True
        assert data['is_archived'] is False
        assert data['description'] == ''
        assert data['category'] == {'id': category.id, 'name': category.name}
        assert data['color']['value'] == color.value
        assert data['images'] == []

    def test_category_from_other_store(self, auth_client, user, store, color, other_category):
        response = auth_client.post(
            catalog_url(user, store, 'products'), product_payload(other_category, color)
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Category not found'
        assert not Product.objects.exists()

    def test_color_from_other_store(self, auth_client, user, store, category, other_color):
        response = auth_client.post(
            catalog_url(user, store, 'products'), product_payload(category, other_color)
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Color not found'

    def test_negative_price(self, auth_client, user, store, category, color):
        response = auth_client.post(
            catalog_url(user, store, 'products'), product_payload(category, color, price='-1')
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['errors'][0]['path'] == 'price'

    def test_missing_fields(self, auth_client, user, store):
        response = auth_client.post(catalog_url(user, store, 'products'), {})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        paths = {error['path'] for error in response.json()['errors']}
        assert paths == {'name', 'price', 'category_id', 'color_id'}

    def test_empty_list_is_not_found(self, auth_client, user, store):
        response = auth_client.get(catalog_url(user, store, 'products'))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Products not found'

    def test_filter_and_search(self, auth_client, user, store, category, color, product):
        Product.objects.create(
            store=store, category=category, color=color,
            name='Old Hoodie', price=Decimal('10.00'), is_archived=True
        )
        url = catalog_url(user, store, 'products')

        archived = auth_client.get(url, {'is_archived': 'true'}).json()['data']
        searched = auth_client.get(url, {'search': 'tee'}).json()['data']

        assert [item['name'] for item in archived] == ['Old Hoodie']
        assert [item['id'] for item in searched] == [product.id]

    def test_filter_matching_nothing_is_not_found(self, auth_client, user, store, product):
        response = auth_client.get(catalog_url(user, store, 'products'), {'is_featured': 'false'})

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_filter_by_category_and_color(self, auth_client, user, store, category, color, product):
        other = Category.objects.create(store=store, name='Hats')
        Product.objects.create(store=store, category=other, color=color, name='Cap', price=Decimal('5.00'))

        response = auth_client.get(
            catalog_url(user, store, 'products'), {'category': category.id, 'color': color.id}
        )

        assert [item['id'] for item in response.json()['data']] == [product.id]

    @pytest.mark.parametrize('field', ['category', 'color'])
    def test_foreign_and_missing_filter_ids_look_the_same(self, auth_client, user, store, product,
                                                          other_category, other_color, field):
        foreign_id = {'category': other_category.id, 'color': other_color.id}[field]
        url = catalog_url(user, store, 'products')

        foreign = auth_client.get(url, {field: foreign_id})
        missing = auth_client.get(url, {field: 999999})

        assert foreign.status_code == missing.status_code == status.HTTP_404_NOT_FOUND
        assert foreign.json()['errors'] == missing.json()['errors']

    def test_get_product_with_images(self, auth_client, user, store, product, image):
        response = auth_client.get(f"{catalog_url(user, store, 'products')}{product.id}/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['images'][0]['public_id'] == 'tee'

    def test_update_product(self, auth_client, user, store, product):
        response = auth_client.patch(
            f"{catalog_url(user, store, 'products')}{product.id}/",
            {'is_featured': False, 'price': '99.50'}
        )

        assert response.status_code == status.HTTP_200_OK
        product.refresh_from_db()
        assert product.price == Decimal('99.50')
        assert not product.is_featured
        assert product.name == 'Basic Tee'

    def test_update_to_foreign_color(self, auth_client, user, store, product, other_color):
        response = auth_client.patch(
            f"{catalog_url(user, store, 'products')}{product.id}/", {'color_id': other_color.id}
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        product.refresh_from_db()
        assert product.color_id != other_color.id

    def test_delete_product(self, auth_client, user, store, product):
        response = auth_client.delete(f"{catalog_url(user, store, 'products')}{product.id}/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data'] == {'message': 'Product successfully deleted', 'success': True}
        assert not Product.objects.filter(pk=product.pk).exists()

    def test_missing_product(self, auth_client, user, store):
        response = auth_client.get(f"{catalog_url(user, store, 'products')}999999/")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Product not found or does not belong to the store.'


# ============== Image API Tests ==============

@pytest.mark.django_db
class TestImageAPI:
    """Test product image endpoints"""

    def test_upload_images(self, auth_client, user, store, product, image_host, upload):
        response = auth_client.post(
            image_url(user, store, product),
            {'images': [upload('front.png'), upload('back.png')]},
            format='multipart'
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()['data']
        assert [item['public_id'] for item in data] == ['uploaded-1', 'uploaded-2']
        assert product.images.count() == 2

    def test_upload_under_files_field(self, auth_client, user, store, product, image_host, upload):
        response = auth_client.post(
            image_url(user, store, product), {'files': upload()}, format='multipart'
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert product.images.count() == 1

    def test_upload_without_files(self, auth_client, user, store, product):
        response = auth_client.post(image_url(user, store, product), {}, format='multipart')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['errors'][0]['path'] == 'images'

    def test_failed_batch_stores_nothing(self, auth_client, user, store, product, image_host, upload):
        """One failed upload rolls back the whole batch, remote files included"""
        succeed = image_host.side_effect
        uploads = []

        def flaky(url, data=None, files=None, timeout=None):
            if files is not None:
                uploads.append(url)
                if len(uploads) == 2:
                    raise requests.ConnectionError('host unreachable')
            return succeed(url, data=data, files=files, timeout=timeout)

        image_host.side_effect = flaky

        response = auth_client.post(
            image_url(user, store, product),
            {'images': [upload('a.png'), upload('b.png'), upload('c.png')]},
            format='multipart'
        )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()['errors'][0]['message'] == 'Failed to upload one or more images'
        assert not Image.objects.exists()
        destroyed = [
            call.kwargs['data']['public_id'] for call in image_host.call_args_list
            if call.args[0].endswith('/destroy')
        ]
        assert sorted(destroyed) == ['uploaded-1', 'uploaded-2']

    def test_empty_list_is_not_found(self, auth_client, user, store, product):
        response = auth_client.get(image_url(user, store, product))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Images not found'

    def test_list_images(self, auth_client, user, store, product, image):
        response = auth_client.get(image_url(user, store, product))

        assert response.status_code == status.HTTP_200_OK
        assert [item['id'] for item in response.json()['data']] == [image.id]

    def test_product_of_other_store(self, auth_client, user, store, other_store):
        foreign = Product.objects.create(
            store=other_store,
            category=Category.objects.create(store=other_store, name='X'),
            color=Color.objects.create(store=other_store, name='Y', value='#000'),
            name='Theirs',
            price=Decimal('1.00')
        )

        response = auth_client.get(image_url(user, store, foreign))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Product not found or does not belong to the store.'

    def test_replace_image(self, auth_client, user, store, product, image, image_host, upload,
                           django_capture_on_commit_callbacks):
        with mock.patch('catalog.tasks.delete_remote_image.delay') as delay:
            with django_capture_on_commit_callbacks(execute=True):
                response = auth_client.put(
                    image_url(user, store, product, image), {'file': upload()}, format='multipart'
                )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['public_id'] == 'uploaded-1'
        image.refresh_from_db()
        assert image.url.endswith('uploaded-1.png')
        delay.assert_called_once_with('tee')

    def test_replace_without_file(self, auth_client, user, store, product, image):
        response = auth_client.put(image_url(user, store, product, image), {}, format='multipart')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        image.refresh_from_db()
        assert image.public_id == 'tee'

    def test_delete_image(self, auth_client, user, store, product, image,
                          django_capture_on_commit_callbacks):
        with mock.patch('catalog.tasks.delete_remote_image.delay') as delay:
            with django_capture_on_commit_callbacks(execute=True):
                response = auth_client.delete(image_url(user, store, product, image))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['message'] == 'Image deleted successfully'
        assert not Image.objects.filter(pk=image.pk).exists()
        delay.assert_called_once_with('tee')

    def test_product_delete_queues_image_cleanup(self, user, product, image,
                                                 django_capture_on_commit_callbacks):
        from catalog import services

        with mock.patch('catalog.tasks.delete_remote_image.delay') as delay:
            with django_capture_on_commit_callbacks(execute=True):
                services.delete_product(user, product)

        delay.assert_called_once_with('tee')


# ============== Task Tests ==============

@pytest.mark.django_db
class TestDeleteRemoteImageTask:
    """Test the remote image cleanup task"""

    def test_destroys_remote_file(self, image_host):
        delete_remote_image('tee')

        call = image_host.call_args
        assert call.args[0].endswith('/image/destroy')
        assert call.kwargs['data']['public_id'] == 'tee'

    def test_host_failure_is_retried(self):
        with mock.patch('catalog.tasks.destroy_image', side_effect=UploadError('down')):
            with mock.patch.object(delete_remote_image, 'retry', side_effect=RuntimeError('retry')) as retry:
                with pytest.raises(RuntimeError):
                    delete_remote_image('tee')

        assert isinstance(retry.call_args.kwargs['exc'], UploadError)
