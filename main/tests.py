"""
Tests for the shared API plumbing.
Tests for: error envelope, success envelope, pagination, image upload delegate.
"""
import json
from unittest import mock

import pytest
import requests
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.response import Response

from main.exceptions import ConflictError, envelope_exception_handler, flatten_errors
from main.renderers import EnvelopeJSONRenderer
from main.uploads import UploadError, _sign, destroy_image, upload_image, upload_images


# ============== Error Envelope Tests ==============

class TestFlattenErrors:
    """Test conversion of DRF error detail into {message, path} entries"""

    def test_field_errors(self):
        errors = flatten_errors({'name': ['This field is required.'], 'price': ['Too low.']})

        assert errors == [
            {'message': 'This field is required.', 'path': 'name'},
            {'message': 'Too low.', 'path': 'price'},
        ]

    def test_non_field_errors_have_no_path(self):
        assert flatten_errors({'non_field_errors': ['Bad combination.']}) == [
            {'message': 'Bad combination.'}
        ]

    def test_nested_paths(self):
        errors = flatten_errors({'items': [{}, {'qty': ['Invalid.']}]})

        assert errors == [{'message': 'Invalid.', 'path': 'items.1.qty'}]


class TestEnvelopeExceptionHandler:
    """Test the error envelope returned for every failure"""

    def test_validation_error(self):
        response = envelope_exception_handler(ValidationError({'email': ['Enter a valid email.']}), {})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['success'] is False
        assert response.data['errors'] == [{'message': 'Enter a valid email.', 'path': 'email'}]
        assert 'timestamp' in response.data

    def test_detail_error(self):
        response = envelope_exception_handler(NotFound('Store not found'), {})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['errors'] == [{'message': 'Store not found'}]

    def test_conflict(self):
        response = envelope_exception_handler(ConflictError('Already there'), {})

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_unhandled_error_is_generic(self):
        response = envelope_exception_handler(RuntimeError('database password is hunter2'), {})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data['errors'] == [{'message': 'Internal server error'}]


# ============== Success Envelope Tests ==============

class TestEnvelopeRenderer:
    """Test the success envelope"""

    def render(self, data, response):
        content = EnvelopeJSONRenderer().render(data, renderer_context={'response': response})
        return json.loads(content)

    def test_wraps_success(self):
        body = self.render({'id': 1}, Response(status=status.HTTP_201_CREATED))

        assert body['data'] == {'id': 1}
        assert body['statusCode'] == 201
        assert 'timestamp' in body
        assert 'paging' not in body

    def test_includes_paging(self):
        response = Response()
        response.paging = {'current_page': 1, 'size': 10, 'total_page': 3}

        body = self.render([], response)

        assert body['paging']['total_page'] == 3

    def test_errors_pass_through(self):
        payload = {'success': False, 'errors': [{'message': 'nope'}], 'timestamp': 'now'}

        body = self.render(payload, Response(status=status.HTTP_403_FORBIDDEN))

        assert body == payload


@pytest.mark.django_db
class TestEnvelopeOverHTTP:
    """Test envelopes on real requests"""

    def test_unauthenticated(self, api_client, user):
        response = api_client.get(f'/api/users/{user.id}/contacts/')

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()['success'] is False

    def test_unknown_user_path_is_forbidden(self, auth_client):
        response = auth_client.get('/api/users/999999/stores/')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_health_check(self, api_client):
        response = api_client.get('/api/health/')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['status'] == 'healthy'


# ============== Image Upload Delegate Tests ==============

class TestImageUploads:
    """Test the image host client"""

    def test_signature_is_order_independent(self):
        assert _sign({'b': 2, 'a': 1}, 'secret') == _sign({'a': 1, 'b': 2}, 'secret')
        assert _sign({'a': 1}, 'secret') != _sign({'a': 1}, 'other')

    def test_upload_image(self, image_host, upload):
        uploaded = upload_image(upload('cover.png'))

        assert uploaded.public_id == 'uploaded-1'
        assert uploaded.url.endswith('uploaded-1.png')
        call = image_host.call_args
        assert call.args[0].endswith('/image/upload')
        assert 'signature' in call.kwargs['data']
        assert call.kwargs['files']['file'][0] == 'cover.png'

    def test_upload_network_error(self, image_host, upload):
        image_host.side_effect = requests.ConnectionError('down')

        with pytest.raises(UploadError):
            upload_image(upload())

    def test_upload_unexpected_payload(self, upload):
        response = mock.Mock()
        response.json.return_value = {'error': {'message': 'Invalid image file'}}

        with mock.patch('main.uploads.requests.post', return_value=response):
            with pytest.raises(UploadError):
                upload_image(upload())

    def test_batch_keeps_every_outcome(self, image_host, upload):
        succeed = image_host.side_effect

        def second_fails(url, data=None, files=None, timeout=None):
            if files['file'][0] == 'b.png':
                raise requests.Timeout('slow')
            return succeed(url, data=data, files=files, timeout=timeout)

        image_host.side_effect = second_fails

        batch = upload_images([upload('a.png'), upload('b.png'), upload('c.png')])

        assert not batch.all_ok
        assert [outcome.name for outcome in batch.failed] == ['b.png']
        assert [image.public_id for image in batch.succeeded] == ['uploaded-1', 'uploaded-2']

    def test_destroy_image(self, image_host):
        assert destroy_image('tee') == {'result': 'ok'}
        assert image_host.call_args.kwargs['data']['public_id'] == 'tee'

    def test_destroy_failure(self, image_host):
        image_host.side_effect = requests.HTTPError('500')

        with pytest.raises(UploadError):
            destroy_image('tee')
