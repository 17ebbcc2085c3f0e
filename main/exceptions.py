"""
Error taxonomy and the error envelope.

Every failure leaves the API as:

    {"success": false, "errors": [{"message": ..., "path": ...}], "timestamp": ...}

Validation errors produce one entry per failed field. Anything that is not an
APIException is logged with its traceback and reported as a generic 500.
"""
import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = 'Internal server error'


class ConflictError(APIException):
    """Duplicate store name, phone number or address, or a lost primary-address race."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Resource already exists.'
    default_code = 'conflict'


class InternalError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = INTERNAL_ERROR_MESSAGE
    default_code = 'internal_error'


def flatten_errors(detail, path=''):
    """Turn DRF's nested error detail into a flat list of {message, path}."""
    if isinstance(detail, dict):
        errors = []
        for key, value in detail.items():
            if key == 'non_field_errors':
                child_path = path
            else:
                child_path = f'{path}.{key}' if path else str(key)
            errors.extend(flatten_errors(value, child_path))
        return errors

    if isinstance(detail, list):
        errors = []
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                errors.extend(flatten_errors(value, f'{path}.{index}' if path else str(index)))
            else:
                errors.extend(flatten_errors(value, path))
        return errors

    error = {'message': str(detail)}
    if path:
        error['path'] = path
    return [error]


def error_envelope(errors):
    return {
        'success': False,
        'errors': errors,
        'timestamp': timezone.now().isoformat(),
    }


def envelope_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(
            "Unhandled error in %s", view.__class__.__name__ if view else 'unknown view'
        )
        return Response(
            error_envelope([{'message': INTERNAL_ERROR_MESSAGE}]),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ValidationError):
        errors = flatten_errors(response.data)
    elif isinstance(response.data, dict) and 'detail' in response.data:
        errors = [{'message': str(response.data['detail'])}]
    else:
        errors = flatten_errors(response.data)

    if response.status_code >= 500:
        logger.error("Request failed with %s: %s", response.status_code, errors)

    response.data = error_envelope(errors)
    return response
