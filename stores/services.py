"""
Store and banner services.

Callers resolve ownership first (see stores.mixins); these functions receive
the principal and already-resolved parents.
"""
import logging

from django.db import IntegrityError, transaction

from main.exceptions import ConflictError, InternalError
from main.uploads import UploadError, upload_image
from .models import Banner, Store

logger = logging.getLogger(__name__)

DUPLICATE_STORE_MESSAGE = 'You already have a store with this name'


# ============== Stores ==============

def _check_duplicate_store(user, name, exclude_id=None):
    duplicates = Store.objects.filter(user=user, name=name)
    if exclude_id is not None:
        duplicates = duplicates.exclude(pk=exclude_id)
    if duplicates.exists():
        raise ConflictError(DUPLICATE_STORE_MESSAGE)


def create_store(user, validated_data):
    _check_duplicate_store(user, validated_data['name'])

    try:
        with transaction.atomic():
            store = Store.objects.create(user=user, **validated_data)
    except IntegrityError as e:
        raise ConflictError(DUPLICATE_STORE_MESSAGE) from e

    logger.info(f"Store {store.id} created by user {user.id}")
    return store


def update_store(user, store, validated_data):
    if 'name' in validated_data:
        _check_duplicate_store(user, validated_data['name'], exclude_id=store.pk)

    for field, value in validated_data.items():
        setattr(store, field, value)

    try:
        with transaction.atomic():
            store.save()
    except IntegrityError as e:
        raise ConflictError(DUPLICATE_STORE_MESSAGE) from e

    logger.info(f"Store {store.id} updated by user {user.id}")
    return store


def delete_store(user, store):
    """Delete a store with its banners and whole catalog."""
    store_id = store.id
    store.delete()
    logger.info(f"Store {store_id} deleted by user {user.id}")


# ============== Banners ==============

def _upload_banner_image(file):
    try:
        return upload_image(file).url
    except UploadError as e:
        raise InternalError('Failed to upload banner image') from e


def create_banner(user, store, validated_data):
    data = dict(validated_data)
    file = data.pop('file', None)
    if file is not None:
        data['image_url'] = _upload_banner_image(file)

    banner = Banner.objects.create(store=store, **data)
    logger.info(f"Banner {banner.id} created in store {store.id} by user {user.id}")
    return banner


def update_banner(user, banner, validated_data):
    data = dict(validated_data)
    file = data.pop('file', None)
    if file is not None:
        data['image_url'] = _upload_banner_image(file)

    for field, value in data.items():
        setattr(banner, field, value)
    banner.save()

    logger.info(f"Banner {banner.id} updated by user {user.id}")
    return banner


def delete_banner(user, banner):
    banner_id = banner.id
    banner.delete()
    logger.info(f"Banner {banner_id} deleted by user {user.id}")
