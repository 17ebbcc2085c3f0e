"""
Catalog services: categories, colors, products and product images.

The store (and product, for images) is resolved by the caller; these
functions also make sure a product only ever references a category and a
color from its own store.
"""
import logging

from django.db import transaction
from rest_framework.exceptions import NotFound

from main.exceptions import InternalError
from main.uploads import UploadError, destroy_image, upload_image, upload_images
from .models import Category, Color, Image, Product

logger = logging.getLogger(__name__)

BATCH_UPLOAD_FAILED_MESSAGE = 'Failed to upload one or more images'


def _apply(instance, validated_data):
    for field, value in validated_data.items():
        setattr(instance, field, value)
    instance.save()
    return instance


# ============== Categories ==============

def resolve_category(store, category_id):
    category = Category.objects.filter(pk=category_id, store=store).first()
    if category is None:
        raise NotFound('Category not found')
    return category


def create_category(user, store, validated_data):
    category = Category.objects.create(store=store, **validated_data)
    logger.info(f"Category {category.id} created in store {store.id} by user {user.id}")
    return category


def update_category(user, category, validated_data):
    _apply(category, validated_data)
    logger.info(f"Category {category.id} updated by user {user.id}")
    return category


def delete_category(user, category):
    """Delete a category together with its products."""
    category_id = category.id
    category.delete()
    logger.info(f"Category {category_id} deleted by user {user.id}")


# ============== Colors ==============

def resolve_color(store, color_id):
    color = Color.objects.filter(pk=color_id, store=store).first()
    if color is None:
        raise NotFound('Color not found')
    return color


def create_color(user, store, validated_data):
    color = Color.objects.create(store=store, **validated_data)
    logger.info(f"Color {color.id} created in store {store.id} by user {user.id}")
    return color


def update_color(user, color, validated_data):
    _apply(color, validated_data)
    logger.info(f"Color {color.id} updated by user {user.id}")
    return color


def delete_color(user, color):
    color_id = color.id
    color.delete()
    logger.info(f"Color {color_id} deleted by user {user.id}")


# ============== Products ==============

def _resolve_relations(store, validated_data):
    """Swap ``category_id``/``color_id`` for rows of the same store."""
    data = dict(validated_data)
    if 'category_id' in data:
        data['category'] = resolve_category(store, data.pop('category_id'))
    if 'color_id' in data:
        data['color'] = resolve_color(store, data.pop('color_id'))
    return data


def create_product(user, store, validated_data):
    data = _resolve_relations(store, validated_data)
    product = Product.objects.create(store=store, **data)
    logger.info(f"Product {product.id} created in store {store.id} by user {user.id}")
    return product


def update_product(user, product, validated_data):
    data = _resolve_relations(product.store, validated_data)
    _apply(product, data)
    logger.info(f"Product {product.id} updated by user {user.id}")
    return product


def delete_product(user, product):
    """Delete a product; its images go with it (remote files included)."""
    product_id = product.id
    product.delete()
    logger.info(f"Product {product_id} deleted by user {user.id}")


# ============== Images ==============

def _discard_remote(uploaded):
    for image in uploaded:
        try:
            destroy_image(image.public_id)
        except UploadError:
            logger.error(f"Could not remove orphaned remote image {image.public_id}")


def add_images(user, product, files):
    """
    Upload every file, then keep all of them or none.

    All uploads are attempted. If any failed, the ones that went through are
    removed from the image host again and nothing is stored. Otherwise all
    rows are inserted in one transaction.
    """
    batch = upload_images(files)

    if not batch.all_ok:
        failed = ', '.join(outcome.name for outcome in batch.failed)
        logger.error(f"Image batch for product {product.id} failed ({failed}); rolling back uploads")
        _discard_remote(batch.succeeded)
        raise InternalError(BATCH_UPLOAD_FAILED_MESSAGE)

    try:
        with transaction.atomic():
            images = [
                Image.objects.create(product=product, url=uploaded.url, public_id=uploaded.public_id)
                for uploaded in batch.succeeded
            ]
    except Exception:
        _discard_remote(batch.succeeded)
        raise

    logger.info(f"{len(images)} image(s) added to product {product.id} by user {user.id}")
    return images


def replace_image(user, image, file):
    """Upload a new file for ``image`` and drop the old remote file after commit."""
    try:
        uploaded = upload_image(file)
    except UploadError as e:
        raise InternalError('Failed to upload image') from e

    old_public_id = image.public_id
    image.url = uploaded.url
    image.public_id = uploaded.public_id
    image.save()

    from .tasks import delete_remote_image
    transaction.on_commit(lambda: delete_remote_image.delay(old_public_id))

    logger.info(f"Image {image.id} replaced by user {user.id}")
    return image


def delete_image(user, image):
    image_id = image.id
    image.delete()
    logger.info(f"Image {image_id} deleted by user {user.id}")
