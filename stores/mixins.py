"""
Ownership resolution for store-scoped resources.

Nested URLs carry the whole parent chain (``user_id`` then ``store_id``,
then ``product_id`` for images). Every link is checked in ``initial()``,
before the body is parsed:

- the path user must be the principal (403),
- the store must exist (404) and belong to that user (403),
- the product must exist inside that store (404).
"""
import logging

from rest_framework.exceptions import NotFound, PermissionDenied

from catalog.models import Product
from users.mixins import PathUserMixin
from .models import Store

logger = logging.getLogger(__name__)

STORE_NOT_FOUND_MESSAGE = 'Store not found'
FOREIGN_STORE_MESSAGE = 'This store does not belong to you.'
PRODUCT_NOT_FOUND_MESSAGE = 'Product not found or does not belong to the store.'


def resolve_store(user, store_id):
    store = Store.objects.filter(pk=store_id).first()
    if store is None:
        raise NotFound(STORE_NOT_FOUND_MESSAGE)
    if store.user_id != user.pk:
        logger.warning(f"User {user.pk} refused access to store {store_id}")
        raise PermissionDenied(FOREIGN_STORE_MESSAGE)
    return store


def resolve_product(store, product_id):
    product = Product.objects.filter(pk=product_id, store=store).first()
    if product is None:
        raise NotFound(PRODUCT_NOT_FOUND_MESSAGE)
    return product


class StoreScopedMixin(PathUserMixin):
    """
    Resolve ``<store_id>`` and limit querysets to that store.

    ``store_field`` is the lookup from the view's model to its store.
    """

    store_url_kwarg = 'store_id'
    store_field = 'store'

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.store = resolve_store(self.path_user, self.kwargs[self.store_url_kwarg])

    def get_queryset(self):
        queryset = super().get_queryset()
        return queryset.filter(**{self.store_field: self.store})


class ProductScopedMixin(StoreScopedMixin):
    """Resolve ``<product_id>`` inside the resolved store."""

    product_url_kwarg = 'product_id'
    store_field = 'product__store'

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self.product = resolve_product(self.store, self.kwargs[self.product_url_kwarg])

    def get_queryset(self):
        queryset = super().get_queryset()
        return queryset.filter(product=self.product)
