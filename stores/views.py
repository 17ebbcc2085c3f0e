from rest_framework import filters, generics, viewsets

from main.mixins import (
    DeleteMessageMixin, EmptyListMixin, NotFoundMessageMixin, PartialUpdateMixin
)
from users.mixins import UserScopedMixin
from . import services
from .mixins import StoreScopedMixin, resolve_store
from .models import Banner, Store
from .serializers import BannerSerializer, StoreSerializer


class StoreViewSet(UserScopedMixin, EmptyListMixin, PartialUpdateMixin, DeleteMessageMixin,
                   viewsets.ModelViewSet):
    """
    The user's stores.

    A store id that exists but belongs to someone else is a 403, not a 404.
    """
    queryset = Store.objects.all()
    serializer_class = StoreSerializer
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['name']
    ordering_fields = ['name', 'created_at']
    lookup_url_kwarg = 'store_id'
    lookup_value_regex = r'\d+'
    delete_message = 'Store successfully deleted'

    def get_object(self):
        store = resolve_store(self.path_user, self.kwargs[self.lookup_url_kwarg])
        self.check_object_permissions(self.request, store)
        return store

    def perform_create(self, serializer):
        serializer.instance = services.create_store(self.path_user, serializer.validated_data)

    def perform_update(self, serializer):
        serializer.instance = services.update_store(
            self.path_user, serializer.instance, serializer.validated_data
        )

    def perform_destroy(self, instance):
        services.delete_store(self.path_user, instance)


# ============== Banner Views ==============

class BannerListCreateView(StoreScopedMixin, EmptyListMixin, generics.ListCreateAPIView):
    """List or create banners of a store (multipart ``file`` or ``image_url``)"""
    queryset = Banner.objects.all()
    serializer_class = BannerSerializer
    empty_message = 'Banners not found'

    def perform_create(self, serializer):
        serializer.instance = services.create_banner(
            self.path_user, self.store, serializer.validated_data
        )


class BannerDetailView(StoreScopedMixin, NotFoundMessageMixin, PartialUpdateMixin,
                       DeleteMessageMixin, generics.RetrieveUpdateDestroyAPIView):
    queryset = Banner.objects.all()
    serializer_class = BannerSerializer
    not_found_message = 'Banner not found'
    delete_message = 'Banner successfully deleted'

    def perform_update(self, serializer):
        serializer.instance = services.update_banner(
            self.path_user, serializer.instance, serializer.validated_data
        )

    def perform_destroy(self, instance):
        services.delete_banner(self.path_user, instance)
