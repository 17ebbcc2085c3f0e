from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from main.mixins import (
    DeleteMessageMixin, EmptyListMixin, NotFoundMessageMixin, PartialUpdateMixin
)
from stores.mixins import ProductScopedMixin, StoreScopedMixin
from . import services
from .filters import ProductFilter
from .models import Category, Color, Image, Product
from .serializers import (
    CategorySerializer, ColorSerializer, ImageReplaceSerializer, ImageSerializer,
    ProductSerializer
)

IMAGE_FIELD_NAMES = ('images', 'files')


# ============== Category Views ==============

class CategoryListCreateView(StoreScopedMixin, EmptyListMixin, generics.ListCreateAPIView):
    """List all categories of a store or create a new one"""
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    empty_message = 'Categories not found'

    def perform_create(self, serializer):
        serializer.instance = services.create_category(
            self.path_user, self.store, serializer.validated_data
        )


class CategoryDetailView(StoreScopedMixin, NotFoundMessageMixin, PartialUpdateMixin,
                         DeleteMessageMixin, generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, update or delete a category"""
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    not_found_message = 'Category not found'
    delete_message = 'Category successfully deleted'

    def perform_update(self, serializer):
        serializer.instance = services.update_category(
            self.path_user, serializer.instance, serializer.validated_data
        )

    def perform_destroy(self, instance):
        services.delete_category(self.path_user, instance)


# ============== Color Views ==============

class ColorListCreateView(StoreScopedMixin, EmptyListMixin, generics.ListCreateAPIView):
    """List all colors of a store or create a new one"""
    queryset = Color.objects.all()
    serializer_class = ColorSerializer
    empty_message = 'Colors not found'

    def perform_create(self, serializer):
        serializer.instance = services.create_color(
            self.path_user, self.store, serializer.validated_data
        )


class ColorDetailView(StoreScopedMixin, NotFoundMessageMixin, PartialUpdateMixin,
                      DeleteMessageMixin, generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, update or delete a color"""
    queryset = Color.objects.all()
    serializer_class = ColorSerializer
    not_found_message = 'Color not found'
    delete_message = 'Color successfully deleted'

    def perform_update(self, serializer):
        serializer.instance = services.update_color(
            self.path_user, serializer.instance, serializer.validated_data
        )

    def perform_destroy(self, instance):
        services.delete_color(self.path_user, instance)


# ============== Product Views ==============

class ProductListCreateView(StoreScopedMixin, EmptyListMixin, generics.ListCreateAPIView):
    """
    List all products of a store or create a new product.

    Filters: ``category``, ``color``, ``is_featured``, ``is_archived``;
    ``search`` matches the name.
    """
    queryset = Product.objects.select_related('category', 'color').prefetch_related('images')
    serializer_class = ProductSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = ProductFilter
    search_fields = ['name']
    ordering_fields = ['name', 'price', 'created_at']
    empty_message = 'Products not found'

    def perform_create(self, serializer):
        serializer.instance = services.create_product(
            self.path_user, self.store, serializer.validated_data
        )


class ProductDetailView(StoreScopedMixin, NotFoundMessageMixin, PartialUpdateMixin,
                        DeleteMessageMixin, generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, update or delete a product"""
    queryset = Product.objects.select_related('category', 'color').prefetch_related('images')
    serializer_class = ProductSerializer
    not_found_message = 'Product not found or does not belong to the store.'
    delete_message = 'Product successfully deleted'

    def perform_update(self, serializer):
        serializer.instance = services.update_product(
            self.path_user, serializer.instance, serializer.validated_data
        )

    def perform_destroy(self, instance):
        services.delete_product(self.path_user, instance)


# ============== Image Views ==============

class ImageListCreateView(ProductScopedMixin, EmptyListMixin, generics.ListCreateAPIView):
    """
    List a product's images or upload new ones.

    Uploads are multipart parts named ``images`` (or ``files``); either all
    of them are stored or none is.
    """
    queryset = Image.objects.all()
    serializer_class = ImageSerializer
    empty_message = 'Images not found'

    def create(self, request, *args, **kwargs):
        files = []
        for field_name in IMAGE_FIELD_NAMES:
            files.extend(request.FILES.getlist(field_name))
        if not files:
            raise ValidationError({'images': ['At least one image file is required.']})

        images = services.add_images(self.path_user, self.product, files)
        serializer = self.get_serializer(images, many=True)
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class ImageDetailView(ProductScopedMixin, NotFoundMessageMixin, DeleteMessageMixin,
                      generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, replace (multipart ``file``) or delete one image"""
    queryset = Image.objects.all()
    serializer_class = ImageSerializer
    not_found_message = 'Image not found'
    delete_message = 'Image deleted successfully'

    def update(self, request, *args, **kwargs):
        image = self.get_object()
        upload = ImageReplaceSerializer(data=request.data)
        upload.is_valid(raise_exception=True)
        image = services.replace_image(self.path_user, image, upload.validated_data['file'])
        return Response(self.get_serializer(image).data)

    def perform_destroy(self, instance):
        services.delete_image(self.path_user, instance)
