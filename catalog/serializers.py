from rest_framework import serializers
from .models import Category, Color, Image, Product


class CategorySerializer(serializers.ModelSerializer):
    """Serializer for Category model"""
    store_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Category
        fields = ['id', 'name', 'store_id', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {'name': {'min_length': 1}}


class ColorSerializer(serializers.ModelSerializer):
    """Serializer for Color model"""
    store_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Color
        fields = ['id', 'name', 'value', 'store_id', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {'name': {'min_length': 1}}


class CategoryMinimalSerializer(serializers.ModelSerializer):

    class Meta:
        model = Category
        fields = ['id', 'name']


class ColorMinimalSerializer(serializers.ModelSerializer):

    class Meta:
        model = Color
        fields = ['id', 'name', 'value']


class ImageSerializer(serializers.ModelSerializer):
    """Serializer for Image model"""
    product_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Image
        fields = ['id', 'url', 'public_id', 'product_id', 'created_at', 'updated_at']
        read_only_fields = fields


class ImageReplaceSerializer(serializers.Serializer):
    file = serializers.FileField()


class ProductSerializer(serializers.ModelSerializer):
    """
    Product with its category, color and images.

    ``category_id`` and ``color_id`` are written as plain ids; the service
    resolves them inside the product's store.
    """
    store_id = serializers.IntegerField(read_only=True)
    category_id = serializers.IntegerField(min_value=1)
    color_id = serializers.IntegerField(min_value=1)
    category = CategoryMinimalSerializer(read_only=True)
    color = ColorMinimalSerializer(read_only=True)
    images = ImageSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'price', 'description', 'is_featured', 'is_archived',
            'store_id', 'category_id', 'color_id', 'category', 'color', 'images',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']
        extra_kwargs = {'name': {'min_length': 1}}
