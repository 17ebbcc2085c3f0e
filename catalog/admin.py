from django.contrib import admin
from .models import Category, Color, Image, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'store', 'created_at']
    search_fields = ['name', 'store__name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Color)
class ColorAdmin(admin.ModelAdmin):
    list_display = ['name', 'value', 'store', 'created_at']
    search_fields = ['name', 'value', 'store__name']
    readonly_fields = ['created_at', 'updated_at']


class ImageInline(admin.TabularInline):
    model = Image
    extra = 0
    fields = ['url', 'public_id']
    readonly_fields = ['url', 'public_id']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'store', 'category', 'color', 'price', 'is_featured', 'is_archived']
    list_filter = ['is_featured', 'is_archived', 'category']
    search_fields = ['name', 'description', 'store__name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [ImageInline]


@admin.register(Image)
class ImageAdmin(admin.ModelAdmin):
    list_display = ['public_id', 'product', 'created_at']
    search_fields = ['public_id', 'product__name']
    readonly_fields = ['created_at', 'updated_at']
