from django.contrib import admin
from .models import Banner, Store


class BannerInline(admin.TabularInline):
    model = Banner
    extra = 0
    fields = ['name', 'image_url']


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ['name', 'user', 'created_at']
    search_fields = ['name', 'user__email']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [BannerInline]


@admin.register(Banner)
class BannerAdmin(admin.ModelAdmin):
    list_display = ['name', 'store', 'created_at']
    search_fields = ['name', 'store__name']
    readonly_fields = ['created_at', 'updated_at']
