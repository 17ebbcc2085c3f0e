from django.contrib import admin
from .models import Address, Contact


@admin.register(Contact)
class ContactAdmin(admin.ModelAdmin):
    list_display = ['phone', 'user', 'created_at']
    search_fields = ['phone', 'user__email']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Address)
class AddressAdmin(admin.ModelAdmin):
    list_display = ['street', 'city', 'country', 'postal_code', 'user', 'is_primary']
    list_filter = ['is_primary', 'country']
    search_fields = ['street', 'city', 'postal_code', 'user__email']
    readonly_fields = ['created_at', 'updated_at']
