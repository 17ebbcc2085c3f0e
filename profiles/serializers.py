from rest_framework import serializers
from .models import Address, Contact


class ContactSerializer(serializers.ModelSerializer):
    """Serializer for Contact model"""

    class Meta:
        model = Contact
        fields = ['id', 'phone', 'user_id', 'created_at', 'updated_at']
        read_only_fields = ['id', 'user_id', 'created_at', 'updated_at']


class AddressSerializer(serializers.ModelSerializer):
    """Serializer for Address model"""

    class Meta:
        model = Address
        fields = [
            'id', 'street', 'city', 'province', 'country', 'postal_code',
            'is_primary', 'user_id', 'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'user_id', 'created_at', 'updated_at']
