from rest_framework import serializers
from rest_framework.validators import UniqueValidator

from .models import User
from .services import EMAIL_TAKEN_MESSAGE


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model"""

    class Meta:
        model = User
        fields = [
            'id', 'name', 'email', 'email_verified', 'image', 'role',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


class RegisterSerializer(serializers.ModelSerializer):
    """Serializer for local sign-up"""
    name = serializers.CharField(min_length=1, max_length=100)
    email = serializers.EmailField(
        max_length=100,
        validators=[UniqueValidator(
            queryset=User.objects.all(),
            message=EMAIL_TAKEN_MESSAGE,
            lookup='iexact'
        )]
    )
    password = serializers.CharField(write_only=True, min_length=8, max_length=100)

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'password']
        read_only_fields = ['id']


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField(max_length=100)
    password = serializers.CharField(min_length=8, max_length=100, write_only=True)


class RefreshSerializer(serializers.Serializer):
    refresh_token = serializers.CharField()


class TokenSerializer(serializers.Serializer):
    """Login response: the principal plus its freshly issued tokens"""
    id = serializers.IntegerField(source='user.id')
    email = serializers.EmailField(source='user.email')
    name = serializers.CharField(source='user.name')
    role = serializers.CharField(source='user.role')
    access_token = serializers.CharField()
    refresh_token = serializers.CharField()
    expires_in = serializers.IntegerField()
    token_type = serializers.CharField()


class UserUpdateSerializer(serializers.ModelSerializer):
    """Serializer for updating user details"""
    name = serializers.CharField(min_length=1, max_length=100, required=False)
    password = serializers.CharField(write_only=True, min_length=8, max_length=100, required=False)
    role = serializers.ChoiceField(choices=User.Role.choices, required=False)

    class Meta:
        model = User
        fields = ['name', 'password', 'role']


class FederatedProfileSerializer(serializers.Serializer):
    """Profile handed over by a federated provider after sign-in"""
    provider = serializers.CharField(max_length=50)
    provider_account_id = serializers.CharField(max_length=255)
    email = serializers.EmailField(max_length=100)
    name = serializers.CharField(min_length=1, max_length=100)
    image = serializers.URLField(max_length=500, required=False, allow_null=True, allow_blank=True)
    email_verified = serializers.BooleanField(required=False, default=False)
    access_token = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    refresh_token = serializers.CharField(required=False, allow_null=True, allow_blank=True)
