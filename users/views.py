import logging

import requests
from django.conf import settings
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from social_core.exceptions import AuthException
from social_django.utils import load_backend, load_strategy

from . import services
from .models import User
from .permissions import IsSelfOrAdmin
from .serializers import (
    LoginSerializer, RefreshSerializer, RegisterSerializer,
    TokenSerializer, UserSerializer, UserUpdateSerializer
)

logger = logging.getLogger(__name__)

GOOGLE_BACKEND = 'google-oauth2'
GOOGLE_SIGN_IN_FAILED_MESSAGE = 'Google sign-in failed'


def token_response(user, tokens, status_code=status.HTTP_200_OK):
    return Response(TokenSerializer({'user': user, **tokens}).data, status=status_code)


# ============== Auth Views ==============

@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    """Create a local account"""
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = services.register(serializer.validated_data)
    return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Local login endpoint that returns access and refresh tokens
    """
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user, tokens = services.login(
        serializer.validated_data['email'],
        serializer.validated_data['password']
    )
    return token_response(user, tokens)


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    """Exchange a refresh token for a new token pair"""
    serializer = RefreshSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user, tokens = services.refresh(serializer.validated_data['refresh_token'])
    return token_response(user, tokens)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Logout by revoking tokens"""
    services.logout(request.user)
    return Response({'message': 'Successfully logged out', 'success': True})


def load_google_backend(request):
    """social_core's Google backend bound to this request and its session"""
    strategy = load_strategy(request._request)
    return load_backend(strategy, GOOGLE_BACKEND, redirect_uri=settings.GOOGLE_CALLBACK_URL)


@api_view(['GET'])
@permission_classes([AllowAny])
def google_login_view(request):
    """Send the browser to Google's consent page (the OAuth state is kept in the session)"""
    return load_google_backend(request).start()


@api_view(['GET'])
@permission_classes([AllowAny])
def google_redirect_view(request):
    """Google callback: check the state, exchange the code and sign the user in"""
    if not request.query_params.get('code') and not request.query_params.get('error'):
        raise ValidationError({'code': ['This field is required.']})

    backend = load_google_backend(request)
    try:
        user = backend.complete(request=request._request)
    except (AuthException, requests.RequestException) as e:
        logger.warning(f"Google sign-in failed: {e.__class__.__name__}")
        raise AuthenticationFailed(GOOGLE_SIGN_IN_FAILED_MESSAGE) from e

    if user is None:
        raise AuthenticationFailed(GOOGLE_SIGN_IN_FAILED_MESSAGE)

    tokens = services.issue_tokens(user)
    return Response({
        'message': 'Successfully signed in with Google',
        'user': TokenSerializer({'user': user, **tokens}).data,
    })


# ============== User Views ==============

class CurrentUserView(generics.GenericAPIView):
    """
    The authenticated user's own profile.

    GET reads it, PUT/PATCH update it (multipart ``file`` replaces the
    image), DELETE logs the user out.
    """
    serializer_class = UserUpdateSerializer
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)

    def patch(self, request):
        serializer = self.get_serializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = services.update_profile(
            request.user, request.user, serializer.validated_data, request.FILES.get('file')
        )
        return Response(UserSerializer(user).data)

    def put(self, request):
        return self.patch(request)

    def delete(self, request):
        services.logout(request.user)
        return Response({'message': 'Successfully logged out', 'success': True})


class UserDetailView(generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, update or delete a user (the user themselves or an Admin)"""
    queryset = User.objects.all()
    permission_classes = [IsAuthenticated, IsSelfOrAdmin]
    lookup_url_kwarg = 'user_id'

    def get_serializer_class(self):
        if self.request.method in ['PUT', 'PATCH']:
            return UserUpdateSerializer
        return UserSerializer

    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        user = services.update_profile(
            request.user, instance, serializer.validated_data, request.FILES.get('file')
        )
        return Response(UserSerializer(user).data)

    def destroy(self, request, *args, **kwargs):
        services.delete_user(request.user, self.get_object())
        return Response({'message': 'User successfully deleted', 'success': True})
