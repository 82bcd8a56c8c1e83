# accounts/views.py
import logging

import cloudinary.uploader
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import (
    api_view, authentication_classes, permission_classes, parser_classes,
)
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from config.errors import error_response, first_error_message
from listings.models import Listing
from listings.utils import destroy_images
from .authentication import (
    IsPathOwner, clear_access_cookie, issue_token, revoke_token, set_access_cookie,
)
from .serializers import (
    ChangePasswordSerializer, ProfileUpdateSerializer, SignupSerializer, UserSerializer,
)
from .utils import generate_password, generate_unique_username

User = get_user_model()
logger = logging.getLogger(__name__)


def _signed_in_response(user):
    token = issue_token(user)
    response = Response(UserSerializer(user).data, status=status.HTTP_200_OK)
    return set_access_cookie(response, token)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def signup(request):
    """
    API Endpoint: POST /api/auth/signup/
    Expects: username, fullname, email, password
    Duplicate email or username → 409.
    """
    email = (request.data.get('email') or '').strip()
    username = (request.data.get('username') or '').strip()

    if email and User.objects.filter(email__iexact=email).exists():
        return error_response(status.HTTP_409_CONFLICT, "Email already exists")
    if username and User.objects.filter(username=username).exists():
        return error_response(status.HTTP_409_CONFLICT, "Username already exists")

    serializer = SignupSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            first_error_message(serializer.errors),
            errors=serializer.errors,
        )

    try:
        with transaction.atomic():
            user = serializer.save()
    except IntegrityError:
        return error_response(status.HTTP_409_CONFLICT, "Email or username already exists")

    logger.info(f"User registered: id={user.id}, username={user.username}")
    return Response({"message": "User created successfully"}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def signin(request):
    """
    API Endpoint: POST /api/auth/signin/
    Authenticates by email and password and sets the access_token cookie.
    Returns the user's details (never the password).
    """
    email = request.data.get('email')
    password = request.data.get('password')

    if not email or not password:
        return error_response(status.HTTP_400_BAD_REQUEST, "Email and password are required.")

    user = User.objects.filter(email__iexact=email.strip()).first()
    if not user:
        return error_response(status.HTTP_404_NOT_FOUND, "User not found, please sign up")

    if not user.check_password(password):
        logger.warning(f"Failed sign-in for user id={user.id}")
        return error_response(status.HTTP_401_UNAUTHORIZED, "Invalid credentials")

    return _signed_in_response(user)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def google_auth(request):
    """
    API Endpoint: POST /api/auth/google/
    Expects: name, email, avatar (photo URL) from the identity provider.
    Existing users are signed in; new ones get a generated username and password.
    """
    email = (request.data.get('email') or '').strip()
    name = (request.data.get('name') or '').strip()
    if not email:
        return error_response(status.HTTP_400_BAD_REQUEST, "Email is required.")

    user = User.objects.filter(email__iexact=email).first()
    if not user:
        extra = {}
        avatar = request.data.get('avatar')
        if avatar:
            extra['avatar_url'] = avatar
        user = User.objects.create_user(
            email=email,
            password=generate_password(),
            username=generate_unique_username(name or email.split('@')[0]),
            fullname=name or email.split('@')[0],
            **extra,
        )
        logger.info(f"User created from Google sign-in: id={user.id}")

    return _signed_in_response(user)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def signout(request):
    key = request.COOKIES.get(settings.ACCESS_TOKEN_COOKIE)
    if key:
        revoke_token(key)

    response = Response({"message": "Signed out successfully"}, status=status.HTTP_200_OK)
    return clear_access_cookie(response)


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def wake_up(request):
    return Response({"message": "Server is awake"}, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_user(request, pk):
    user = get_object_or_404(User, pk=pk)
    return Response(UserSerializer(user).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsPathOwner])
@parser_classes([MultiPartParser, FormParser])
def update_avatar(request, user_id):
    """Replace the user's avatar on Cloudinary."""
    user = request.user
    file = request.FILES.get('avatar')
    if not file:
        return error_response(status.HTTP_400_BAD_REQUEST, "No avatar provided")
    if not (file.content_type or '').startswith('image/'):
        return error_response(status.HTTP_400_BAD_REQUEST, "Avatar must be an image")

    try:
        if user.avatar_public_id:
            cloudinary.uploader.destroy(user.avatar_public_id, invalidate=True)

        result = cloudinary.uploader.upload(
            file,
            folder="avatars",
            public_id=str(user.id),
            overwrite=True,
            resource_type="image",
        )
    except Exception:
        logger.exception(f"Avatar upload failed for user id={user.id}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to upload avatar")

    user.set_avatar(result['secure_url'], result['public_id'])
    return Response({"avatarUrl": result['secure_url']})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsPathOwner])
def update_profile(request, user_id):
    """Update fullname and/or username only."""
    user = request.user
    serializer = ProfileUpdateSerializer(user, data=request.data, partial=True)
    if not serializer.is_valid():
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            first_error_message(serializer.errors),
            errors=serializer.errors,
        )

    username = serializer.validated_data.get('username')
    if username and username != user.username and User.objects.filter(username=username).exists():
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "Username is already taken. Please choose a different one.",
        )

    serializer.save()
    return Response(UserSerializer(user).data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsPathOwner])
def change_password(request, user_id):
    user = request.user
    serializer = ChangePasswordSerializer(data=request.data)
    if not serializer.is_valid():
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            first_error_message(serializer.errors),
            errors=serializer.errors,
        )

    if not user.check_password(serializer.validated_data['currentPassword']):
        return error_response(status.HTTP_400_BAD_REQUEST, "Current password is incorrect")

    user.set_password(serializer.validated_data['newPassword'])
    user.save(update_fields=['password', 'updated_at'])
    return Response({"message": "Password changed successfully"})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsPathOwner])
def delete_user(request, user_id):
    """Delete the account, its listings, and every Cloudinary asset they own."""
    user = request.user

    public_ids = []
    for listing in Listing.objects.filter(user=user):
        public_ids.extend(listing.image_public_ids())
    if user.avatar_public_id:
        public_ids.append(user.avatar_public_id)

    try:
        destroy_images(public_ids)
    except Exception:
        logger.exception(f"Cloudinary cleanup failed while deleting user id={user.id}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to delete user")

    user.delete()
    response = Response({"message": "User deleted successfully"}, status=status.HTTP_200_OK)
    return clear_access_cookie(response)
