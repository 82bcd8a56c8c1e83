# accounts/authentication.py

from django.conf import settings
from django.utils import timezone
from rest_framework import exceptions
from rest_framework.authentication import BaseAuthentication
from rest_framework.authtoken.models import Token
from rest_framework.permissions import BasePermission


def issue_token(user):
    """Rotate the user's token; the previous session stops working."""
    Token.objects.filter(user=user).delete()
    return Token.objects.create(user=user)


def revoke_token(key):
    Token.objects.filter(key=key).delete()


def set_access_cookie(response, token):
    response.set_cookie(
        settings.ACCESS_TOKEN_COOKIE,
        token.key,
        max_age=int(settings.ACCESS_TOKEN_LIFETIME.total_seconds()),
        httponly=True,
        secure=not settings.DEBUG,
        samesite='Strict',
    )
    return response


def clear_access_cookie(response):
    response.delete_cookie(settings.ACCESS_TOKEN_COOKIE, samesite='Strict')
    return response


class CookieTokenAuthentication(BaseAuthentication):
    """
    Reads the DRF token from the HTTP-only `access_token` cookie.
    No cookie means anonymous; a bad or expired cookie is rejected.
    """

    def authenticate(self, request):
        key = request.COOKIES.get(settings.ACCESS_TOKEN_COOKIE)
        if not key:
            return None

        try:
            token = Token.objects.select_related('user').get(key=key)
        except Token.DoesNotExist:
            raise exceptions.AuthenticationFailed("User not found.")

        if token.created < timezone.now() - settings.ACCESS_TOKEN_LIFETIME:
            token.delete()
            raise exceptions.AuthenticationFailed("Session expired. Please sign in again.")

        if not token.user.is_active:
            raise exceptions.AuthenticationFailed("User inactive or deleted.")

        return (token.user, token)

    def authenticate_header(self, request):
        return 'Cookie realm="api"'


class IsPathOwner(BasePermission):
    """Routes carrying a `user_id` may only be used by that user."""
    message = "Access denied. You can only access your own resources."

    def has_permission(self, request, view):
        user_id = view.kwargs.get('user_id')
        if user_id is None:
            return True
        return bool(request.user and request.user.is_authenticated and request.user.id == int(user_id))
