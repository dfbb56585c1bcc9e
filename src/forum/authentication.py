# authentication.py

import logging

from django.core.cache import cache
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.authentication import JWTAuthentication

from .models import User

logger = logging.getLogger(__name__)


class ForumJWTAuthentication(JWTAuthentication):
    """
    JWT authentication that rejects inactive users and blacklisted tokens.

    The token's ``role`` claim is attached to the request.
    """

    def get_user(self, validated_token):
        user_id = validated_token.get("user_id")
        if not user_id:
            raise AuthenticationFailed("User ID not found in token", code="user_id_missing")

        try:
            user = User.objects.get(user_id=user_id, is_active=True)
        except User.DoesNotExist:
            raise AuthenticationFailed("User not found", code="user_not_found") from None

        token_jti = validated_token.get("jti")
        if token_jti and cache.get(f"blacklist:{token_jti}"):
            raise AuthenticationFailed("Token has been blacklisted", code="token_blacklisted")

        return user

    def authenticate(self, request):
        header = self.get_header(request)
        if header is None:
            return None

        raw_token = self.get_raw_token(header)
        if raw_token is None:
            return None

        validated_token = self.get_validated_token(raw_token)
        user = self.get_user(validated_token)

        request.user_id = validated_token.get("user_id")
        request.role = validated_token.get("role", user.role)
        return user, validated_token
