import logging

from django.core.cache import cache
from django.utils import timezone
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed, Throttled
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import RefreshToken

from core.exceptions import ValidationError
from core.permissions import IsAdministrator

from .models import User
from .serializers import CreateUserSerializer, LoginSerializer, LogoutSerializer, RefreshTokenSerializer

logger = logging.getLogger(__name__)

MAX_FAILED_ATTEMPTS = 3
FAILED_ATTEMPT_WINDOW = 10 * 60
# Failures in a row before the account stays locked until an administrator unlocks it
ACCOUNT_LOCK_THRESHOLD = 10


class LoginAPIView(APIView):
    """
    POST /auth/login
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        username = serializer.validated_data["username"]
        password = serializer.validated_data["password"]

        # 3 failed attempts per username per 10 minutes
        username_rate_key = f"login_username_{username}"
        username_attempts = cache.get(username_rate_key, 0)
        if username_attempts >= MAX_FAILED_ATTEMPTS:
            raise Throttled(
                wait=FAILED_ATTEMPT_WINDOW,
                detail="Too many login attempts for this username. Try again in 10 minutes."
            )

        user = User.objects.filter(username=username, is_active=True).first()
        if user is None or user.account_locked or not user.check_password(password):
            if user is not None:
                user.failed_login_attempts += 1
                if user.failed_login_attempts >= ACCOUNT_LOCK_THRESHOLD and not user.account_locked:
                    user.account_locked = True
                    logger.warning(f"Account {user.username} locked after {user.failed_login_attempts} failed logins")
                user.save(update_fields=["failed_login_attempts", "account_locked"])
            cache.set(username_rate_key, username_attempts + 1, timeout=FAILED_ATTEMPT_WINDOW)
            logger.warning(f"Failed login for username {username}")
            raise AuthenticationFailed("Invalid credentials.")

        cache.delete(username_rate_key)
        user.failed_login_attempts = 0
        user.last_login = timezone.now()
        user.save(update_fields=["last_login", "failed_login_attempts"])

        refresh = RefreshToken.for_user(user)
        refresh['user_type'] = user.user_type
        refresh['username'] = user.username

        access = refresh.access_token
        access['user_type'] = user.user_type
        access['username'] = user.username

        logger.info(f"Login successful for {user.username} ({user.user_type})")
        return Response({
            "access": str(access),
            "refresh": str(refresh),
            "user_type": user.user_type,
            "user_id": str(user.id),
            "username": user.username,
            "message": "Login successful."
        }, status=status.HTTP_200_OK)


class RefreshTokenAPIView(APIView):
    """
    POST /auth/refresh
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = RefreshTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            refresh_token = RefreshToken(serializer.validated_data['refresh'])
            data = {'access': str(refresh_token.access_token)}

            if api_settings.ROTATE_REFRESH_TOKENS:
                if api_settings.BLACKLIST_AFTER_ROTATION:
                    refresh_token.blacklist()
                refresh_token.set_jti()
                refresh_token.set_exp()
                refresh_token.set_iat()
                data['refresh'] = str(refresh_token)

            return Response(data, status=status.HTTP_200_OK)
        except TokenError as e:
            raise InvalidToken(e.args[0])


class LogoutAPIView(APIView):
    """
    POST /auth/logout
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            RefreshToken(serializer.validated_data['refresh']).blacklist()
        except TokenError:
            raise ValidationError("Invalid refresh token.", field='refresh')

        logger.info(f"Logout by {request.user.username} ({request.user.user_type})")
        return Response({"message": "Successfully logged out."}, status=status.HTTP_200_OK)


class CreateUserAPIView(APIView):
    """
    POST /auth/create-user
    Only administrators can create users
    """
    permission_classes = [IsAdministrator]

    def post(self, request):
        serializer = CreateUserSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        logger.info(
            f"User {user.username} ({user.user_type}) created by "
            f"{request.user.username} ({request.user.user_type})"
        )
        return Response({
            "message": "User created successfully.",
            "user_id": str(user.id),
            "username": user.username,
            "email": user.email
        }, status=status.HTTP_201_CREATED)
