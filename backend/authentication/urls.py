from django.urls import path
from .views import CreateUserAPIView, LoginAPIView, LogoutAPIView, RefreshTokenAPIView

urlpatterns = [
    path("login", LoginAPIView.as_view(), name="login"),
    path("refresh", RefreshTokenAPIView.as_view(), name="refresh-token"),
    path("logout", LogoutAPIView.as_view(), name="logout"),
    path("create-user", CreateUserAPIView.as_view(), name="create-user"),
]
