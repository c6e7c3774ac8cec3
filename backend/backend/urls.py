from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('auth/', include("authentication.urls")),
    path('', include('facilities.urls')),
    path('api/cards/', include('cards.urls')),
    path('api/v1/access/', include('access.urls')),  # Access control API
]
