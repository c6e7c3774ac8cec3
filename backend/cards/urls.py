from rest_framework import routers
from django.urls import path
from .views import CardViewSet, verify_subject

router = routers.DefaultRouter()
router.register(r'', CardViewSet, basename='card')

urlpatterns = [
    path('verify/<str:subject_type>/<str:subject_uuid>/', verify_subject, name='verify-subject'),
] + router.urls
