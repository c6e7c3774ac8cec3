from django.urls import path
from . import views

urlpatterns = [
    path('grant/', views.AccessGrantView.as_view(), name='access-grant'),  # POST, gate readers
    path('logs/', views.AccessLogListView.as_view(), name='access-logs'),  # GET
]
