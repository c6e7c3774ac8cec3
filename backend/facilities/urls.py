from django.urls import path
from .views import (
    PhysicalLocationsCreateView, PhysicalLocationsListView, PhysicalLocationsDetailView,
    PhysicalLocationsUpdateView, PhysicalLocationsDeleteView, PhysicalLocationsRestoreView,
    AccessGatesCreateView, AccessGatesListView, AccessGatesDetailView,
    AccessGatesUpdateView, AccessGatesDeleteView, AccessGatesRestoreView,
)

urlpatterns = [
    # Physical Locations URLs
    path('api/administrator/physical-locations/', PhysicalLocationsListView.as_view(), name='physical-locations-list'),  # GET
    path('api/administrator/physical-locations/create/', PhysicalLocationsCreateView.as_view(), name='physical-locations-create'),  # POST
    path('api/administrator/physical-locations/<uuid:location_id>/', PhysicalLocationsDetailView.as_view(), name='physical-locations-detail'),  # GET, deleted included
    path('api/administrator/physical-locations/<uuid:location_id>/update/', PhysicalLocationsUpdateView.as_view(), name='physical-locations-update'),  # PUT & PATCH
    path('api/administrator/physical-locations/<uuid:location_id>/delete/', PhysicalLocationsDeleteView.as_view(), name='physical-locations-delete'),  # DELETE (soft delete)
    path('api/administrator/physical-locations/<uuid:location_id>/restore/', PhysicalLocationsRestoreView.as_view(), name='physical-locations-restore'),  # POST

    # Access Gates URLs
    path('api/administrator/access-gates/', AccessGatesListView.as_view(), name='access-gates-list'),
    path('api/administrator/access-gates/create/', AccessGatesCreateView.as_view(), name='access-gates-create'),
    path('api/administrator/access-gates/<uuid:gate_id>/', AccessGatesDetailView.as_view(), name='access-gates-detail'),
    path('api/administrator/access-gates/<uuid:gate_id>/update/', AccessGatesUpdateView.as_view(), name='access-gates-update'),
    path('api/administrator/access-gates/<uuid:gate_id>/delete/', AccessGatesDeleteView.as_view(), name='access-gates-delete'),
    path('api/administrator/access-gates/<uuid:gate_id>/restore/', AccessGatesRestoreView.as_view(), name='access-gates-restore'),
]
