from django.contrib import admin
from .models import PhysicalLocation, AccessGate


@admin.register(PhysicalLocation)
class PhysicalLocationAdmin(admin.ModelAdmin):
    list_display = ['location_name', 'location_type', 'is_restricted', 'created_at', 'deleted_at']
    list_filter = ['location_type', 'is_restricted']
    search_fields = ['location_name']
    readonly_fields = ['created_at', 'updated_at', 'deleted_at']


@admin.register(AccessGate)
class AccessGateAdmin(admin.ModelAdmin):
    list_display = ['gate_code', 'gate_name', 'location', 'gate_type', 'status', 'deleted_at']
    list_filter = ['gate_type', 'status']
    search_fields = ['gate_code', 'gate_name', 'hardware_id']
    readonly_fields = ['created_at', 'updated_at', 'deleted_at']
