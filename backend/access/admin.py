from django.contrib import admin
from .models import AccessLog


@admin.register(AccessLog)
class AccessLogAdmin(admin.ModelAdmin):
    list_display = ['log_uuid', 'rfid_number', 'gate', 'access_status', 'denial_reason', 'timestamp']
    list_filter = ['access_status', 'denial_reason', 'timestamp']
    search_fields = ['rfid_number', 'hardware_id', 'card__student__registration_number', 'card__staff__staff_number']
    readonly_fields = [
        'log_uuid', 'rfid_number', 'card', 'gate', 'hardware_id', 'access_status',
        'denial_reason', 'ip_address', 'timestamp', 'response_time_ms', 'created_at'
    ]
    date_hierarchy = 'timestamp'
    ordering = ['-timestamp']

    def has_add_permission(self, request):
        """Access logs are only created by the grant endpoint."""
        return False

    def has_change_permission(self, request, obj=None):
        return False
