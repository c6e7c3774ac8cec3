from django.contrib import admin
from .models import UniquenessReservation


@admin.register(UniquenessReservation)
class UniquenessReservationAdmin(admin.ModelAdmin):
    list_display = ['namespace', 'key', 'entity_type', 'entity_id', 'reserved_at']
    list_filter = ['namespace', 'entity_type']
    search_fields = ['key', 'entity_id']

    def has_add_permission(self, request):
        # Reservations are owned by the uniqueness index
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
