from django.contrib import admin
from .models import Card


@admin.register(Card)
class CardAdmin(admin.ModelAdmin):
    list_display = ['card_uuid', 'rfid_number', 'card_type', 'is_active', 'expiry_date', 'deleted_at']
    list_filter = ['card_type', 'is_active']
    search_fields = ['rfid_number', 'student__registration_number', 'staff__staff_number']
    # State changes go through the lifecycle manager
    readonly_fields = ['card_uuid', 'rfid_number', 'is_active', 'issued_date', 'created_at', 'updated_at', 'deleted_at']
