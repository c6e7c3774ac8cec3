from rest_framework import serializers
from .models import AccessLog


class AccessRequestSerializer(serializers.Serializer):
    """
    Serializer for RFID access requests.
    """
    rfid_number = serializers.CharField(
        max_length=50,
        help_text="RFID number to check for access"
    )

    hardware_id = serializers.CharField(
        max_length=100,
        required=False,
        allow_blank=True,
        help_text="Hardware id of the gate reader (optional)"
    )

    def validate_rfid_number(self, value):
        value = value.strip()
        if len(value) < 3:
            raise serializers.ValidationError("RFID number is too short.")
        return value


class AccessLogSerializer(serializers.ModelSerializer):
    card_uuid = serializers.UUIDField(source='card.card_uuid', read_only=True, default=None)
    card_holder_name = serializers.CharField(source='card.card_holder_name', read_only=True, default=None)
    gate_code = serializers.CharField(source='gate.gate_code', read_only=True, default=None)
    access_status_display = serializers.CharField(source='get_access_status_display', read_only=True)

    class Meta:
        model = AccessLog
        fields = [
            'log_uuid', 'rfid_number', 'card_uuid', 'card_holder_name', 'gate_code',
            'hardware_id', 'access_status', 'access_status_display', 'denial_reason',
            'ip_address', 'timestamp', 'response_time_ms'
        ]
        read_only_fields = fields
