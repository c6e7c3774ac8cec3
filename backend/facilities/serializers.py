from rest_framework import serializers

from .models import PhysicalLocation, AccessGate


class PhysicalLocationSerializer(serializers.ModelSerializer):
    # Declared explicitly: uniqueness is enforced by the store, among live records only
    location_name = serializers.CharField(max_length=255)

    class Meta:
        model = PhysicalLocation
        fields = '__all__'
        read_only_fields = ['location_id', 'created_at', 'updated_at', 'deleted_at']


class AccessGateSerializer(serializers.ModelSerializer):
    gate_code = serializers.CharField(max_length=20)
    hardware_id = serializers.CharField(max_length=100)
    location_name = serializers.CharField(source='location.location_name', read_only=True)
    location_type = serializers.CharField(source='location.location_type', read_only=True)
    location_deleted = serializers.SerializerMethodField()

    class Meta:
        model = AccessGate
        fields = '__all__'
        read_only_fields = ['gate_id', 'created_at', 'updated_at', 'deleted_at']

    def get_location_deleted(self, obj):
        return obj.location.is_deleted
