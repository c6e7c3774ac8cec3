from rest_framework import serializers
from .models import Staff


class StaffSerializer(serializers.ModelSerializer):
    full_name = serializers.ReadOnlyField()

    class Meta:
        model = Staff
        fields = [
            'staff_uuid', 'staff_number', 'surname', 'first_name', 'middle_name', 'full_name',
            'department', 'position', 'employment_status', 'is_active'
        ]
        read_only_fields = fields


class StaffWithoutCardSerializer(serializers.ModelSerializer):
    """Staff who hold no live card yet"""
    full_name = serializers.ReadOnlyField()

    class Meta:
        model = Staff
        fields = [
            'staff_uuid', 'staff_number', 'full_name',
            'department', 'position', 'employment_status', 'created_at'
        ]
