from rest_framework import serializers
from .models import Student


class StudentSerializer(serializers.ModelSerializer):
    """Card holder details embedded in card responses."""
    full_name = serializers.ReadOnlyField()

    class Meta:
        model = Student
        fields = [
            'student_uuid', 'registration_number', 'surname', 'first_name', 'middle_name',
            'full_name', 'department', 'student_status', 'is_active'
        ]
        read_only_fields = fields


class StudentWithoutCardSerializer(serializers.ModelSerializer):
    full_name = serializers.ReadOnlyField()

    class Meta:
        model = Student
        fields = [
            'student_uuid', 'registration_number', 'full_name',
            'department', 'student_status', 'created_at'
        ]
