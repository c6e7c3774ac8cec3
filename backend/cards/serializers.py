from django.utils import timezone
from rest_framework import serializers

from staff.serializers import StaffSerializer
from students.serializers import StudentSerializer

from .models import Card
from .subjects import SubjectRef


class CardSerializer(serializers.ModelSerializer):
    student_info = StudentSerializer(source='student', read_only=True)
    staff_info = StaffSerializer(source='staff', read_only=True)

    card_holder_name = serializers.ReadOnlyField()
    card_holder_number = serializers.ReadOnlyField()
    department = serializers.ReadOnlyField()
    state = serializers.ReadOnlyField()
    is_expired = serializers.SerializerMethodField()

    class Meta:
        model = Card
        exclude = ['id', 'student', 'staff']
        read_only_fields = [
            'card_uuid', 'rfid_number', 'card_type', 'is_active', 'issued_date',
            'expiry_date', 'created_at', 'updated_at', 'deleted_at',
        ]

    def get_is_expired(self, obj):
        return obj.is_expired(timezone.now())


class CardListSerializer(serializers.ModelSerializer):
    """Serializer for listing cards with minimal card holder info"""
    card_holder_name = serializers.ReadOnlyField()
    card_holder_number = serializers.ReadOnlyField()
    department = serializers.ReadOnlyField()
    state = serializers.ReadOnlyField()
    is_expired = serializers.SerializerMethodField()

    class Meta:
        model = Card
        fields = [
            'card_uuid', 'rfid_number', 'card_type', 'card_holder_name', 'card_holder_number',
            'department', 'state', 'is_active', 'is_expired', 'issued_date',
            'expiry_date', 'created_at', 'deleted_at'
        ]

    def get_is_expired(self, obj):
        return obj.is_expired(timezone.now())


class CardIssueSerializer(serializers.Serializer):
    """
    Input for issuing one card. Business rules (subject active, RFID
    choice, expiry in the future) are enforced by the lifecycle manager.
    """
    card_type = serializers.ChoiceField(choices=Card.CARD_TYPE_CHOICES)
    student_uuid = serializers.UUIDField(required=False)
    staff_uuid = serializers.UUIDField(required=False)
    rfid_number = serializers.CharField(required=False, allow_blank=True, max_length=50)
    generate_rfid = serializers.BooleanField(default=False)
    expiry_date = serializers.DateTimeField(required=False, allow_null=True)

    def validate(self, data):
        id_field = f"{data['card_type']}_uuid"
        if not data.get(id_field):
            raise serializers.ValidationError({id_field: f"{id_field} is required for {data['card_type']} cards."})
        return data

    def subject_ref(self):
        data = self.validated_data
        return SubjectRef(data['card_type'], data[f"{data['card_type']}_uuid"])


class CardUpdateSerializer(serializers.Serializer):
    rfid_number = serializers.CharField(required=False, max_length=50)
    expiry_date = serializers.DateTimeField(required=False)

    def validate(self, data):
        unknown = sorted(set(self.initial_data) - set(self.fields))
        if unknown:
            raise serializers.ValidationError({unknown[0]: f"Field '{unknown[0]}' cannot be changed directly."})
        if not data:
            raise serializers.ValidationError("Provide rfid_number or expiry_date to update.")
        return data


class SubjectRefSerializer(serializers.Serializer):
    subject_type = serializers.CharField()
    # Kept as text so a malformed id fails its own item, not the batch
    subject_id = serializers.CharField()


class BulkIssueSerializer(serializers.Serializer):
    subject_refs = SubjectRefSerializer(many=True, allow_empty=True)
    generate_rfid = serializers.BooleanField(default=True)
    expiry_date = serializers.DateTimeField(required=False, allow_null=True)

    def subject_refs_list(self):
        return [SubjectRef(item['subject_type'], item['subject_id']) for item in self.validated_data['subject_refs']]


class BulkStudentCardsSerializer(serializers.Serializer):
    student_uuids = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    generate_rfid = serializers.BooleanField(default=True)
    expiry_date = serializers.DateTimeField(required=False, allow_null=True)

    def subject_refs_list(self):
        return [SubjectRef.student(value) for value in self.validated_data['student_uuids']]


class BulkStaffCardsSerializer(serializers.Serializer):
    staff_uuids = serializers.ListField(child=serializers.CharField(), allow_empty=True)
    generate_rfid = serializers.BooleanField(default=True)
    expiry_date = serializers.DateTimeField(required=False, allow_null=True)

    def subject_refs_list(self):
        return [SubjectRef.staff(value) for value in self.validated_data['staff_uuids']]
