from django.test import TestCase
from django.utils import timezone

from cards.models import Card

from .models import Staff
from .serializers import StaffSerializer, StaffWithoutCardSerializer


class StaffModelTest(TestCase):
    def setUp(self):
        self.staff = Staff.objects.create(
            surname="Doe",
            first_name="John",
            staff_number="STF001",
            department="IT Department",
            position="System Administrator"
        )

    def test_staff_creation(self):
        self.assertEqual(self.staff.surname, "Doe")
        self.assertEqual(self.staff.first_name, "John")
        self.assertEqual(self.staff.staff_number, "STF001")
        self.assertEqual(self.staff.employment_status, "Active")
        self.assertTrue(self.staff.is_active)
        self.assertEqual(str(self.staff), "John Doe (STF001)")
        self.assertEqual(self.staff.full_name, "John Doe")

    def test_staff_uuid_is_unique(self):
        staff2 = Staff.objects.create(
            surname="Smith",
            first_name="Jane",
            staff_number="STF002",
            department="HR",
            position="HR Manager"
        )
        self.assertNotEqual(self.staff.staff_uuid, staff2.staff_uuid)

    def test_cards_relation_keeps_deleted_cards(self):
        old = Card.objects.create(rfid_number='9000000001', card_type='staff', staff=self.staff)
        Card.objects.filter(pk=old.pk).update(deleted_at=timezone.now())
        Card.objects.create(rfid_number='9000000002', card_type='staff', staff=self.staff)

        self.assertEqual(self.staff.cards.count(), 2)
        self.assertEqual(self.staff.cards.alive().get().rfid_number, '9000000002')

    def test_serializers(self):
        data = StaffSerializer(self.staff).data
        self.assertEqual(data['staff_uuid'], str(self.staff.staff_uuid))

        data = StaffWithoutCardSerializer(self.staff).data
        self.assertEqual(data['staff_number'], "STF001")
        self.assertEqual(data['full_name'], "John Doe")
