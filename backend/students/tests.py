from django.test import TestCase
from django.utils import timezone

from cards.models import Card

from .models import Student
from .serializers import StudentWithoutCardSerializer


class StudentModelTest(TestCase):
    def setUp(self):
        self.student = Student.objects.create(
            surname="Mushi",
            first_name="Neema",
            registration_number="T21-03-00001",
            department="Computer Engineering"
        )

    def test_student_creation(self):
        self.assertEqual(self.student.student_status, "Enrolled")
        self.assertTrue(self.student.is_active)
        self.assertEqual(str(self.student), "Neema Mushi (T21-03-00001)")
        self.assertEqual(self.student.full_name, "Neema Mushi")

    def test_serializer_for_students_without_cards(self):
        data = StudentWithoutCardSerializer(self.student).data
        self.assertEqual(data['registration_number'], "T21-03-00001")
        self.assertEqual(data['student_uuid'], str(self.student.student_uuid))
        self.assertEqual(data['full_name'], "Neema Mushi")


class StudentQuerySetTest(TestCase):
    def setUp(self):
        self.with_card = Student.objects.create(
            surname="Mushi", first_name="Neema", registration_number="REG0001", department="Computer Engineering"
        )
        self.without_card = Student.objects.create(
            surname="Kimaro", first_name="Baraka", middle_name="John",
            registration_number="REG0002", department="Civil Engineering"
        )
        Student.objects.create(
            surname="Inactive", first_name="Student", registration_number="REG0003",
            department="Civil Engineering", is_active=False
        )
        Card.objects.create(rfid_number='1000000001', card_type='student', student=self.with_card)

    def test_without_live_card(self):
        self.assertEqual(list(Student.objects.without_live_card()), [self.without_card])

    def test_deleted_card_does_not_count(self):
        Card.objects.filter(student=self.with_card).update(deleted_at=timezone.now())
        self.assertEqual(
            set(Student.objects.without_live_card()), {self.with_card, self.without_card}
        )

    def test_search(self):
        self.assertEqual(list(Student.objects.search('civil')), list(Student.objects.filter(department__startswith='Civil')))
        self.assertEqual(list(Student.objects.search('REG0001')), [self.with_card])
        self.assertEqual(Student.objects.search('').count(), 3)

    def test_full_name_includes_middle_name(self):
        self.assertEqual(self.without_card.full_name, "Baraka John Kimaro")
