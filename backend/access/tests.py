from datetime import timedelta

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from cards.models import Card
from facilities.models import AccessGate, PhysicalLocation
from students.models import Student

from .models import AccessLog

User = get_user_model()

GRANT_URL = '/api/v1/access/grant/'
LOGS_URL = '/api/v1/access/logs/'


class AccessGrantTest(APITestCase):
    def setUp(self):
        self.student = Student.objects.create(
            surname="Mushi", first_name="Neema",
            registration_number="REG0001", department="Computer Engineering"
        )
        self.card = Card.objects.create(rfid_number='1234567890', card_type='student', student=self.student)
        location = PhysicalLocation.objects.create(location_name='Main Gate Area', location_type='gate')
        self.gate = AccessGate.objects.create(
            gate_code='G-001', gate_name='Main Gate', location=location, hardware_id='HW-001'
        )

    def request_access(self, rfid_number='1234567890', **extra):
        return self.client.post(GRANT_URL, {'rfid_number': rfid_number, **extra}, format='json')

    def test_access_granted(self):
        response = self.request_access(hardware_id='HW-001')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['access_granted'])
        self.assertIsNone(response.data['denial_reason'])
        self.assertEqual(response.data['person']['number'], 'REG0001')

        log = AccessLog.objects.get()
        self.assertEqual(log.access_status, 'granted')
        self.assertEqual(log.card, self.card)
        self.assertEqual(log.gate, self.gate)

    def test_unknown_rfid_is_denied_and_logged(self):
        response = self.request_access('0000000000')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['access_granted'])
        self.assertEqual(response.data['denial_reason'], 'invalid_rfid')
        self.assertNotIn('person', response.data)

        log = AccessLog.objects.get()
        self.assertEqual(log.access_status, 'denied')
        self.assertIsNone(log.card)

    def test_deactivated_card(self):
        Card.objects.filter(pk=self.card.pk).update(is_active=False)
        self.assertEqual(self.request_access().data['denial_reason'], 'card_inactive')

    def test_expired_card_is_denied_without_changing_it(self):
        Card.objects.filter(pk=self.card.pk).update(expiry_date=timezone.now() - timedelta(days=1))
        self.assertEqual(self.request_access().data['denial_reason'], 'card_expired')
        self.assertTrue(Card.objects.get(pk=self.card.pk).is_active)

    def test_deleted_card_is_unknown(self):
        Card.objects.filter(pk=self.card.pk).update(deleted_at=timezone.now())
        self.assertEqual(self.request_access().data['denial_reason'], 'invalid_rfid')

    def test_inactive_holder(self):
        Student.objects.filter(pk=self.student.pk).update(is_active=False)
        self.assertEqual(self.request_access().data['denial_reason'], 'subject_inactive')

    def test_gate_checks(self):
        self.assertEqual(self.request_access(hardware_id='HW-404').data['denial_reason'], 'unknown_gate')

        AccessGate.objects.filter(pk=self.gate.pk).update(status='maintenance')
        self.assertEqual(self.request_access(hardware_id='HW-001').data['denial_reason'], 'gate_unavailable')

        AccessGate.objects.filter(pk=self.gate.pk).update(status='active', deleted_at=timezone.now())
        self.assertEqual(self.request_access(hardware_id='HW-001').data['denial_reason'], 'unknown_gate')
        self.assertEqual(AccessLog.objects.count(), 3)

    def test_rfid_is_trimmed(self):
        self.assertTrue(self.request_access('  1234567890 ').data['access_granted'])
        self.assertEqual(AccessLog.objects.get().rfid_number, '1234567890')

    def test_invalid_request(self):
        response = self.request_access('ab')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['field'], 'rfid_number')
        self.assertFalse(AccessLog.objects.exists())


class AccessLogListTest(APITestCase):
    def setUp(self):
        self.officer = User.objects.create_user(
            username='officer', email='officer@example.com', full_name='Registration Officer',
            password='officer123', user_type='registration_officer'
        )
        now = timezone.now()
        AccessLog.objects.create(rfid_number='111', access_status='granted', timestamp=now - timedelta(minutes=2))
        AccessLog.objects.create(
            rfid_number='222', access_status='denied', denial_reason='invalid_rfid', timestamp=now
        )

    def test_requires_operator(self):
        response = self.client.get(LOGS_URL)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_newest_first_and_filters(self):
        self.client.force_authenticate(user=self.officer)
        response = self.client.get(LOGS_URL)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([log['rfid_number'] for log in response.data['results']], ['222', '111'])

        response = self.client.get(LOGS_URL, {'access_status': 'denied'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['denial_reason'], 'invalid_rfid')
