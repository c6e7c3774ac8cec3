from datetime import timedelta
import random
import threading
import uuid

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, TransactionTestCase, override_settings
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from core.exceptions import (
    AlreadyDeletedError, CredentialExpired, DuplicateRfid, Forbidden,
    InvalidTransitionError, SubjectAlreadyHasCredential, ValidationError,
)
from core.models import UniquenessReservation
from staff.models import Staff
from students.models import Student

from .lifecycle import CredentialLifecycleManager
from .models import Card
from .provisioning import BulkProvisioningEngine
from .subjects import SubjectRef

User = get_user_model()


def make_student(number, **extra):
    return Student.objects.create(
        surname=f"Surname{number}",
        first_name=f"First{number}",
        registration_number=f"REG{number:04d}",
        department=extra.pop('department', 'Computer Engineering'),
        **extra
    )


def make_staff(number, **extra):
    return Staff.objects.create(
        surname=f"Staff{number}",
        first_name=f"Member{number}",
        staff_number=f"STF{number:03d}",
        department=extra.pop('department', 'Finance'),
        position='Accountant',
        **extra
    )


def make_user(username, user_type):
    return User.objects.create_user(
        username=username, email=f'{username}@example.com', full_name=username.title(),
        password='password123', user_type=user_type
    )


class SequenceRng:
    """Stands in for ``random``: hands out the given RFID candidates in order."""
    def __init__(self, *candidates):
        self.candidates = list(candidates)

    def choices(self, population, k):
        return list(self.candidates.pop(0))


class CardModelTest(TestCase):
    def test_derived_state(self):
        student = make_student(1)
        card = Card.objects.create(rfid_number='1234567890', card_type='student', student=student)
        self.assertEqual(card.state, Card.STATE_PROVISIONED)
        self.assertEqual(card.card_holder_name, 'First1 Surname1')
        self.assertEqual(card.card_holder_number, 'REG0001')

        card.is_active = False
        self.assertEqual(card.state, Card.STATE_DEACTIVATED)
        card.deleted_at = timezone.now()
        self.assertEqual(card.state, Card.STATE_DELETED)

    def test_is_expired_is_evaluated_against_given_time(self):
        now = timezone.now()
        card = Card(expiry_date=now + timedelta(days=1))
        self.assertFalse(card.is_expired(now))
        self.assertTrue(card.is_expired(now + timedelta(days=2)))
        self.assertFalse(Card(expiry_date=None).is_expired(now))


class CredentialLifecycleManagerTest(TestCase):
    def setUp(self):
        self.admin = make_user('admin', 'administrator')
        self.officer = make_user('officer', 'registration_officer')
        self.manager = CredentialLifecycleManager(actor=self.admin)
        self.student = make_student(1)
        self.s1 = SubjectRef.for_subject(self.student)

    def live_cards(self, subject):
        return subject.cards.alive().count()

    def test_issue_delete_reissue_scenario(self):
        card = self.manager.issue(self.s1, generate_rfid=True)
        self.assertTrue(card.is_active)
        self.assertEqual(card.state, Card.STATE_PROVISIONED)
        self.assertEqual(len(card.rfid_number), 10)
        self.assertTrue(card.rfid_number.isdigit())

        with self.assertRaises(SubjectAlreadyHasCredential):
            self.manager.issue(self.s1, generate_rfid=True)

        self.manager.delete(card.card_uuid)
        self.assertEqual(self.live_cards(self.student), 0)

        replacement = self.manager.issue(self.s1, generate_rfid=True)
        self.assertNotEqual(replacement.rfid_number, card.rfid_number)
        self.assertNotEqual(replacement.card_uuid, card.card_uuid)
        self.assertEqual(self.live_cards(self.student), 1)

    def test_generated_rfid_skips_numbers_of_deleted_cards(self):
        card = self.manager.issue(self.s1, rfid_number='0000000001')
        self.manager.delete(card.card_uuid)

        manager = CredentialLifecycleManager(actor=self.admin, rng=SequenceRng('0000000001', '0000000002'))
        replacement = manager.issue(self.s1, generate_rfid=True)
        self.assertEqual(replacement.rfid_number, '0000000002')

    def test_explicit_rfid_can_be_reused_after_delete(self):
        card = self.manager.issue(self.s1, rfid_number='RFID-001')
        self.manager.delete(card.card_uuid)
        replacement = self.manager.issue(self.s1, rfid_number='RFID-001')
        self.assertEqual(replacement.rfid_number, 'RFID-001')

    def test_explicit_rfid_collision(self):
        self.manager.issue(self.s1, rfid_number='RFID-001')
        other = SubjectRef.for_subject(make_student(2))
        with self.assertRaises(DuplicateRfid) as ctx:
            self.manager.issue(other, rfid_number=' RFID-001 ')
        self.assertEqual(ctx.exception.field, 'rfid_number')
        self.assertEqual(Card.objects.count(), 1)

    def test_duplicate_subject_wins_over_duplicate_rfid(self):
        self.manager.issue(self.s1, rfid_number='RFID-001')
        with self.assertRaises(SubjectAlreadyHasCredential):
            self.manager.issue(self.s1, rfid_number='RFID-001')

    def test_failed_issue_leaves_no_reservation(self):
        self.manager.issue(self.s1, rfid_number='RFID-001')
        s2 = SubjectRef.for_subject(make_student(2))
        with self.assertRaises(DuplicateRfid):
            self.manager.issue(s2, rfid_number='RFID-001')
        self.assertFalse(
            UniquenessReservation.objects.filter(
                namespace=UniquenessReservation.SUBJECT_CREDENTIAL, key=s2.key
            ).exists()
        )
        self.manager.issue(s2, rfid_number='RFID-002')

    def test_rfid_choice_is_exclusive(self):
        with self.assertRaises(ValidationError):
            self.manager.issue(self.s1, generate_rfid=True, rfid_number='RFID-001')
        with self.assertRaises(ValidationError):
            self.manager.issue(self.s1)

    def test_rfid_length_is_checked(self):
        with self.assertRaises(ValidationError) as ctx:
            self.manager.issue(self.s1, rfid_number=' ab ')
        self.assertEqual(ctx.exception.field, 'rfid_number')

    def test_expiry_in_the_past_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.manager.issue(self.s1, generate_rfid=True, expiry_date=timezone.now() - timedelta(days=1))
        self.assertEqual(ctx.exception.field, 'expiry_date')

    def test_inactive_or_unknown_subject_is_rejected(self):
        inactive = make_student(2, is_active=False)
        with self.assertRaises(ValidationError) as ctx:
            self.manager.issue(SubjectRef.for_subject(inactive), generate_rfid=True)
        self.assertEqual(ctx.exception.field, 'student_uuid')

        with self.assertRaises(ValidationError):
            self.manager.issue(SubjectRef.student(uuid.uuid4()), generate_rfid=True)
        with self.assertRaises(ValidationError):
            self.manager.issue(SubjectRef('visitor', uuid.uuid4()), generate_rfid=True)
        self.assertFalse(Card.objects.exists())

    def test_staff_card(self):
        staff = make_staff(1)
        card = self.manager.issue(SubjectRef.for_subject(staff), generate_rfid=True)
        self.assertEqual(card.card_type, 'staff')
        self.assertEqual(card.card_holder_number, 'STF001')

    def test_student_and_staff_keys_do_not_collide(self):
        staff = make_staff(1)
        self.manager.issue(self.s1, generate_rfid=True)
        self.manager.issue(SubjectRef.for_subject(staff), generate_rfid=True)
        self.assertEqual(Card.objects.alive().count(), 2)

    def test_deactivate_twice(self):
        card = self.manager.issue(self.s1, generate_rfid=True)
        card = self.manager.deactivate(card.card_uuid)
        self.assertFalse(card.is_active)

        with self.assertRaises(InvalidTransitionError) as ctx:
            self.manager.deactivate(card.card_uuid)
        self.assertEqual(ctx.exception.message, 'Card is already deactivated.')
        self.assertEqual(self.manager.get(card.card_uuid).state, Card.STATE_DEACTIVATED)

    def test_activate_active_card(self):
        card = self.manager.issue(self.s1, generate_rfid=True)
        with self.assertRaises(InvalidTransitionError):
            self.manager.activate(card.card_uuid)

    def test_activate_round_trip(self):
        card = self.manager.issue(self.s1, generate_rfid=True)
        self.manager.deactivate(card.card_uuid)
        card = self.manager.activate(card.card_uuid)
        self.assertTrue(card.is_active)
        self.assertTrue(Card.objects.get(pk=card.pk).is_active)

    def test_activating_expired_card_is_rejected(self):
        now = timezone.now()
        card = self.manager.issue(self.s1, generate_rfid=True, expiry_date=now + timedelta(days=1))
        self.manager.deactivate(card.card_uuid)

        later = CredentialLifecycleManager(actor=self.admin, clock=lambda: now + timedelta(days=2))
        with self.assertRaises(CredentialExpired):
            later.activate(card.card_uuid)
        self.assertFalse(Card.objects.get(pk=card.pk).is_active)

        # Extending the expiry date unblocks activation
        later.update(card.card_uuid, expiry_date=now + timedelta(days=30))
        self.assertTrue(later.activate(card.card_uuid).is_active)

    def test_expiry_does_not_change_stored_state(self):
        now = timezone.now()
        card = self.manager.issue(self.s1, generate_rfid=True, expiry_date=now + timedelta(days=1))
        later = CredentialLifecycleManager(actor=self.admin, clock=lambda: now + timedelta(days=2))

        card = later.get(card.card_uuid)
        self.assertTrue(later.is_expired(card))
        self.assertTrue(card.is_active)
        self.assertEqual(card.state, Card.STATE_PROVISIONED)

    def test_transitions_on_deleted_card(self):
        card = self.manager.issue(self.s1, generate_rfid=True)
        self.manager.delete(card.card_uuid)
        with self.assertRaises(InvalidTransitionError):
            self.manager.deactivate(card.card_uuid)
        with self.assertRaises(InvalidTransitionError):
            self.manager.activate(card.card_uuid)
        with self.assertRaises(InvalidTransitionError):
            self.manager.update(card.card_uuid, rfid_number='NEW-RFID')
        with self.assertRaises(AlreadyDeletedError):
            self.manager.delete(card.card_uuid)

    def test_restore_keeps_activation_state(self):
        card = self.manager.issue(self.s1, generate_rfid=True)
        self.manager.deactivate(card.card_uuid)
        self.manager.delete(card.card_uuid)

        restored = self.manager.restore(card.card_uuid)
        self.assertIsNone(restored.deleted_at)
        self.assertEqual(restored.state, Card.STATE_DEACTIVATED)
        self.assertEqual(restored.rfid_number, card.rfid_number)

    def test_restore_fails_after_replacement(self):
        card = self.manager.issue(self.s1, generate_rfid=True)
        self.manager.delete(card.card_uuid)
        self.manager.issue(self.s1, generate_rfid=True)

        with self.assertRaises(SubjectAlreadyHasCredential):
            self.manager.restore(card.card_uuid)
        self.assertEqual(self.live_cards(self.student), 1)

    def test_restore_fails_when_rfid_was_reused(self):
        card = self.manager.issue(self.s1, rfid_number='RFID-001')
        self.manager.delete(card.card_uuid)
        self.manager.issue(SubjectRef.for_subject(make_student(2)), rfid_number='RFID-001')

        with self.assertRaises(DuplicateRfid):
            self.manager.restore(card.card_uuid)

    def test_update_rfid_moves_reservation(self):
        card = self.manager.issue(self.s1, rfid_number='RFID-001')
        self.manager.update(card.card_uuid, rfid_number='RFID-002')

        other = SubjectRef.for_subject(make_student(2))
        self.manager.issue(other, rfid_number='RFID-001')
        with self.assertRaises(DuplicateRfid):
            self.manager.issue(SubjectRef.for_subject(make_student(3)), rfid_number='RFID-002')

    def test_update_rejects_other_fields(self):
        card = self.manager.issue(self.s1, generate_rfid=True)
        with self.assertRaises(ValidationError):
            self.manager.update(card.card_uuid, is_active=False)

    def test_registration_officer_cannot_delete_or_restore(self):
        card = self.manager.issue(self.s1, generate_rfid=True)
        officer_manager = CredentialLifecycleManager(actor=self.officer)
        self.assertFalse(officer_manager.deactivate(card.card_uuid).is_active)

        with self.assertRaises(Forbidden):
            officer_manager.delete(card.card_uuid)
        self.manager.delete(card.card_uuid)
        with self.assertRaises(Forbidden):
            officer_manager.restore(card.card_uuid)

    def test_verify(self):
        result = self.manager.verify(self.s1)
        self.assertFalse(result.verified)
        self.assertIsNone(result.subject)

        card = self.manager.issue(self.s1, generate_rfid=True)
        result = self.manager.verify(self.s1)
        self.assertTrue(result.verified)
        self.assertTrue(result.card_active)
        self.assertEqual(result.subject['registration_number'], 'REG0001')

        self.manager.deactivate(card.card_uuid)
        result = self.manager.verify(self.s1)
        self.assertTrue(result.verified)
        self.assertFalse(result.card_active)

        self.manager.delete(card.card_uuid)
        self.assertFalse(self.manager.verify(self.s1).verified)

    def test_verify_does_not_mutate(self):
        card = self.manager.issue(self.s1, generate_rfid=True, expiry_date=timezone.now() + timedelta(days=1))
        before = Card.objects.get(pk=card.pk)

        later = CredentialLifecycleManager(clock=lambda: timezone.now() + timedelta(days=5))
        result = later.verify(self.s1)
        self.assertTrue(result.verified)
        self.assertFalse(result.card_active)

        after = Card.objects.get(pk=card.pk)
        self.assertEqual(after.updated_at, before.updated_at)
        self.assertTrue(after.is_active)

    def test_verify_unknown_and_malformed_subjects(self):
        self.assertFalse(self.manager.verify(SubjectRef.student(uuid.uuid4())).verified)
        self.assertFalse(self.manager.verify(SubjectRef.student('not-a-uuid')).verified)
        self.assertFalse(self.manager.verify(SubjectRef('visitor', uuid.uuid4())).verified)

    def test_random_interleavings_keep_one_live_card_per_subject(self):
        rng = random.Random(20240521)
        subjects = [self.student, make_student(2), make_staff(1)]
        manager = CredentialLifecycleManager(actor=self.admin, rng=rng)

        for _ in range(80):
            subject = rng.choice(subjects)
            ref = SubjectRef.for_subject(subject)
            operation = rng.choice(['issue', 'issue', 'delete', 'restore'])

            if operation == 'issue':
                try:
                    manager.issue(ref, generate_rfid=True)
                except SubjectAlreadyHasCredential:
                    self.assertEqual(self.live_cards(subject), 1)
            elif operation == 'delete':
                card = subject.cards.alive().first()
                if card is not None:
                    manager.delete(card.card_uuid)
            else:
                card = subject.cards.deleted().first()
                if card is not None:
                    try:
                        manager.restore(card.card_uuid)
                    except SubjectAlreadyHasCredential:
                        self.assertEqual(self.live_cards(subject), 1)

            for each in subjects:
                live = self.live_cards(each)
                self.assertLessEqual(live, 1)
                held = UniquenessReservation.objects.filter(
                    namespace=UniquenessReservation.SUBJECT_CREDENTIAL,
                    key=SubjectRef.for_subject(each).key,
                ).count()
                self.assertEqual(held, live)


class BulkProvisioningEngineTest(TestCase):
    def setUp(self):
        self.admin = make_user('admin', 'administrator')
        self.engine = BulkProvisioningEngine(manager=CredentialLifecycleManager(actor=self.admin))
        self.s1 = SubjectRef.for_subject(make_student(1))
        self.s2 = SubjectRef.for_subject(make_student(2))

    def test_duplicate_subject_in_batch(self):
        result = self.engine.bulk_issue([self.s1, self.s1, self.s2], generate_rfid=True)

        self.assertEqual(result.summary, {'total_requested': 3, 'successful': 2, 'failed': 1})
        self.assertEqual(len(result.errors), 1)
        error = result.errors[0]
        self.assertEqual(error['index'], 1)
        self.assertEqual(error['subject_ref'], self.s1.as_dict())
        self.assertEqual(error['reason']['kind'], 'subject_already_has_credential')

    def test_empty_batch(self):
        result = self.engine.bulk_issue([], generate_rfid=True)
        self.assertEqual(result.summary, {'total_requested': 0, 'successful': 0, 'failed': 0})

    def test_failures_do_not_roll_back_successes(self):
        inactive = SubjectRef.for_subject(make_student(3, is_active=False))
        refs = [self.s1, SubjectRef.student('garbage'), inactive, SubjectRef('visitor', 'x'), self.s2]
        result = self.engine.bulk_issue(refs, generate_rfid=True)

        self.assertEqual(len(result.created) + len(result.errors), len(refs))
        self.assertEqual(len(result.created), 2)
        self.assertEqual([error['index'] for error in result.errors], [1, 2, 3])
        self.assertTrue(all(error['reason']['kind'] == 'validation_error' for error in result.errors))
        self.assertEqual(Card.objects.alive().count(), 2)

    def test_existing_card_is_a_per_item_failure(self):
        self.engine.manager.issue(self.s1, generate_rfid=True)
        result = self.engine.bulk_issue([self.s1, self.s2], generate_rfid=True)
        self.assertEqual(result.summary['successful'], 1)
        self.assertEqual(result.errors[0]['index'], 0)

    def test_explicit_rfid_mode_fails_every_item(self):
        result = self.engine.bulk_issue([self.s1, self.s2], generate_rfid=False)
        self.assertEqual(result.summary['failed'], 2)

    def test_expiry_date_is_applied(self):
        expiry = timezone.now() + timedelta(days=365)
        result = self.engine.bulk_issue([self.s1], generate_rfid=True, expiry_date=expiry)
        self.assertEqual(result.created[0].expiry_date, expiry)

    def test_forbidden_caller_is_refused_outright(self):
        guest = User(username='guest', user_type='guest')
        engine = BulkProvisioningEngine(manager=CredentialLifecycleManager(actor=guest))
        with self.assertRaises(Forbidden):
            engine.bulk_issue([self.s1])
        self.assertFalse(Card.objects.exists())


class FakeStore:
    write_roles = None


class FakeManager:
    """Thread-safe in-memory issuer for exercising the parallel path."""
    actor = None
    store = FakeStore()

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = set()
        self.threads = set()

    def issue(self, subject_ref, generate_rfid=True, expiry_date=None):
        with self.lock:
            self.threads.add(threading.get_ident())
            if subject_ref.subject_type not in ('student', 'staff'):
                raise ValidationError('Unknown subject type.', field='subject_type')
            if subject_ref.key in self.holders:
                raise SubjectAlreadyHasCredential('Already has a card.', field='subject')
            self.holders.add(subject_ref.key)
            return subject_ref.key


class ParallelBulkProvisioningTest(SimpleTestCase):
    def test_parallel_batch_keeps_counts_and_first_occurrence_wins(self):
        ids = [uuid.uuid4() for _ in range(20)]
        refs = [SubjectRef.student(value) for value in ids]
        refs += [SubjectRef.student(ids[0]), SubjectRef.student(str(ids[5]).upper()), SubjectRef('visitor', 'x')]

        manager = FakeManager()
        result = BulkProvisioningEngine(manager=manager, max_workers=4).bulk_issue(refs)

        self.assertEqual(result.summary, {'total_requested': 23, 'successful': 20, 'failed': 3})
        self.assertEqual([error['index'] for error in result.errors], [20, 21, 22])
        self.assertEqual(result.created, [ref.key for ref in refs[:20]])

    def test_single_worker_runs_in_order(self):
        refs = [SubjectRef.staff(uuid.uuid4()) for _ in range(5)]
        manager = FakeManager()
        result = BulkProvisioningEngine(manager=manager, max_workers=1).bulk_issue(refs)
        self.assertEqual(result.created, [ref.key for ref in refs])
        self.assertEqual(manager.threads, {threading.get_ident()})


class ConcurrentBulkProvisioningTest(TransactionTestCase):

    @override_settings(STORE_RETRY_ATTEMPTS=10, STORE_RETRY_BACKOFF=0.01)
    def test_parallel_batch_against_database_keeps_one_card_per_subject(self):
        admin = make_user('admin', 'administrator')
        students = [make_student(number) for number in range(1, 9)]
        refs = [SubjectRef.for_subject(student) for student in students]
        refs += [SubjectRef.for_subject(students[0]), SubjectRef.student(str(students[3].student_uuid).upper())]

        engine = BulkProvisioningEngine(manager=CredentialLifecycleManager(actor=admin), max_workers=4)
        result = engine.bulk_issue(refs, generate_rfid=True)

        self.assertEqual(result.summary, {'total_requested': 10, 'successful': 8, 'failed': 2})
        self.assertEqual([error['index'] for error in result.errors], [8, 9])
        self.assertTrue(all(
            error['reason']['kind'] == 'subject_already_has_credential' for error in result.errors
        ))
        for student in students:
            self.assertEqual(student.cards.alive().count(), 1)
        self.assertEqual(len({card.rfid_number for card in Card.objects.all()}), 8)


class CardAPITest(APITestCase):
    def setUp(self):
        self.admin_user = make_user('admin', 'administrator')
        self.officer = make_user('officer', 'registration_officer')
        self.client.force_authenticate(user=self.admin_user)
        self.student = make_student(1)
        self.staff = make_staff(1)

    def issue(self, **data):
        payload = {'card_type': 'student', 'student_uuid': str(self.student.student_uuid), 'generate_rfid': True}
        payload.update(data)
        return self.client.post('/api/cards/', payload, format='json')

    def test_issue_card(self):
        response = self.issue()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertTrue(response.data['is_active'])
        self.assertEqual(response.data['state'], 'provisioned')
        self.assertFalse(response.data['is_expired'])
        self.assertEqual(response.data['card_holder_number'], 'REG0001')

    def test_issue_requires_subject_id(self):
        response = self.client.post('/api/cards/', {'card_type': 'staff', 'generate_rfid': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['field'], 'staff_uuid')

    def test_second_card_for_subject_conflicts(self):
        self.issue()
        response = self.issue()
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['kind'], 'subject_already_has_credential')

    def test_duplicate_rfid_conflicts(self):
        self.issue(generate_rfid=False, rfid_number='RFID-001')
        response = self.client.post('/api/cards/', {
            'card_type': 'staff', 'staff_uuid': str(self.staff.staff_uuid), 'rfid_number': 'RFID-001'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['kind'], 'duplicate_rfid')
        self.assertEqual(response.data['field'], 'rfid_number')

    def test_list_with_summary_excludes_deleted(self):
        card = self.issue().data
        self.client.post('/api/cards/', {
            'card_type': 'staff', 'staff_uuid': str(self.staff.staff_uuid), 'generate_rfid': True
        }, format='json')
        self.client.delete(f"/api/cards/{card['card_uuid']}/")

        response = self.client.get('/api/cards/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['summary'], {'total_cards': 1, 'active_cards': 1, 'inactive_cards': 0})

        response = self.client.get('/api/cards/', {'include_deleted': 'true'})
        self.assertEqual(response.data['count'], 2)

    def test_list_filters(self):
        self.issue()
        self.client.post('/api/cards/', {
            'card_type': 'staff', 'staff_uuid': str(self.staff.staff_uuid), 'generate_rfid': True
        }, format='json')

        response = self.client.get('/api/cards/', {'card_type': 'staff'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['card_type'], 'staff')

        response = self.client.get('/api/cards/', {'search': 'REG0001'})
        self.assertEqual(response.data['count'], 1)

    def test_deactivate_twice(self):
        card = self.issue().data
        url = f"/api/cards/{card['card_uuid']}/deactivate/"
        response = self.client.patch(url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['data']['is_active'])

        response = self.client.patch(url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'invalid_transition')

    def test_activate(self):
        card = self.issue().data
        self.client.patch(f"/api/cards/{card['card_uuid']}/deactivate/")
        response = self.client.patch(f"/api/cards/{card['card_uuid']}/activate/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['state'], 'provisioned')

    def test_update_rfid_and_reject_state_fields(self):
        card = self.issue().data
        response = self.client.patch(f"/api/cards/{card['card_uuid']}/", {'rfid_number': 'NEW-RFID'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['rfid_number'], 'NEW-RFID')

        response = self.client.patch(f"/api/cards/{card['card_uuid']}/", {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Card.objects.get(card_uuid=card['card_uuid']).is_active)

    def test_only_administrators_delete(self):
        card = self.issue().data
        self.client.force_authenticate(user=self.officer)
        response = self.client.delete(f"/api/cards/{card['card_uuid']}/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['kind'], 'forbidden')

        self.client.force_authenticate(user=self.admin_user)
        response = self.client.delete(f"/api/cards/{card['card_uuid']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['deleted_at'])

    def test_restore(self):
        card = self.issue().data
        self.client.delete(f"/api/cards/{card['card_uuid']}/")
        response = self.client.post(f"/api/cards/{card['card_uuid']}/restore/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['rfid_number'], card['rfid_number'])

    def test_retrieve_deleted_card(self):
        card = self.issue().data
        self.client.delete(f"/api/cards/{card['card_uuid']}/")
        response = self.client.get(f"/api/cards/{card['card_uuid']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['state'], 'deleted')

    def test_unknown_card_is_404(self):
        response = self.client.get(f'/api/cards/{uuid.uuid4()}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_bulk_create_student_cards(self):
        other = make_student(2)
        response = self.client.post('/api/cards/bulk-create-student-cards/', {
            'student_uuids': [str(self.student.student_uuid), str(self.student.student_uuid), str(other.student_uuid)],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['summary'], {'total_requested': 3, 'successful': 2, 'failed': 1})
        self.assertEqual(response.data['errors'][0]['index'], 1)
        self.assertEqual(len(response.data['created_cards']), 2)

    def test_bulk_create_requires_list(self):
        response = self.client.post('/api/cards/bulk-create-staff-cards/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['field'], 'staff_uuids')

    def test_bulk_issue_mixed_subjects(self):
        response = self.client.post('/api/cards/bulk-issue/', {
            'subject_refs': [
                {'subject_type': 'student', 'subject_id': str(self.student.student_uuid)},
                {'subject_type': 'staff', 'subject_id': str(self.staff.staff_uuid)},
                {'subject_type': 'staff', 'subject_id': 'not-a-uuid'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['summary']['successful'], 2)
        self.assertEqual(response.data['errors'][0]['reason']['field'], 'staff_uuid')

    def test_bulk_issue_empty(self):
        response = self.client.post('/api/cards/bulk-issue/', {'subject_refs': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['summary'], {'total_requested': 0, 'successful': 0, 'failed': 0})

    def test_students_without_cards(self):
        other = make_student(2, department='Civil Engineering')
        card = self.issue().data

        response = self.client.get('/api/cards/students-without-cards/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['students'][0]['registration_number'], other.registration_number)

        self.client.delete(f"/api/cards/{card['card_uuid']}/")
        response = self.client.get('/api/cards/students-without-cards/', {'department': 'computer'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['students'][0]['registration_number'], 'REG0001')

    def test_staff_without_cards(self):
        response = self.client.get('/api/cards/staff-without-cards/', {'search': 'STF001'})
        self.assertEqual(response.data['count'], 1)

    def test_verify_is_public_and_always_200(self):
        self.issue()
        self.client.force_authenticate(user=None)

        response = self.client.get(f'/api/cards/verify/student/{self.student.student_uuid}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['verified'])
        self.assertTrue(response.data['card_active'])

        for path in (f'student/{uuid.uuid4()}', 'student/garbage', f'staff/{self.staff.staff_uuid}', f'visitor/{uuid.uuid4()}'):
            response = self.client.get(f'/api/cards/verify/{path}/')
            self.assertEqual(response.status_code, status.HTTP_200_OK, path)
            self.assertFalse(response.data['verified'])

    def test_unauthenticated_requests_are_rejected(self):
        self.client.force_authenticate(user=None)
        response = self.client.get('/api/cards/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
