from concurrent.futures import ThreadPoolExecutor
import threading
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import OperationalError, connections
from django.test import SimpleTestCase, TestCase, TransactionTestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from facilities.models import PhysicalLocation
from facilities.stores import PhysicalLocationStore

from .exceptions import (
    AlreadyDeletedError, DuplicateKeyError, ErrorKind, Forbidden, NotDeletedError,
    NotFoundError, StorageUnavailable, ValidationError,
)
from .models import UniquenessReservation
from .querying import Query
from .retry import retry_on_transient
from .uniqueness import ReservationConflict, UniquenessIndex

User = get_user_model()


class UniquenessIndexTest(TestCase):
    def setUp(self):
        self.index = UniquenessIndex()

    def test_reserve_and_owner(self):
        self.index.reserve(UniquenessReservation.GATE_CODE, 'G-001', 'gate-1')
        self.assertEqual(self.index.owner(UniquenessReservation.GATE_CODE, 'G-001'), 'gate-1')

    def test_reserving_own_key_again_is_a_no_op(self):
        self.index.reserve(UniquenessReservation.RFID_NUMBER, '12345', 'card-1')
        self.index.reserve(UniquenessReservation.RFID_NUMBER, '12345', 'card-1')
        self.assertEqual(UniquenessReservation.objects.count(), 1)

    def test_conflict_reports_existing_owner(self):
        self.index.reserve(UniquenessReservation.HARDWARE_ID, 'HW-1', 'gate-1', 'facilities.AccessGate')
        with self.assertRaises(ReservationConflict) as ctx:
            self.index.reserve(UniquenessReservation.HARDWARE_ID, 'HW-1', 'gate-2')
        self.assertEqual(ctx.exception.existing_id, 'gate-1')
        self.assertEqual(ctx.exception.existing_type, 'facilities.AccessGate')

    def test_namespaces_are_independent(self):
        self.index.reserve(UniquenessReservation.GATE_CODE, 'X1', 'gate-1')
        self.index.reserve(UniquenessReservation.HARDWARE_ID, 'X1', 'gate-2')
        self.assertEqual(UniquenessReservation.objects.count(), 2)

    def test_release_makes_key_reusable(self):
        self.index.reserve(UniquenessReservation.RFID_NUMBER, '555', 'card-1')
        self.assertTrue(self.index.release(UniquenessReservation.RFID_NUMBER, '555'))
        self.index.reserve(UniquenessReservation.RFID_NUMBER, '555', 'card-2')
        self.assertEqual(self.index.owner(UniquenessReservation.RFID_NUMBER, '555'), 'card-2')

    def test_release_by_other_entity_keeps_reservation(self):
        self.index.reserve(UniquenessReservation.RFID_NUMBER, '555', 'card-1')
        self.assertFalse(self.index.release(UniquenessReservation.RFID_NUMBER, '555', 'card-2'))
        self.assertEqual(self.index.owner(UniquenessReservation.RFID_NUMBER, '555'), 'card-1')

    def test_reacquire_fails_when_key_was_taken(self):
        self.index.reserve(UniquenessReservation.GATE_CODE, 'G-9', 'gate-1')
        self.index.release(UniquenessReservation.GATE_CODE, 'G-9')
        self.index.reserve(UniquenessReservation.GATE_CODE, 'G-9', 'gate-2')
        with self.assertRaises(ReservationConflict):
            self.index.reacquire(UniquenessReservation.GATE_CODE, 'G-9', 'gate-1')

    def test_location_names_compare_case_insensitively(self):
        self.index.reserve(UniquenessReservation.LOCATION_NAME, 'Main Hall', 'loc-1')
        with self.assertRaises(ReservationConflict):
            self.index.reserve(UniquenessReservation.LOCATION_NAME, '  main hall ', 'loc-2')

    def test_gate_codes_are_case_sensitive(self):
        self.index.reserve(UniquenessReservation.GATE_CODE, 'gate-a', 'gate-1')
        self.index.reserve(UniquenessReservation.GATE_CODE, 'GATE-A', 'gate-2')
        self.assertEqual(UniquenessReservation.objects.count(), 2)


class ConcurrentReservationTest(TransactionTestCase):

    @override_settings(STORE_RETRY_ATTEMPTS=10, STORE_RETRY_BACKOFF=0.01)
    def test_exactly_one_racer_wins_a_key(self):
        racers = 6
        barrier = threading.Barrier(racers)

        @retry_on_transient
        def reserve(entity_id):
            UniquenessIndex().reserve(UniquenessReservation.RFID_NUMBER, '0000000042', entity_id)

        def race(entity_id):
            barrier.wait()
            try:
                reserve(entity_id)
                return 'won'
            except ReservationConflict:
                return 'conflict'
            finally:
                connections.close_all()

        with ThreadPoolExecutor(max_workers=racers) as executor:
            outcomes = list(executor.map(race, [f'card-{number}' for number in range(racers)]))

        self.assertEqual(outcomes.count('won'), 1)
        self.assertEqual(outcomes.count('conflict'), racers - 1)
        winner = f"card-{outcomes.index('won')}"
        self.assertEqual(UniquenessIndex().owner(UniquenessReservation.RFID_NUMBER, '0000000042'), winner)
        self.assertEqual(UniquenessReservation.objects.count(), 1)


class QueryFromParamsTest(SimpleTestCase):
    def test_defaults(self):
        query = Query.from_params({})
        self.assertEqual(query.page, 1)
        self.assertEqual(query.page_size, 20)
        self.assertEqual(query.search, '')
        self.assertEqual(query.filters, {})
        self.assertFalse(query.include_deleted)

    def test_reserved_params_are_not_filters(self):
        query = Query.from_params({
            'page': '2', 'page_size': '5', 'search': ' gate ', 'ordering': '-created_at',
            'include_deleted': 'true', 'status': 'active',
        })
        self.assertEqual(query.page, 2)
        self.assertEqual(query.page_size, 5)
        self.assertEqual(query.search, 'gate')
        self.assertEqual(query.ordering, '-created_at')
        self.assertTrue(query.include_deleted)
        self.assertEqual(query.filters, {'status': 'active'})

    @override_settings(API_MAX_PAGE_SIZE=50)
    def test_page_size_is_capped(self):
        self.assertEqual(Query.from_params({'page_size': '500'}).page_size, 50)

    def test_invalid_page_is_a_validation_error(self):
        for value in ('0', '-1', 'abc'):
            with self.assertRaises(ValidationError):
                Query.from_params({'page': value})


class RetryOnTransientTest(TestCase):

    @override_settings(STORE_RETRY_ATTEMPTS=3, STORE_RETRY_BACKOFF=0)
    def test_retries_then_succeeds(self):
        calls = []

        @retry_on_transient
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise OperationalError('database is locked')
            return 'ok'

        # TestCase wraps each test in a transaction; pretend we are outside it
        with mock.patch('core.retry.transaction.get_connection') as get_connection:
            get_connection.return_value.in_atomic_block = False
            self.assertEqual(flaky(), 'ok')
        self.assertEqual(len(calls), 3)

    @override_settings(STORE_RETRY_ATTEMPTS=2, STORE_RETRY_BACKOFF=0)
    def test_gives_up_with_storage_unavailable(self):
        @retry_on_transient
        def broken():
            raise OperationalError('connection refused')

        with mock.patch('core.retry.transaction.get_connection') as get_connection:
            get_connection.return_value.in_atomic_block = False
            with self.assertRaises(StorageUnavailable):
                broken()

    def test_no_retry_inside_a_transaction(self):
        calls = []

        @retry_on_transient
        def broken():
            calls.append(1)
            raise OperationalError('deadlock detected')

        with self.assertRaises(StorageUnavailable):
            broken()
        self.assertEqual(len(calls), 1)


class ResourceStoreTest(TestCase):
    def setUp(self):
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', full_name='Admin User',
            password='admin12345', user_type='administrator'
        )
        self.store = PhysicalLocationStore(actor=self.admin)

    def create_location(self, name='Main Campus', **extra):
        data = {'location_name': name, 'location_type': 'campus'}
        data.update(extra)
        return self.store.create(data)

    def test_create_reserves_key(self):
        location = self.create_location()
        self.assertEqual(
            UniquenessIndex().owner(UniquenessReservation.LOCATION_NAME, 'main campus'),
            str(location.location_id)
        )

    def test_duplicate_name_is_rejected(self):
        self.create_location()
        with self.assertRaises(DuplicateKeyError) as ctx:
            self.create_location('MAIN CAMPUS')
        self.assertEqual(ctx.exception.field, 'location_name')
        self.assertEqual(PhysicalLocation.objects.count(), 1)

    def test_invalid_choice_creates_nothing(self):
        with self.assertRaises(ValidationError) as ctx:
            self.create_location(location_type='planet')
        self.assertEqual(ctx.exception.field, 'location_type')
        self.assertFalse(PhysicalLocation.objects.exists())
        self.assertFalse(UniquenessReservation.objects.exists())

    def test_get_unknown_id_is_not_found(self):
        with self.assertRaises(NotFoundError):
            self.store.get('00000000-0000-0000-0000-000000000000')
        with self.assertRaises(NotFoundError):
            self.store.get('not-a-uuid')

    def test_soft_delete_twice_reports_already_deleted(self):
        location = self.create_location()
        record = self.store.soft_delete(location.location_id)
        self.assertIsNotNone(record.deleted_at)
        with self.assertRaises(AlreadyDeletedError):
            self.store.soft_delete(location.location_id)

    def test_restore_live_record_reports_not_deleted(self):
        location = self.create_location()
        with self.assertRaises(NotDeletedError):
            self.store.restore(location.location_id)

    def test_soft_delete_frees_the_name(self):
        location = self.create_location()
        self.store.soft_delete(location.location_id)
        replacement = self.create_location()
        self.assertNotEqual(replacement.location_id, location.location_id)

    def test_restore_round_trip(self):
        location = self.create_location(description='North side', is_restricted=True)
        self.store.soft_delete(location.location_id)
        restored = self.store.restore(location.location_id)

        self.assertIsNone(restored.deleted_at)
        for name in ('location_id', 'location_name', 'location_type', 'description', 'is_restricted', 'created_at'):
            self.assertEqual(getattr(restored, name), getattr(location, name))

    def test_update_rename_moves_reservation(self):
        location = self.create_location()
        self.store.update(location.location_id, {'location_name': 'Annex'})
        index = UniquenessIndex()
        self.assertIsNone(index.owner(UniquenessReservation.LOCATION_NAME, 'Main Campus'))
        self.assertEqual(index.owner(UniquenessReservation.LOCATION_NAME, 'annex'), str(location.location_id))

    def test_update_case_only_keeps_reservation(self):
        location = self.create_location()
        self.store.update(location.location_id, {'location_name': 'MAIN CAMPUS'})
        self.assertEqual(
            UniquenessIndex().owner(UniquenessReservation.LOCATION_NAME, 'main campus'),
            str(location.location_id)
        )

    def test_update_protected_field_is_rejected(self):
        location = self.create_location()
        with self.assertRaises(ValidationError):
            self.store.update(location.location_id, {'deleted_at': None})

    def test_list_hides_deleted_unless_asked(self):
        kept = self.create_location('Kept')
        gone = self.create_location('Gone')
        self.store.soft_delete(gone.location_id)

        page = self.store.list()
        self.assertEqual([loc.location_id for loc in page.results], [kept.location_id])
        page = self.store.list(Query(include_deleted=True))
        self.assertEqual(page.count, 2)

    def test_actor_outside_write_roles_is_forbidden(self):
        guest = User(username='guest', user_type='guest')
        with self.assertRaises(Forbidden):
            PhysicalLocationStore(actor=guest).create({'location_name': 'X', 'location_type': 'room'})


class ExceptionHandlerTest(APITestCase):
    def test_unauthenticated_request_uses_error_shape(self):
        response = self.client.get('/api/administrator/physical-locations/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['kind'], ErrorKind.NOT_AUTHENTICATED.value)
        self.assertIn('detail', response.data)
