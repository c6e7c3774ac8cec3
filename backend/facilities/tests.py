from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase

from .models import AccessGate, PhysicalLocation

User = get_user_model()

LOCATIONS_URL = '/api/administrator/physical-locations/'
GATES_URL = '/api/administrator/access-gates/'


class FacilitiesAPITestCase(APITestCase):
    def setUp(self):
        self.admin_user = User.objects.create_user(
            username='admin', email='admin@example.com', full_name='Admin User',
            password='admin12345', user_type='administrator'
        )
        self.client.force_authenticate(user=self.admin_user)

    def create_location(self, name='Main Campus', location_type='campus', **extra):
        data = {'location_name': name, 'location_type': location_type}
        data.update(extra)
        response = self.client.post(f'{LOCATIONS_URL}create/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data

    def create_gate(self, location_id, gate_code='G-001', hardware_id='HW-001', **extra):
        data = {
            'gate_code': gate_code,
            'gate_name': f'Gate {gate_code}',
            'location': location_id,
            'gate_type': 'entry',
            'hardware_id': hardware_id,
        }
        data.update(extra)
        return self.client.post(f'{GATES_URL}create/', data, format='json')


class PhysicalLocationAPITest(FacilitiesAPITestCase):

    def test_create_and_retrieve(self):
        location = self.create_location(description='Dar es Salaam', is_restricted=True)
        response = self.client.get(f"{LOCATIONS_URL}{location['location_id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['location_name'], 'Main Campus')
        self.assertTrue(response.data['is_restricted'])
        self.assertIsNone(response.data['deleted_at'])

    def test_duplicate_name_conflict(self):
        self.create_location()
        response = self.client.post(
            f'{LOCATIONS_URL}create/', {'location_name': 'main campus', 'location_type': 'campus'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['kind'], 'duplicate_key')
        self.assertEqual(response.data['field'], 'location_name')

    def test_invalid_type_is_rejected(self):
        response = self.client.post(
            f'{LOCATIONS_URL}create/', {'location_name': 'Moon', 'location_type': 'planet'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation_error')
        self.assertEqual(response.data['field'], 'location_type')

    def test_soft_delete_hides_from_list_but_not_detail(self):
        location = self.create_location()
        response = self.client.delete(f"{LOCATIONS_URL}{location['location_id']}/delete/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('deleted_at', response.data)
        self.assertIn('message', response.data)

        response = self.client.get(LOCATIONS_URL)
        self.assertEqual(response.data['count'], 0)

        response = self.client.get(f"{LOCATIONS_URL}{location['location_id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNotNone(response.data['deleted_at'])

        response = self.client.get(LOCATIONS_URL, {'include_deleted': 'true'})
        self.assertEqual(response.data['count'], 1)

    def test_delete_twice(self):
        location = self.create_location()
        self.client.delete(f"{LOCATIONS_URL}{location['location_id']}/delete/")
        response = self.client.delete(f"{LOCATIONS_URL}{location['location_id']}/delete/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'already_deleted')

    def test_restore_round_trip(self):
        location = self.create_location(description='HQ')
        self.client.delete(f"{LOCATIONS_URL}{location['location_id']}/delete/")
        response = self.client.post(f"{LOCATIONS_URL}{location['location_id']}/restore/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('message', response.data)

        restored = response.data['data']
        for name, value in location.items():
            if name not in ('updated_at', 'deleted_at'):
                self.assertEqual(restored[name], value, name)
        self.assertIsNone(restored['deleted_at'])

    def test_restore_fails_when_name_was_reused(self):
        location = self.create_location()
        self.client.delete(f"{LOCATIONS_URL}{location['location_id']}/delete/")
        self.create_location()

        response = self.client.post(f"{LOCATIONS_URL}{location['location_id']}/restore/")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['kind'], 'duplicate_key')
        self.assertIn('Cannot restore', response.data['detail'])
        self.assertIsNotNone(PhysicalLocation.objects.get(location_id=location['location_id']).deleted_at)

    def test_restore_live_location(self):
        location = self.create_location()
        response = self.client.post(f"{LOCATIONS_URL}{location['location_id']}/restore/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'not_deleted')

    def test_unknown_location_is_404(self):
        response = self.client.get(f'{LOCATIONS_URL}00000000-0000-0000-0000-000000000000/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['kind'], 'not_found')

    def test_patch_update(self):
        location = self.create_location()
        response = self.client.patch(
            f"{LOCATIONS_URL}{location['location_id']}/update/", {'is_restricted': True}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_restricted'])

    def test_filters_compose_with_and(self):
        self.create_location('Library', 'building', is_restricted=False)
        self.create_location('Server Room', 'room', is_restricted=True)
        self.create_location('Archive', 'room', is_restricted=False)

        response = self.client.get(LOCATIONS_URL, {'location_type': 'room', 'is_restricted': 'true'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['location_name'], 'Server Room')

    def test_empty_filter_value_means_no_constraint(self):
        self.create_location('Library', 'building')
        self.create_location('Archive', 'room')
        response = self.client.get(LOCATIONS_URL, {'location_type': ''})
        self.assertEqual(response.data['count'], 2)

    def test_search_and_ordering(self):
        self.create_location('Library', 'building', description='books')
        self.create_location('Archive', 'room', description='old books')
        self.create_location('Gym', 'building')

        response = self.client.get(LOCATIONS_URL, {'search': 'books', 'ordering': 'location_name'})
        self.assertEqual(
            [item['location_name'] for item in response.data['results']], ['Archive', 'Library']
        )

    def test_unknown_ordering_is_rejected(self):
        response = self.client.get(LOCATIONS_URL, {'ordering': 'secret'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['field'], 'ordering')

    def test_pagination_envelope(self):
        for number in range(3):
            self.create_location(f'Room {number}', 'room')
        response = self.client.get(LOCATIONS_URL, {'page_size': 2})
        self.assertEqual(response.data['count'], 3)
        self.assertEqual(len(response.data['results']), 2)
        self.assertIsNotNone(response.data['next'])
        self.assertIsNone(response.data['previous'])

        response = self.client.get(LOCATIONS_URL, {'page_size': 2, 'page': 2})
        self.assertEqual(len(response.data['results']), 1)
        self.assertIsNone(response.data['next'])
        self.assertIsNotNone(response.data['previous'])

    def test_page_out_of_range(self):
        response = self.client.get(LOCATIONS_URL, {'page': 5})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class AccessGateAPITest(FacilitiesAPITestCase):
    def setUp(self):
        super().setUp()
        self.location = self.create_location()

    def test_create_gate(self):
        response = self.create_gate(
            self.location['location_id'], ip_address='192.168.1.20', mac_address='00:1A:2B:3C:4D:5E'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data['location_name'], 'Main Campus')
        self.assertFalse(response.data['location_deleted'])
        self.assertEqual(response.data['status'], 'active')

    def test_invalid_ip_creates_nothing(self):
        response = self.create_gate(self.location['location_id'], ip_address='999.1.1.1')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['kind'], 'validation_error')
        self.assertEqual(response.data['field'], 'ip_address')
        self.assertFalse(AccessGate.objects.exists())

        # Neither key was reserved, so the same codes are still free
        response = self.create_gate(self.location['location_id'])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_invalid_mac_is_rejected(self):
        for mac in ('00:1A:2B:3C:4D', '00:1A-2B:3C:4D:5E', 'GG:1A:2B:3C:4D:5E'):
            response = self.create_gate(self.location['location_id'], mac_address=mac)
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, mac)

    def test_hyphen_separated_mac_is_accepted(self):
        response = self.create_gate(self.location['location_id'], mac_address='00-1A-2B-3C-4D-5E')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_duplicate_gate_code(self):
        self.create_gate(self.location['location_id'])
        response = self.create_gate(self.location['location_id'], hardware_id='HW-002')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['field'], 'gate_code')
        self.assertEqual(response.data['conflict']['namespace'], 'gate_code')

    def test_duplicate_hardware_id(self):
        self.create_gate(self.location['location_id'])
        response = self.create_gate(self.location['location_id'], gate_code='G-002')
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data['field'], 'hardware_id')

    def test_deleted_gate_frees_its_codes(self):
        gate = self.create_gate(self.location['location_id']).data
        self.client.delete(f"{GATES_URL}{gate['gate_id']}/delete/")
        response = self.create_gate(self.location['location_id'])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        # The original can no longer come back
        response = self.client.post(f"{GATES_URL}{gate['gate_id']}/restore/")
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

    def test_cannot_attach_gate_to_deleted_location(self):
        self.client.delete(f"{LOCATIONS_URL}{self.location['location_id']}/delete/")
        response = self.create_gate(self.location['location_id'])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['field'], 'location')
        self.assertFalse(AccessGate.objects.exists())

    def test_gates_survive_location_soft_delete(self):
        gate = self.create_gate(self.location['location_id']).data
        self.client.delete(f"{LOCATIONS_URL}{self.location['location_id']}/delete/")

        response = self.client.get(f"{GATES_URL}{gate['gate_id']}/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(str(response.data['location']), self.location['location_id'])
        self.assertTrue(response.data['location_deleted'])

        response = self.client.get(GATES_URL)
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(LOCATIONS_URL)
        self.assertEqual(response.data['count'], 0)

    def test_gate_update_can_keep_deleted_location(self):
        gate = self.create_gate(self.location['location_id']).data
        self.client.delete(f"{LOCATIONS_URL}{self.location['location_id']}/delete/")
        response = self.client.patch(f"{GATES_URL}{gate['gate_id']}/update/", {'status': 'maintenance'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'maintenance')

    def test_patch_resending_deleted_location_is_allowed(self):
        gate = self.create_gate(self.location['location_id']).data
        self.client.delete(f"{LOCATIONS_URL}{self.location['location_id']}/delete/")
        response = self.client.patch(
            f"{GATES_URL}{gate['gate_id']}/update/",
            {'location': self.location['location_id'], 'status': 'maintenance'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['status'], 'maintenance')

    def test_put_with_deleted_location_is_allowed(self):
        gate = self.create_gate(self.location['location_id']).data
        self.client.delete(f"{LOCATIONS_URL}{self.location['location_id']}/delete/")
        response = self.client.put(f"{GATES_URL}{gate['gate_id']}/update/", {
            'gate_code': 'G-001',
            'gate_name': 'Renamed Gate',
            'location': self.location['location_id'],
            'gate_type': 'entry',
            'hardware_id': 'HW-001',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data['gate_name'], 'Renamed Gate')

    def test_cannot_move_gate_to_deleted_location(self):
        gate = self.create_gate(self.location['location_id']).data
        other = self.create_location('Annex', 'building')
        self.client.delete(f"{LOCATIONS_URL}{other['location_id']}/delete/")
        response = self.client.patch(
            f"{GATES_URL}{gate['gate_id']}/update/", {'location': other['location_id']}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['field'], 'location')
        self.assertEqual(str(AccessGate.objects.get().location_id), self.location['location_id'])

    def test_filter_by_status_and_location(self):
        other = self.create_location('Annex', 'building')
        self.create_gate(self.location['location_id'], 'G-1', 'HW-1')
        self.create_gate(self.location['location_id'], 'G-2', 'HW-2', status='maintenance')
        self.create_gate(other['location_id'], 'G-3', 'HW-3')

        response = self.client.get(GATES_URL, {'status': 'active', 'location': self.location['location_id']})
        self.assertEqual([gate['gate_code'] for gate in response.data['results']], ['G-1'])

    def test_registration_officer_can_manage_gates(self):
        officer = User.objects.create_user(
            username='officer', email='officer@example.com', full_name='Reg Officer',
            password='officer123', user_type='registration_officer'
        )
        self.client.force_authenticate(user=officer)
        response = self.create_gate(self.location['location_id'])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
