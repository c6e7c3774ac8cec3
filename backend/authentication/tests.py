from django.core.cache import cache
from rest_framework import status
from rest_framework.test import APITestCase

from .models import User


class AuthenticationAPITest(APITestCase):
    def setUp(self):
        cache.clear()
        self.admin = User.objects.create_user(
            username='admin', email='admin@example.com', full_name='System Administrator',
            password='admin12345', user_type='administrator'
        )
        self.officer = User.objects.create_user(
            username='officer', email='officer@example.com', full_name='Registration Officer',
            password='officer12345', user_type='registration_officer'
        )

    def login(self, username='admin', password='admin12345'):
        return self.client.post('/auth/login', {'username': username, 'password': password}, format='json')

    def test_login_returns_tokens(self):
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertIn('refresh', response.data)
        self.assertEqual(response.data['user_type'], 'administrator')

    def test_wrong_password(self):
        response = self.login(password='wrong-password')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['kind'], 'not_authenticated')
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.failed_login_attempts, 1)

    def test_repeated_failures_are_throttled(self):
        for _ in range(3):
            self.login(password='wrong-password')
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)

    def test_account_locks_after_repeated_failures(self):
        User.objects.filter(pk=self.admin.pk).update(failed_login_attempts=9)
        response = self.login(password='wrong-password')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.admin.refresh_from_db()
        self.assertTrue(self.admin.account_locked)

        cache.clear()
        response = self.login()
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_unlocked_account_can_log_in_again(self):
        User.objects.filter(pk=self.admin.pk).update(account_locked=True, failed_login_attempts=10)
        self.assertEqual(self.login().status_code, status.HTTP_401_UNAUTHORIZED)

        User.objects.filter(pk=self.admin.pk).update(account_locked=False)
        cache.clear()
        self.assertEqual(self.login().status_code, status.HTTP_200_OK)
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.failed_login_attempts, 0)

    def test_access_token_authenticates(self):
        access = self.login().data['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access}')
        response = self.client.get('/api/administrator/physical-locations/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_refresh_rotates_token(self):
        refresh = self.login().data['refresh']
        response = self.client.post('/auth/refresh', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)
        self.assertNotEqual(response.data['refresh'], refresh)

        # The old refresh token was blacklisted on rotation
        response = self.client.post('/auth/refresh', {'refresh': refresh}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_blacklists_refresh_token(self):
        tokens = self.login().data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
        response = self.client.post('/auth/logout', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post('/auth/refresh', {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_logout_with_garbage_token(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post('/auth/logout', {'refresh': 'not-a-token'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['field'], 'refresh')

    def test_only_administrators_create_users(self):
        payload = {
            'username': 'newofficer', 'full_name': 'New Officer', 'email': 'new@example.com',
            'user_type': 'registration_officer', 'password': 'newpass123', 'confirm_password': 'newpass123',
        }
        self.client.force_authenticate(user=self.officer)
        response = self.client.post('/auth/create-user', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.admin)
        response = self.client.post('/auth/create-user', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(User.objects.get(username='newofficer').check_password('newpass123'))

    def test_mismatched_passwords(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post('/auth/create-user', {
            'username': 'someone', 'full_name': 'Someone', 'email': 'someone@example.com',
            'user_type': 'registration_officer', 'password': 'newpass123', 'confirm_password': 'other1234',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
