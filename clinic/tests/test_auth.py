"""
Integration tests for registration, login and token handling.

These exercise the account flows end to end through DRF's APIClient:
duplicate registration, the role claim carried by the access token,
e-mail verification, password reset, the SMS second factor and the
expired/invalid token distinction.
"""
from datetime import timedelta

import jwt
from django.conf import settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase
from rest_framework_simplejwt.tokens import AccessToken

from clinic.models import AuditEvent, Doctor, User
from clinic.services.accounts import issue_tokens

PASSWORD = 'Str0ng!Passw0rd'


def decode(token: str) -> dict:
    return jwt.decode(token, settings.JWT_SECRET, algorithms=['HS256'])


class RegistrationTests(APITestCase):
    def test_register_creates_unverified_user(self):
        r = self.client.post(reverse('register_view'),
                             {'name': 'Asha Patel', 'email': 'Asha@Example.com', 'password': PASSWORD},
                             format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(email='asha@example.com')
        self.assertEqual(user.role, 'user')
        self.assertFalse(user.email_verified)
        self.assertEqual(len(user.email_verification_token), 64)
        self.assertEqual(r.data['user']['email'], 'asha@example.com')

    def test_duplicate_email_is_conflict_and_creates_no_row(self):
        payload = {'name': 'Asha Patel', 'email': 'asha@example.com', 'password': PASSWORD}
        self.assertEqual(self.client.post(reverse('register_view'), payload, format='json').status_code, 201)
        r = self.client.post(reverse('register_view'), {**payload, 'email': 'ASHA@example.com'}, format='json')
        self.assertEqual(r.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(r.data['message'], 'User already exists')
        self.assertFalse(r.data['ok'])
        self.assertEqual(User.objects.filter(email__iexact='asha@example.com').count(), 1)

    def test_admin_role_cannot_be_self_assigned(self):
        r = self.client.post(reverse('register_view'),
                             {'name': 'Mallory', 'email': 'm@example.com', 'password': PASSWORD, 'role': 'admin'},
                             format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(User.objects.filter(email='m@example.com').exists())

    def test_register_as_doctor_creates_profile(self):
        r = self.client.post(reverse('register_view'),
                             {'name': 'Dr. Rao', 'email': 'rao@example.com', 'password': PASSWORD, 'role': 'doctor'},
                             format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        doctor = Doctor.objects.get(user__email='rao@example.com')
        self.assertEqual(doctor.consultation_fee, 500)
        self.assertEqual(doctor.mode, Doctor.MODE_BOTH)

    def test_weak_password_rejected(self):
        r = self.client.post(reverse('register_view'),
                             {'name': 'Asha Patel', 'email': 'asha@example.com', 'password': '123456'},
                             format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('password', r.data['errors'])


class LoginTests(APITestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(
            username='doc@example.com', email='doc@example.com', password=PASSWORD,
            name='Dr. Who', role='doctor', email_verified=True,
        )

    def login(self, email='doc@example.com', password=PASSWORD):
        return self.client.post(reverse('login_view'), {'email': email, 'password': password}, format='json')

    def test_token_role_claim_matches_user_role(self):
        r = self.login()
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        claims = decode(r.data['token'])
        self.assertEqual(claims['role'], self.user.role)
        # simplejwt 5.5+ serialises the user id claim as a string
        self.assertEqual(str(claims['id']), str(self.user.id))
        self.assertTrue(r.data['refresh'])
        self.assertEqual(r.data['user']['role'], 'doctor')

    def test_role_in_request_body_is_ignored(self):
        r = self.client.post(reverse('login_view'),
                             {'email': 'doc@example.com', 'password': PASSWORD, 'role': 'admin'}, format='json')
        self.assertEqual(decode(r.data['token'])['role'], 'doctor')

    def test_wrong_password(self):
        r = self.login(password='nope-nope-nope')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['message'], 'Invalid credentials')
        self.assertTrue(AuditEvent.objects.filter(action='login', detail__result='fail').exists())

    def test_unknown_email(self):
        r = self.login(email='ghost@example.com')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['message'], 'Invalid credentials')

    def test_unverified_email_is_forbidden(self):
        self.user.email_verified = False
        self.user.save()
        r = self.login()
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.assertNotIn('token', r.data)

    def test_two_factor_login(self):
        self.user.phone = '+919876543210'
        self.user.phone_verified = True
        self.user.two_factor_enabled = True
        self.user.save()
        r = self.login()
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertTrue(r.data['require2FA'])
        self.assertEqual(r.data['userId'], self.user.id)
        self.assertNotIn('token', r.data)

        self.user.refresh_from_db()
        r = self.client.post(reverse('two_factor_verify_view'),
                             {'userId': self.user.id, 'otp': self.user.otp_code}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(decode(r.data['token'])['role'], 'doctor')
        self.user.refresh_from_db()
        self.assertIsNone(self.user.otp_code)


class TokenTests(APITestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(
            username='p@example.com', email='p@example.com', password=PASSWORD, role='user', email_verified=True,
        )

    def test_missing_token(self):
        r = APIClient().get(reverse('user_profile'))
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(r.data['message'], 'Access denied. No token provided.')

    def test_expired_token(self):
        token = AccessToken.for_user(self.user)
        token.set_exp(from_time=timezone.now() - timedelta(hours=2), lifetime=timedelta(minutes=5))
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        r = self.client.get(reverse('user_profile'))
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(r.data['message'], 'Token expired.')

    def test_invalid_token(self):
        self.client.credentials(HTTP_AUTHORIZATION='Bearer not.a.jwt')
        r = self.client.get(reverse('user_profile'))
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(r.data['message'], 'Invalid token.')

    def test_refresh_keeps_role_claim(self):
        tokens = issue_tokens(self.user)
        r = self.client.post(reverse('jwt_refresh_view'), {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(decode(r.data['token'])['role'], 'user')

    def test_logout_blacklists_refresh(self):
        tokens = issue_tokens(self.user)
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['token']}")
        r = self.client.post(reverse('jwt_logout_view'), {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['blacklisted'], 1)
        r = APIClient().post(reverse('jwt_refresh_view'), {'refresh': tokens['refresh']}, format='json')
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)


class VerificationAndResetTests(APITestCase):
    def setUp(self) -> None:
        self.client.post(reverse('register_view'),
                         {'name': 'Asha Patel', 'email': 'asha@example.com', 'password': PASSWORD}, format='json')
        self.user = User.objects.get(email='asha@example.com')

    def test_verify_email_then_login(self):
        r = self.client.post(reverse('verify_email_view'),
                             {'token': self.user.email_verification_token}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.email_verified)
        self.assertIsNone(self.user.email_verification_token)
        r = self.client.post(reverse('login_view'), {'email': 'asha@example.com', 'password': PASSWORD},
                             format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)

    def test_expired_verification_token(self):
        self.user.token_expires_at = timezone.now() - timedelta(seconds=1)
        self.user.save()
        r = self.client.post(reverse('verify_email_view'),
                             {'token': self.user.email_verification_token}, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.user.refresh_from_db()
        self.assertFalse(self.user.email_verified)

    def test_forgot_password_does_not_reveal_accounts(self):
        known = self.client.post(reverse('forgot_password_view'), {'email': 'asha@example.com'}, format='json')
        unknown = self.client.post(reverse('forgot_password_view'), {'email': 'nobody@example.com'}, format='json')
        self.assertEqual(known.status_code, unknown.status_code)
        self.assertEqual(known.data['message'], unknown.data['message'])

    def test_reset_password_flow(self):
        self.client.post(reverse('forgot_password_view'), {'email': 'asha@example.com'}, format='json')
        self.user.refresh_from_db()
        token = self.user.reset_password_token
        r = self.client.get(reverse('verify_reset_token_view', args=[token]))
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertTrue(r.data['valid'])

        r = self.client.post(reverse('reset_password_view'), {'token': token, 'password': 'N3w!Secret'},
                             format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('N3w!Secret'))
        self.assertIsNone(self.user.reset_password_token)

        r = self.client.get(reverse('verify_reset_token_view', args=[token]))
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
