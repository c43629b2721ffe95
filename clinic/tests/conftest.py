from datetime import timedelta

import pytest
from django.core.cache import cache
from django.utils import timezone
from rest_framework.test import APIClient

from clinic.models import Doctor, Slot, User
from clinic.services.accounts import issue_tokens

PASSWORD = 'Str0ng!Passw0rd'


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters and the doctor list cache live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def make_user(db):
    counter = {'n': 0}

    def _make(role='user', email=None, verified=True, **extra):
        counter['n'] += 1
        email = email or f"{role}{counter['n']}@example.com"
        return User.objects.create_user(
            username=email, email=email, password=PASSWORD, name=f"{role.title()} {counter['n']}",
            role=role, email_verified=verified, **extra,
        )
    return _make


@pytest.fixture
def auth_client():
    def _client(user):
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_tokens(user)['token']}")
        return client
    return _client


@pytest.fixture
def patient(make_user):
    return make_user('user')


@pytest.fixture
def doctor(make_user):
    user = make_user('doctor')
    return Doctor.objects.create(user=user, name='Dr. Test', specialization='Cardiology', mode=Doctor.MODE_BOTH)


@pytest.fixture
def make_slot():
    def _make(doctor, hours_from_now=48, minutes=30, **extra):
        start = (timezone.now() + timedelta(hours=hours_from_now)).replace(second=0, microsecond=0)
        return Slot.objects.create(doctor=doctor, start_time=start, end_time=start + timedelta(minutes=minutes),
                                   **extra)
    return _make
