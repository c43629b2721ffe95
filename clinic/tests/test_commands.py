from io import StringIO

import pytest
from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.core.management import call_command
from django.urls import reverse
from rest_framework.test import APIClient

from clinic.management.commands.seed_doctors import DEMO_DOCTORS
from clinic.models import Doctor, Slot, User
from clinic.services.slots import broadcast_slot_change, slot_group

pytestmark = pytest.mark.django_db


def test_seed_doctors_is_idempotent():
    out = StringIO()
    call_command('seed_doctors', '--days', '7', stdout=out)
    assert Doctor.objects.count() == len(DEMO_DOCTORS)
    assert not Doctor.objects.filter(is_verified=False).exists()
    assert Slot.objects.exists()
    first_total = Slot.objects.count()

    user = User.objects.get(email=DEMO_DOCTORS[0]['email'])
    assert user.role == 'doctor'
    assert user.email_verified is True
    assert user.check_password('Doctor@123')

    call_command('seed_doctors', '--days', '7', stdout=StringIO())
    assert Doctor.objects.count() == len(DEMO_DOCTORS)
    assert Slot.objects.count() == first_total
    assert 'Seeded 4 doctors' in out.getvalue()


def test_reset_test_user_password_creates_doctor():
    out = StringIO()
    call_command('reset_test_user_password', stdout=out)
    user = User.objects.get(email='testdoc@example.com')
    assert user.check_password('password123')
    assert user.email_verified is True
    assert Doctor.objects.filter(user=user).exists()
    assert 'created' in out.getvalue()

    out = StringIO()
    call_command('reset_test_user_password', '--password', 'An0ther!pass', stdout=out)
    user.refresh_from_db()
    assert user.check_password('An0ther!pass')
    assert Doctor.objects.filter(user=user).count() == 1
    assert 'updated' in out.getvalue()


def test_reset_test_user_password_for_patient():
    call_command('reset_test_user_password', '--email', 'Pat@Example.com', '--role', 'user', stdout=StringIO())
    user = User.objects.get(email='pat@example.com')
    assert user.role == 'user'
    assert not Doctor.objects.filter(user=user).exists()


def test_slot_changes_reach_the_doctor_group(doctor, make_slot):
    layer = get_channel_layer()
    channel = async_to_sync(layer.new_channel)()
    async_to_sync(layer.group_add)(slot_group(doctor.id), channel)
    slot = make_slot(doctor)

    broadcast_slot_change(slot, 'locked')

    message = async_to_sync(layer.receive)(channel)
    assert message['type'] == 'slot.update'
    assert message['event'] == 'locked'
    assert message['slotId'] == slot.id
    assert message['doctorId'] == doctor.id


def test_healthz():
    r = APIClient().get(reverse('healthz'))
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True, 'cache': True}
