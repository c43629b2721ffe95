from datetime import timedelta

import pytest
from django.urls import reverse

from clinic.exceptions import CancellationWindowClosed
from clinic.models import Appointment, CalendarEvent, Doctor
from clinic.services.appointments import cancel_appointment
from clinic.throttling import BookingRateThrottle

pytestmark = pytest.mark.django_db


def book(client, slot, appointment_type='online', notes=''):
    return client.post(reverse('appointments'), {'slotId': slot.id, 'type': appointment_type, 'notes': notes},
                       format='json')


@pytest.fixture
def other_doctor(make_user):
    return Doctor.objects.create(user=make_user('doctor'), name='Dr. Other', mode=Doctor.MODE_ONLINE)


# ---------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------
def test_book_after_hold(patient, doctor, make_slot, auth_client):
    client = auth_client(patient)
    slot = make_slot(doctor)
    assert client.post(reverse('lock_slot'), {'slotId': slot.id}, format='json').status_code == 200

    r = book(client, slot, notes='Chest pain <b>since Monday</b>')
    assert r.status_code == 201
    appt = r.data['appointment']
    assert appt['status'] == 'booked'
    assert appt['slot']['id'] == slot.id
    assert appt['doctor']['name'] == 'Dr. Test'
    assert appt['notes'] == 'Chest pain since Monday'

    slot.refresh_from_db()
    assert slot.is_booked is True
    assert slot.locked_by is None and slot.locked_until is None

    event = CalendarEvent.objects.get(user=patient, type='appointment')
    assert event.is_system_generated is True
    assert event.metadata['appointmentId'] == appt['id']
    assert event.start_time == slot.start_time


def test_book_without_hold(patient, doctor, make_slot, auth_client):
    r = book(auth_client(patient), make_slot(doctor), 'in-person')
    assert r.status_code == 201
    assert r.data['appointment']['type'] == 'in-person'


def test_booked_slot_is_rejected(patient, make_user, doctor, make_slot, auth_client):
    slot = make_slot(doctor)
    assert book(auth_client(patient), slot).status_code == 201
    r = book(auth_client(make_user()), slot)
    assert r.status_code == 409
    assert r.data['message'] == 'Slot already booked'
    assert Appointment.objects.filter(slot=slot).count() == 1


def test_slot_held_by_someone_else_is_rejected(patient, make_user, doctor, make_slot, auth_client):
    slot = make_slot(doctor)
    assert auth_client(make_user()).post(reverse('lock_slot'), {'slotId': slot.id}, format='json').status_code == 200
    r = book(auth_client(patient), slot)
    assert r.status_code == 409
    assert not Appointment.objects.exists()


def test_past_slot_is_rejected(patient, doctor, make_slot, auth_client):
    r = book(auth_client(patient), make_slot(doctor, hours_from_now=-3))
    assert r.status_code == 400
    assert not Appointment.objects.exists()


def test_unknown_slot(patient, auth_client):
    r = auth_client(patient).post(reverse('appointments'), {'slotId': 999999, 'type': 'online'}, format='json')
    assert r.status_code == 404


def test_type_must_match_doctor_mode(patient, other_doctor, make_slot, auth_client):
    slot = make_slot(other_doctor)
    r = book(auth_client(patient), slot, 'in-person')
    assert r.status_code == 400
    assert r.data['message'] == 'Doctor does not offer this consultation type'
    slot.refresh_from_db()
    assert slot.is_booked is False


def test_doctors_cannot_book(doctor, make_slot, auth_client):
    assert book(auth_client(doctor.user), make_slot(doctor)).status_code == 403


# ---------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------
def test_cancel_frees_slot(patient, make_user, doctor, make_slot, auth_client):
    client = auth_client(patient)
    slot = make_slot(doctor, hours_from_now=48)
    appt_id = book(client, slot).data['appointment']['id']

    r = client.post(reverse('cancel_appointment', args=[appt_id]))
    assert r.status_code == 200
    assert r.data['appointment']['status'] == 'cancelled'
    assert r.data['appointment']['cancelledAt']
    slot.refresh_from_db()
    assert slot.is_booked is False
    assert CalendarEvent.objects.get(user=patient, type='appointment').status == 'skipped'

    # the freed slot can be booked again
    assert book(auth_client(make_user()), slot).status_code == 201


def test_cancel_inside_cutoff_is_refused(patient, doctor, make_slot, auth_client):
    client = auth_client(patient)
    slot = make_slot(doctor, hours_from_now=23)
    appt_id = book(client, slot).data['appointment']['id']

    r = client.post(reverse('cancel_appointment', args=[appt_id]))
    assert r.status_code == 400
    assert r.data['message'].startswith('Cannot cancel within 24 hours')
    assert Appointment.objects.get(pk=appt_id).status == 'booked'
    slot.refresh_from_db()
    assert slot.is_booked is True


def test_cancel_cutoff_boundary(patient, doctor, make_slot, auth_client):
    slot = make_slot(doctor, hours_from_now=30)
    appt_id = book(auth_client(patient), slot).data['appointment']['id']

    with pytest.raises(CancellationWindowClosed):
        cancel_appointment(patient, appt_id, now=slot.start_time - timedelta(hours=24) + timedelta(seconds=1))

    # exactly the cutoff away is still allowed
    appt = cancel_appointment(patient, appt_id, now=slot.start_time - timedelta(hours=24))
    assert appt.status == 'cancelled'


def test_cancel_twice(patient, doctor, make_slot, auth_client):
    client = auth_client(patient)
    appt_id = book(client, make_slot(doctor)).data['appointment']['id']
    assert client.post(reverse('cancel_appointment', args=[appt_id])).status_code == 200
    r = client.post(reverse('cancel_appointment', args=[appt_id]))
    assert r.status_code == 400


def test_cannot_cancel_someone_elses_appointment(patient, make_user, doctor, make_slot, auth_client):
    appt_id = book(auth_client(patient), make_slot(doctor)).data['appointment']['id']
    r = auth_client(make_user()).post(reverse('cancel_appointment', args=[appt_id]))
    assert r.status_code == 404
    assert Appointment.objects.get(pk=appt_id).status == 'booked'


# ---------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------
def test_doctor_completes_own_appointment(patient, doctor, make_slot, auth_client):
    appt_id = book(auth_client(patient), make_slot(doctor)).data['appointment']['id']
    r = auth_client(doctor.user).post(reverse('complete_appointment', args=[appt_id]))
    assert r.status_code == 200
    assert r.data['appointment']['status'] == 'completed'
    assert CalendarEvent.objects.get(user=patient, type='appointment').status == 'completed'

    # completed appointments can no longer be cancelled
    assert auth_client(patient).post(reverse('cancel_appointment', args=[appt_id])).status_code == 400


def test_complete_scoped_to_own_doctor(patient, doctor, other_doctor, make_slot, auth_client):
    appt_id = book(auth_client(patient), make_slot(doctor)).data['appointment']['id']
    assert auth_client(other_doctor.user).post(reverse('complete_appointment', args=[appt_id])).status_code == 404
    assert auth_client(patient).post(reverse('complete_appointment', args=[appt_id])).status_code == 403
    assert Appointment.objects.get(pk=appt_id).status == 'booked'


def test_admin_can_complete(patient, make_user, doctor, make_slot, auth_client):
    appt_id = book(auth_client(patient), make_slot(doctor)).data['appointment']['id']
    r = auth_client(make_user('admin')).post(reverse('complete_appointment', args=[appt_id]))
    assert r.status_code == 200


# ---------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------
def test_list_newest_first_with_status_filter(patient, doctor, make_slot, auth_client):
    client = auth_client(patient)
    first = book(client, make_slot(doctor, hours_from_now=72)).data['appointment']['id']
    second = book(client, make_slot(doctor, hours_from_now=96)).data['appointment']['id']
    client.post(reverse('cancel_appointment', args=[first]))

    r = client.get(reverse('appointments'))
    assert [a['id'] for a in r.data['data']] == [second, first]
    r = client.get(reverse('appointments'), {'status': 'cancelled'})
    assert [a['id'] for a in r.data['data']] == [first]


def test_doctor_sees_own_appointments(patient, doctor, other_doctor, make_slot, auth_client):
    client = auth_client(patient)
    mine = book(client, make_slot(doctor, hours_from_now=50)).data['appointment']['id']
    book(client, make_slot(other_doctor, hours_from_now=51))

    r = auth_client(doctor.user).get(reverse('doctor_appointments'))
    assert r.status_code == 200
    assert [a['id'] for a in r.data['data']] == [mine]
    assert r.data['data'][0]['patient']['email'] == patient.email


def test_appointment_detail_visibility(patient, make_user, doctor, make_slot, auth_client):
    appt_id = book(auth_client(patient), make_slot(doctor)).data['appointment']['id']
    url = reverse('appointment_detail', args=[appt_id])
    assert auth_client(patient).get(url).status_code == 200
    assert auth_client(doctor.user).get(url).status_code == 200
    assert auth_client(make_user()).get(url).status_code == 404


def test_stats(patient, doctor, make_slot, auth_client):
    client = auth_client(patient)
    later = book(client, make_slot(doctor, hours_from_now=120)).data['appointment']['id']
    sooner = book(client, make_slot(doctor, hours_from_now=60)).data['appointment']['id']
    client.post(reverse('cancel_appointment', args=[later]))

    r = client.get(reverse('appointment_stats'))
    assert r.data['data']['total'] == 2
    assert r.data['data']['booked'] == 1
    assert r.data['data']['cancelled'] == 1
    assert r.data['data']['completed'] == 0
    assert r.data['data']['next']['id'] == sooner

    r = auth_client(doctor.user).get(reverse('appointment_stats'))
    assert r.data['data']['total'] == 2


def test_listing_does_not_spend_booking_budget(patient, doctor, make_slot, auth_client, monkeypatch):
    monkeypatch.setattr(BookingRateThrottle, 'THROTTLE_RATES', {'booking': '1/min'})
    client = auth_client(patient)
    for _ in range(3):
        assert client.get(reverse('appointments')).status_code == 200
    assert book(client, make_slot(doctor, hours_from_now=50)).status_code == 201
    r = book(client, make_slot(doctor, hours_from_now=51))
    assert r.status_code == 429
    assert r.data['retryAfter']
