from datetime import date, datetime, time

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient

from clinic.models import CalendarEvent

pytestmark = pytest.mark.django_db


def local(day, hour):
    return timezone.make_aware(datetime.combine(day, time(hour)))


@pytest.fixture
def api(patient, auth_client):
    return auth_client(patient)


def test_create_and_list_events(patient, api):
    r = api.post(reverse('calendar_events'), {
        'title': 'Metformin 500mg',
        'start_time': '2030-01-07T08:00:00Z',
        'type': 'medication',
        'sub_type': 'allopathy',
        'medication_info': {'dose': '500mg', 'frequency': 'daily'},
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['status'] == 'planned'
    assert r.data['data']['medication_info'] == {'dose': '500mg', 'frequency': 'daily'}

    CalendarEvent.objects.create(user=patient, title='Walk', type='activity',
                                 start_time=local(date(2030, 2, 1), 7))
    r = api.get(reverse('calendar_events'), {'start': '2030-01-01T00:00:00Z', 'end': '2030-01-31T00:00:00Z'})
    assert [e['title'] for e in r.data['data']] == ['Metformin 500mg']
    r = api.get(reverse('calendar_events'))
    assert len(r.data['data']) == 2


def test_single_range_bound_filters(patient, api):
    for day in (date(2030, 1, 5), date(2030, 1, 10)):
        CalendarEvent.objects.create(user=patient, title=f'Walk {day.day}', type='activity',
                                     start_time=local(day, 7))
    r = api.get(reverse('calendar_events'), {'start': '2030-01-08T00:00:00Z'})
    assert [e['title'] for e in r.data['data']] == ['Walk 10']
    r = api.get(reverse('calendar_events'), {'end': '2030-01-08T00:00:00Z'})
    assert [e['title'] for e in r.data['data']] == ['Walk 5']


def test_event_end_before_start_rejected(api):
    r = api.post(reverse('calendar_events'), {
        'title': 'Yoga', 'type': 'ritual',
        'start_time': '2030-01-07T08:00:00Z', 'end_time': '2030-01-07T07:00:00Z',
    }, format='json')
    assert r.status_code == 400


def test_update_and_delete_event(patient, api):
    event = CalendarEvent.objects.create(user=patient, title='BP check', type='vital',
                                         start_time=local(date(2030, 1, 7), 9))
    url = reverse('calendar_event_detail', args=[event.id])
    r = api.put(url, {'status': 'completed', 'value': '120/80', 'unit': 'mmHg'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'completed'
    assert r.data['data']['title'] == 'BP check'

    assert api.delete(url).status_code == 200
    assert not CalendarEvent.objects.filter(pk=event.id).exists()


def test_other_users_events_are_invisible(make_user, api):
    stranger = make_user()
    event = CalendarEvent.objects.create(user=stranger, title='Private', type='vital',
                                         start_time=local(date(2030, 1, 7), 9))
    url = reverse('calendar_event_detail', args=[event.id])
    assert api.put(url, {'title': 'Mine now'}, format='json').status_code == 404
    assert api.delete(url).status_code == 404
    event.refresh_from_db()
    assert event.title == 'Private'
    assert api.get(reverse('calendar_events')).data['data'] == []


def test_log_activity(api):
    r = api.post(reverse('calendar_log'), {'type': 'vital', 'category': 'headache', 'intensity': 3},
                 format='json')
    assert r.status_code == 201
    assert r.data['data']['status'] == 'completed'
    assert r.data['data']['title'] == 'Logged vital'
    assert r.data['data']['intensity'] == 3


def test_log_activity_intensity_bounds(api):
    r = api.post(reverse('calendar_log'), {'type': 'vital', 'intensity': 9}, format='json')
    assert r.status_code == 400


def test_symptom_heatmap(patient, make_user, api):
    monday, tuesday = date(2030, 1, 7), date(2030, 1, 8)
    for day, hour, intensity in [(monday, 9, 2), (monday, 18, 4), (tuesday, 10, 1)]:
        CalendarEvent.objects.create(user=patient, title='Headache', type='vital', intensity=intensity,
                                     start_time=local(day, hour))
    CalendarEvent.objects.create(user=patient, title='Pill', type='medication', start_time=local(monday, 8))
    CalendarEvent.objects.create(user=make_user(), title='Other', type='vital', intensity=5,
                                 start_time=local(monday, 8))

    r = api.get(reverse('calendar_heatmap'))
    assert r.status_code == 200
    assert r.data['data'] == [
        {'date': '2030-01-07', 'maxIntensity': 4, 'count': 2},
        {'date': '2030-01-08', 'maxIntensity': 1, 'count': 1},
    ]


def test_calendar_requires_login():
    assert APIClient().get(reverse('calendar_events')).status_code == 401
