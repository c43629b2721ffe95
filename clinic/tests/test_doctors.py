import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from clinic.models import Doctor, User

pytestmark = pytest.mark.django_db

PASSWORD = 'Str0ng!Passw0rd'


@pytest.fixture
def directory():
    return {
        'cardio': Doctor.objects.create(name='Dr. Kapoor', specialization='Cardiology', mode='online',
                                        experience=12, consultation_fee=900, is_verified=True),
        'derm': Doctor.objects.create(name='Dr. Banerjee', specialization='Dermatology', mode='in-person',
                                      experience=4, consultation_fee=400),
        'gp': Doctor.objects.create(name='Dr. Singh', specialization='General Medicine', mode='both',
                                    experience=7, consultation_fee=500),
    }


def names(response):
    return [d['name'] for d in response.data['data']]


def test_register_doctor_and_duplicate():
    client = APIClient()
    payload = {'name': 'Dr. Rao', 'email': 'rao@example.com', 'password': PASSWORD,
               'specialization': 'Neurology', 'mode': 'online'}
    r = client.post(reverse('register_doctor'), payload, format='json')
    assert r.status_code == 201
    assert r.data['doctor']['specialization'] == 'Neurology'
    assert r.data['doctor']['isVerified'] is False
    assert r.data['user']['role'] == 'doctor'

    r = client.post(reverse('register_doctor'), payload, format='json')
    assert r.status_code == 409
    assert User.objects.filter(email='rao@example.com').count() == 1
    assert Doctor.objects.filter(user__email='rao@example.com').count() == 1


def test_list_orders_verified_first(directory):
    r = APIClient().get(reverse('doctor_list'))
    assert r.status_code == 200
    assert names(r) == ['Dr. Kapoor', 'Dr. Banerjee', 'Dr. Singh']
    assert r.data['pagination']['total'] == 3


def test_mode_filter_includes_both(directory):
    r = APIClient().get(reverse('doctor_list'), {'mode': 'in-person'})
    assert sorted(names(r)) == ['Dr. Banerjee', 'Dr. Singh']


def test_specialization_list_filter(directory):
    r = APIClient().get(reverse('doctor_list'), {'specialization': 'Cardiology, Dermatology'})
    assert sorted(names(r)) == ['Dr. Banerjee', 'Dr. Kapoor']


def test_fee_experience_and_search_filters(directory):
    client = APIClient()
    assert names(client.get(reverse('doctor_list'), {'maxFee': 500})) == ['Dr. Banerjee', 'Dr. Singh']
    assert names(client.get(reverse('doctor_list'), {'minExperience': 7})) == ['Dr. Kapoor', 'Dr. Singh']
    assert names(client.get(reverse('doctor_list'), {'search': 'sing'})) == ['Dr. Singh']
    assert names(client.get(reverse('doctor_list'), {'verifiedOnly': 'true'})) == ['Dr. Kapoor']


def test_pagination(directory):
    r = APIClient().get(reverse('doctor_list'), {'page': 2, 'pageSize': 1})
    assert names(r) == ['Dr. Banerjee']
    assert r.data['pagination'] == {'total': 3, 'page': 2, 'pageSize': 1}


def test_invalid_mode_rejected():
    r = APIClient().get(reverse('doctor_list'), {'mode': 'telepathy'})
    assert r.status_code == 400


def test_doctor_detail(directory):
    client = APIClient()
    r = client.get(reverse('doctor_detail', args=[directory['gp'].id]))
    assert r.status_code == 200
    assert r.data['doctor']['consultationFee'] == 500
    assert client.get(reverse('doctor_detail', args=[999999])).status_code == 404


def test_profile_completion_verifies_doctor(doctor, auth_client):
    client = auth_client(doctor.user)
    r = client.put(reverse('doctor_profile'), {'experience': 9}, format='json')
    assert r.status_code == 200
    assert r.data['doctor']['isVerified'] is False

    r = client.put(reverse('doctor_profile'),
                   {'qualifications': 'MBBS, MD', 'consultationFee': 800, 'languages': 'English'}, format='json')
    assert r.status_code == 200
    assert r.data['doctor']['isVerified'] is True
    assert r.data['message'] == 'Profile updated and verified successfully!'
    doctor.refresh_from_db()
    assert doctor.consultation_fee == 800


def test_profile_requires_doctor_role(patient, auth_client):
    r = auth_client(patient).get(reverse('doctor_profile'))
    assert r.status_code == 403


def test_profile_text_is_sanitised(doctor, auth_client):
    r = auth_client(doctor.user).put(reverse('doctor_profile'),
                                     {'about': '<script>alert(1)</script>Heart care'}, format='json')
    assert r.status_code == 200
    assert '<script>' not in r.data['doctor']['about']
    assert 'Heart care' in r.data['doctor']['about']


def test_only_admin_can_verify(directory, patient, make_user, auth_client):
    derm = directory['derm']
    r = auth_client(patient).put(reverse('admin_verify_doctor', args=[derm.id]), {'isVerified': True},
                                 format='json')
    assert r.status_code == 403
    derm.refresh_from_db()
    assert derm.is_verified is False

    admin = make_user('admin')
    r = auth_client(admin).put(reverse('admin_verify_doctor', args=[derm.id]), {'isVerified': True},
                               format='json')
    assert r.status_code == 200
    assert r.data['doctor']['isVerified'] is True


def test_verification_refreshes_cached_directory(directory, make_user, auth_client):
    client = APIClient()
    assert names(client.get(reverse('doctor_list'), {'verifiedOnly': 'true'})) == ['Dr. Kapoor']
    admin = make_user('admin')
    auth_client(admin).put(reverse('admin_verify_doctor', args=[directory['gp'].id]), {}, format='json')
    assert names(client.get(reverse('doctor_list'), {'verifiedOnly': 'true'})) == ['Dr. Kapoor', 'Dr. Singh']


def test_admin_creates_standalone_listing(make_user, auth_client):
    admin = make_user('admin')
    r = auth_client(admin).post(reverse('admin_create_doctor'),
                                {'name': 'Dr. Mehta', 'specialization': 'ENT', 'consultationFee': 650,
                                 'isVerified': True}, format='json')
    assert r.status_code == 201
    assert r.data['doctor']['userId'] is None
    doctor = Doctor.objects.get(name='Dr. Mehta')
    assert doctor.consultation_fee == 650
    assert doctor.is_verified is True
