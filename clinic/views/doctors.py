"""
Doctor directory and doctor profile endpoints.

The public directory is cached per query for a short time; any change to
a doctor bumps a version key so stale pages are never served after an
edit.
"""
from __future__ import annotations

from urllib.parse import urlencode

from django.core.cache import cache
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from clinic.permissions import IsAdminRole, IsDoctorRole
from clinic.serializers.doctors import (
    AdminDoctorCreateSerializer,
    DoctorListQuerySerializer,
    DoctorProfileSerializer,
    DoctorRegisterSerializer,
    DoctorVerifySerializer,
)
from clinic.services import doctors as doctor_service
from clinic.services.accounts import serialize_user
from clinic.services.audit import log_action
from clinic.throttling import AuthRateThrottle


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([AuthRateThrottle])
def register_doctor(request):
    s = DoctorRegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    doctor = doctor_service.register_doctor(
        name=vd['name'], email=vd['email'], password=vd['password'],
        specialization=vd.get('specialization', ''), phone=vd.get('phone', ''), mode=vd['mode'],
    )
    try:
        log_action(user=doctor.user, action='register', object_type='doctor', object_id=doctor.id,
                   detail={'role': 'doctor'})
    except Exception:
        pass
    return Response({
        'ok': True,
        'message': 'Registration successful! Please check your email to verify your account before logging in.',
        'user': serialize_user(doctor.user),
        'doctor': doctor_service.format_doctor(doctor),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_list(request):
    """Public doctor directory.

    Query params:
      - specialization: comma separated list
      - mode: online | in-person (doctors offering ``both`` always match)
      - search: name contains
      - maxFee, minExperience, verifiedOnly
      - page, pageSize: pagination (optional)
    """
    q = DoctorListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    page, page_size = vd.get('page'), vd.get('pageSize')
    if page and not page_size:
        page_size = 20

    params = urlencode(sorted(request.query_params.items()))
    cache_key = f"doctors:v{doctor_service.list_cache_version()}:{params}"
    cached = cache.get(cache_key)
    if cached is not None:
        return Response(cached)

    data, total = doctor_service.list_doctors(
        specializations=vd.get('specialization') or None,
        mode=vd.get('mode'),
        search=(vd.get('search') or '').strip() or None,
        max_fee=vd.get('maxFee'),
        min_experience=vd.get('minExperience'),
        verified_only=vd.get('verifiedOnly', False),
        page=page,
        page_size=page_size,
    )
    payload = {
        'ok': True,
        'data': data,
        'pagination': {'total': total, 'page': page or 1, 'pageSize': page_size or total},
    }
    cache.set(cache_key, payload, doctor_service.LIST_CACHE_SECONDS)
    return Response(payload)


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_detail(request, doctor_id: int):
    doctor = doctor_service.get_doctor(doctor_id)
    if doctor is None:
        return Response({'ok': False, 'message': 'Doctor not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'ok': True, 'doctor': doctor_service.format_doctor(doctor)})


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def my_profile(request):
    """Read or partially update the signed-in doctor's listing.

    A profile that becomes complete (specialization, experience,
    qualifications, fee and languages all set) is verified automatically.
    """
    doctor = doctor_service.doctor_for_user(request.user)
    if request.method == 'GET':
        return Response({'ok': True, 'doctor': doctor_service.format_doctor(doctor)})
    s = DoctorProfileSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor, verified_now = doctor_service.update_profile(doctor, dict(s.validated_data))
    try:
        log_action(user=request.user, action='doctor_update', object_type='doctor', object_id=doctor.id,
                   detail={'fields': sorted(s.validated_data.keys()), 'verified': verified_now})
    except Exception:
        pass
    message = 'Profile updated and verified successfully!' if verified_now else 'Profile updated successfully'
    return Response({'ok': True, 'message': message, 'doctor': doctor_service.format_doctor(doctor)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_create_doctor(request):
    s = AdminDoctorCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = doctor_service.create_doctor(**s.validated_data)
    try:
        log_action(user=request.user, action='doctor_create', object_type='doctor', object_id=doctor.id)
    except Exception:
        pass
    return Response({'ok': True, 'doctor': doctor_service.format_doctor(doctor)}, status=status.HTTP_201_CREATED)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_verify_doctor(request, doctor_id: int):
    doctor = doctor_service.get_doctor(doctor_id)
    if doctor is None:
        return Response({'ok': False, 'message': 'Doctor not found'}, status=status.HTTP_404_NOT_FOUND)
    s = DoctorVerifySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = doctor_service.set_verified(doctor, s.validated_data['isVerified'])
    try:
        log_action(user=request.user, action='doctor_verify', object_type='doctor', object_id=doctor.id,
                   detail={'isVerified': doctor.is_verified})
    except Exception:
        pass
    return Response({'ok': True, 'doctor': doctor_service.format_doctor(doctor)})
