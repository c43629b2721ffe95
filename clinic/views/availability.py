"""Doctor weekly availability and per-date exceptions."""
from __future__ import annotations

from datetime import date

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from clinic.models import Doctor, DoctorAvailability, DoctorDateException
from clinic.permissions import IsDoctorRole
from clinic.serializers.availability import AvailabilitySerializer, DateExceptionListSerializer
from clinic.services import availability as availability_service
from clinic.services.audit import log_action
from clinic.services.doctors import doctor_for_user


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def set_availability(request):
    """Replace the weekly schedule and generate slots for ``generateDays`` days."""
    doctor = doctor_for_user(request.user)
    s = AvailabilitySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    rules = [dict(r) for r in s.validated_data['availability']]
    created = availability_service.replace_weekly_rules(doctor, rules, s.validated_data.get('generateDays'))
    try:
        log_action(user=request.user, action='availability_set', object_type='doctor', object_id=doctor.id,
                   detail={'rules': len(rules), 'slotsCreated': created})
    except Exception:
        pass
    if not any(r.get('is_active', True) for r in rules):
        message = 'No availability set'
    elif created:
        message = 'Availability set and slots generated successfully'
    else:
        message = 'Availability set but no slots generated'
    return Response({'ok': True, 'message': message, 'slotsCreated': created})


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_availability(request, doctor_id: int):
    if not Doctor.objects.filter(pk=doctor_id).exists():
        return Response({'ok': False, 'message': 'Doctor not found'}, status=status.HTTP_404_NOT_FOUND)
    rules = DoctorAvailability.objects.filter(doctor_id=doctor_id, is_active=True).order_by('day_of_week', 'start_time')
    return Response({'ok': True, 'data': [availability_service.format_rule(r) for r in rules]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def set_date_exceptions(request):
    doctor = doctor_for_user(request.user)
    s = DateExceptionListSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    count = availability_service.upsert_exceptions(doctor, [dict(e) for e in s.validated_data['exceptions']])
    return Response({'ok': True, 'message': 'Date exceptions saved successfully', 'count': count})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def my_date_exceptions(request):
    doctor = doctor_for_user(request.user)
    items = DoctorDateException.objects.filter(doctor=doctor).order_by('date')
    return Response({'ok': True, 'data': [availability_service.format_exception(e) for e in items]})


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_date_exceptions(request, doctor_id: int):
    items = DoctorDateException.objects.filter(doctor_id=doctor_id).order_by('date')
    return Response({'ok': True, 'data': [availability_service.format_exception(e) for e in items]})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def delete_date_exception(request, day: date):
    doctor = doctor_for_user(request.user)
    if not availability_service.delete_exception(doctor, day):
        return Response({'ok': False, 'message': 'Date exception not found'}, status=status.HTTP_404_NOT_FOUND)
    return Response({'ok': True, 'message': 'Date exception deleted successfully'})
