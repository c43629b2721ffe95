"""
Appointment endpoints for patients and doctors.

Booking and cancellation rules are enforced in
``clinic.services.appointments``; these views only validate input, pick the
caller's scope and shape the response.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from clinic.permissions import IsDoctorOrAdmin, IsDoctorRole, IsPatientRole
from clinic.serializers.booking import (
    AppointmentListQuerySerializer,
    BookingSerializer,
    DoctorAppointmentQuerySerializer,
)
from clinic.services import appointments as appointment_service
from clinic.services.audit import log_action
from clinic.services.doctors import doctor_for_user
from clinic.throttling import BookingRateThrottle


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
@throttle_classes([UserRateThrottle, BookingRateThrottle])
def appointments(request):
    """GET: the caller's appointments, newest first.  POST: book a slot."""
    if request.method == 'GET':
        q = AppointmentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        data = appointment_service.list_for_user(request.user, q.validated_data.get('status'))
        return Response({'ok': True, 'data': data})

    s = BookingSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    appointment = appointment_service.book_appointment(request.user, vd['slotId'], vd['type'], vd.get('notes', ''))
    try:
        log_action(user=request.user, action='appointment_book', object_type='appointment',
                   object_id=appointment.id, detail={'slotId': vd['slotId'], 'type': vd['type']})
    except Exception:
        pass
    return Response({
        'ok': True,
        'message': 'Appointment booked successfully',
        'appointment': appointment_service.format_appointment(appointment),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def doctor_appointments(request):
    doctor = doctor_for_user(request.user)
    q = DoctorAppointmentQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = appointment_service.list_for_doctor(doctor, q.validated_data.get('status'), q.validated_data.get('date'))
    return Response({'ok': True, 'data': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, appointment_id: int):
    a = appointment_service.get_for_user(request.user, appointment_id)
    return Response({'ok': True, 'appointment': appointment_service.format_appointment(a)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def cancel_appointment(request, appointment_id: int):
    """Cancel an own appointment.  Refused inside the cancellation cutoff."""
    a = appointment_service.cancel_appointment(request.user, appointment_id)
    try:
        log_action(user=request.user, action='appointment_cancel', object_type='appointment', object_id=a.id)
    except Exception:
        pass
    return Response({
        'ok': True,
        'message': 'Appointment cancelled successfully',
        'appointment': appointment_service.format_appointment(a),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorOrAdmin])
def complete_appointment(request, appointment_id: int):
    a = appointment_service.complete_appointment(request.user, appointment_id)
    try:
        log_action(user=request.user, action='appointment_complete', object_type='appointment', object_id=a.id)
    except Exception:
        pass
    return Response({
        'ok': True,
        'message': 'Appointment marked as completed',
        'appointment': appointment_service.format_appointment(a),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def appointment_stats(request):
    user = request.user
    if user.role == 'doctor':
        data = appointment_service.stats(doctor=doctor_for_user(user))
    else:
        data = appointment_service.stats(user=user)
    return Response({'ok': True, 'data': data})
