"""
Slot listing and the checkout hold.

``lock`` and ``release`` only ever touch the caller's own hold; booking
itself lives in ``clinic.views.appointments``.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from clinic.models import Doctor
from clinic.permissions import IsPatientRole
from clinic.serializers.booking import (
    SlotDayQuerySerializer,
    SlotIdSerializer,
    SlotListQuerySerializer,
    SlotRangeQuerySerializer,
)
from clinic.services import slots as slot_service
from clinic.throttling import BookingRateThrottle


def _viewer_id(request):
    user = request.user
    return user.id if user and user.is_authenticated else None


def _slots_response(request, doctor_id: int, day):
    if not Doctor.objects.filter(pk=doctor_id).exists():
        return Response({'ok': False, 'message': 'Doctor not found'}, status=status.HTTP_404_NOT_FOUND)
    viewer = _viewer_id(request)
    slots = slot_service.available_slots(doctor_id, day, user_id=viewer)
    return Response({'ok': True, 'data': [slot_service.format_slot(s, viewer) for s in slots]})


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_slots(request, doctor_id: int):
    """Bookable slots of a doctor, optionally for one ``date`` (YYYY-MM-DD)."""
    q = SlotDayQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return _slots_response(request, doctor_id, q.validated_data.get('date'))


@api_view(['GET'])
@permission_classes([AllowAny])
def slot_list(request):
    q = SlotListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return _slots_response(request, q.validated_data['doctorId'], q.validated_data.get('date'))


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_slot_range(request, doctor_id: int):
    """Per-day ``totalSlots``/``availableSlots`` for a calendar view."""
    q = SlotRangeQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = slot_service.slot_summary(doctor_id, q.validated_data['startDate'], q.validated_data['endDate'])
    return Response({'ok': True, 'data': data})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
@throttle_classes([BookingRateThrottle])
def lock_slot(request):
    s = SlotIdSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    slot = slot_service.lock_slot(s.validated_data['slotId'], request.user)
    return Response({
        'ok': True,
        'message': 'Slot reserved',
        'slot': slot_service.format_slot(slot, request.user.id),
        'lockedUntil': slot.locked_until.isoformat(),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatientRole])
def release_slot(request):
    s = SlotIdSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    released = slot_service.release_slot(s.validated_data['slotId'], request.user)
    return Response({'ok': True, 'released': released})
