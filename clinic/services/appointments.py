"""
Appointment booking and lifecycle.

Booking locks the slot row for the duration of a transaction so that the
check (unbooked, not held by someone else, in the future) and the write
(appointment row, ``is_booked``) cannot interleave with another booking.
Status moves only along ``booked -> completed`` and ``booked -> cancelled``.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from clinic.exceptions import (
    AppointmentNotFound,
    AppointmentStateError,
    CancellationWindowClosed,
    IncompatibleAppointmentType,
    SlotInPast,
    SlotNotFound,
    SlotUnavailable,
)
from clinic.models import Appointment, CalendarEvent, Doctor, Slot
from clinic.services.slots import broadcast_slot_change

logger = logging.getLogger(__name__)


def _can_transition(current: str, new: str) -> bool:
    """Return True if an appointment may move from ``current`` to ``new``."""
    transitions = {
        Appointment.STATUS_BOOKED: [Appointment.STATUS_COMPLETED, Appointment.STATUS_CANCELLED],
        Appointment.STATUS_COMPLETED: [],
        Appointment.STATUS_CANCELLED: [],
    }
    return new in transitions.get(current, [])


def format_appointment(a: Appointment) -> dict:
    slot = a.slot
    doctor = a.doctor
    return {
        'id': a.id,
        'status': a.status,
        'type': a.type,
        'notes': a.notes,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
        'cancelledAt': a.cancelled_at.isoformat() if a.cancelled_at else None,
        'completedAt': a.completed_at.isoformat() if a.completed_at else None,
        'slot': {
            'id': slot.id,
            'startTime': slot.start_time.isoformat(),
            'endTime': slot.end_time.isoformat(),
        },
        'doctor': {
            'id': doctor.id,
            'name': doctor.name,
            'specialization': doctor.specialization,
            'image': doctor.image,
            'mode': doctor.mode,
        },
        'patient': {
            'id': a.user_id,
            'name': a.user.name or a.user.email,
            'email': a.user.email,
            'phone': a.user.phone or None,
        },
    }


def book_appointment(user, slot_id, appointment_type: str, notes: str = '', now=None) -> Appointment:
    """Book ``slot_id`` for ``user``.

    Raises ``SlotNotFound`` (404), ``SlotUnavailable`` (409) when the slot
    is booked or held by another user, ``SlotInPast`` or
    ``IncompatibleAppointmentType`` (400).
    """
    now = now or timezone.now()
    try:
        with transaction.atomic():
            slot = Slot.objects.select_for_update().select_related('doctor').filter(pk=slot_id).first()
            if slot is None:
                raise SlotNotFound()
            if slot.is_booked:
                raise SlotUnavailable('Slot already booked')
            if slot.is_held_by_other(user.id, now):
                raise SlotUnavailable('Slot is temporarily reserved by another user')
            if slot.start_time <= now:
                raise SlotInPast()
            doctor: Doctor = slot.doctor
            if not doctor.supports(appointment_type):
                raise IncompatibleAppointmentType()

            appointment = Appointment.objects.create(
                user=user,
                doctor=doctor,
                slot=slot,
                type=appointment_type,
                notes=notes or '',
            )
            slot.is_booked = True
            slot.locked_until = None
            slot.locked_by = None
            slot.save(update_fields=['is_booked', 'locked_until', 'locked_by', 'updated_at'])

            CalendarEvent.objects.create(
                user=user,
                title=f"Appointment with {doctor.name}",
                description=notes or None,
                start_time=slot.start_time,
                end_time=slot.end_time,
                type='appointment',
                sub_type='general',
                category=doctor.specialization,
                status='planned',
                is_system_generated=True,
                metadata={'appointmentId': appointment.id, 'doctorId': doctor.id, 'mode': appointment_type},
            )
    except IntegrityError:
        # an active appointment for the slot already exists
        raise SlotUnavailable('Slot already booked')

    logger.info('Appointment %s booked: user %s slot %s', appointment.id, user.id, slot.id)
    transaction.on_commit(lambda: broadcast_slot_change(slot, 'booked'))
    return appointment


def _load(appointment_id) -> Appointment:
    a = (Appointment.objects.select_related('slot', 'doctor', 'user')
         .filter(pk=appointment_id).first())
    if a is None:
        raise AppointmentNotFound()
    return a


def _linked_events(a: Appointment):
    return CalendarEvent.objects.filter(
        user_id=a.user_id, type='appointment', is_system_generated=True,
        metadata__appointmentId=a.id,
    )


def cancel_appointment(user, appointment_id, now=None) -> Appointment:
    """Cancel the caller's own booked appointment and free its slot.

    Only possible while the slot start is at least
    ``CANCELLATION_CUTOFF_HOURS`` away.
    """
    now = now or timezone.now()
    with transaction.atomic():
        a = (Appointment.objects.select_for_update().select_related('slot', 'doctor', 'user')
             .filter(pk=appointment_id, user_id=user.id).first())
        if a is None:
            raise AppointmentNotFound()
        if not _can_transition(a.status, Appointment.STATUS_CANCELLED):
            raise AppointmentStateError(f"Cannot cancel an appointment that is {a.status}")
        hours_left = (a.slot.start_time - now).total_seconds() / 3600
        cutoff = settings.CANCELLATION_CUTOFF_HOURS
        if hours_left < cutoff:
            raise CancellationWindowClosed(f"Cannot cancel within {cutoff} hours of the appointment")

        a.status = Appointment.STATUS_CANCELLED
        a.cancelled_at = now
        a.save(update_fields=['status', 'cancelled_at', 'updated_at'])
        slot = Slot.objects.select_for_update().get(pk=a.slot_id)
        slot.is_booked = False
        slot.locked_until = None
        slot.locked_by = None
        slot.save(update_fields=['is_booked', 'locked_until', 'locked_by', 'updated_at'])
        _linked_events(a).update(status='skipped')

    logger.info('Appointment %s cancelled by user %s', a.id, user.id)
    transaction.on_commit(lambda: broadcast_slot_change(slot, 'freed'))
    a.slot = slot
    return a


def complete_appointment(actor, appointment_id, now=None) -> Appointment:
    """Mark a booked appointment completed.  Only its doctor or an admin may."""
    now = now or timezone.now()
    with transaction.atomic():
        a = (Appointment.objects.select_for_update().select_related('slot', 'doctor', 'user')
             .filter(pk=appointment_id).first())
        if a is None:
            raise AppointmentNotFound()
        if actor.role != 'admin' and a.doctor.user_id != actor.id:
            raise AppointmentNotFound()
        if not _can_transition(a.status, Appointment.STATUS_COMPLETED):
            raise AppointmentStateError(f"Cannot complete an appointment that is {a.status}")
        a.status = Appointment.STATUS_COMPLETED
        a.completed_at = now
        a.save(update_fields=['status', 'completed_at', 'updated_at'])
        _linked_events(a).update(status='completed')
    logger.info('Appointment %s completed by %s', a.id, actor.id)
    return a


def list_for_user(user, status: Optional[str] = None) -> list[dict]:
    qs = Appointment.objects.filter(user=user).select_related('slot', 'doctor', 'user')
    if status:
        qs = qs.filter(status=status)
    return [format_appointment(a) for a in qs.order_by('-created_at', '-id')]


def list_for_doctor(doctor: Doctor, status: Optional[str] = None, day: Optional[date] = None) -> list[dict]:
    qs = Appointment.objects.filter(doctor=doctor).select_related('slot', 'doctor', 'user')
    if status:
        qs = qs.filter(status=status)
    if day:
        tz = timezone.get_current_timezone()
        start = timezone.make_aware(datetime.combine(day, time.min), tz)
        qs = qs.filter(slot__start_time__gte=start, slot__start_time__lt=start + timedelta(days=1))
    return [format_appointment(a) for a in qs.order_by('slot__start_time', 'id')]


def stats(*, user=None, doctor: Optional[Doctor] = None, now=None) -> dict:
    """Counts per status plus the next upcoming booked appointment."""
    now = now or timezone.now()
    qs = Appointment.objects.all()
    if doctor is not None:
        qs = qs.filter(doctor=doctor)
    else:
        qs = qs.filter(user=user)
    counts = {row['status']: row['n'] for row in qs.values('status').annotate(n=Count('id'))}
    upcoming = (qs.filter(status=Appointment.STATUS_BOOKED, slot__start_time__gt=now)
                .select_related('slot', 'doctor', 'user').order_by('slot__start_time').first())
    return {
        'total': sum(counts.values()),
        'booked': counts.get(Appointment.STATUS_BOOKED, 0),
        'completed': counts.get(Appointment.STATUS_COMPLETED, 0),
        'cancelled': counts.get(Appointment.STATUS_CANCELLED, 0),
        'next': format_appointment(upcoming) if upcoming else None,
    }


def get_for_user(user, appointment_id) -> Appointment:
    a = _load(appointment_id)
    if a.user_id != user.id and a.doctor.user_id != user.id and user.role != 'admin':
        raise AppointmentNotFound()
    return a
