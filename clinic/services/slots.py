"""
Slot listing and the checkout reservation hold.

A hold is the pair ``locked_until``/``locked_by`` on a slot.  Taking one is
a single conditional UPDATE, so two users racing for the same slot can
never both succeed: the row only changes when it is unbooked and its hold
is absent, expired or already owned by the caller.  An expired hold counts
as released even before the sweeper clears it.
"""
from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from clinic.exceptions import SlotInPast, SlotNotFound, SlotUnavailable
from clinic.models import Slot

logger = logging.getLogger(__name__)


def slot_group(doctor_id: int) -> str:
    return f"slots.doctor.{doctor_id}"


def broadcast_slot_change(slot: Slot, event: str) -> None:
    """Push a slot state change to WebSocket subscribers of the doctor.

    Broadcasting is best effort; a missing or failing channel layer never
    breaks the request that changed the slot.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    message = {
        'type': 'slot.update',
        'event': event,
        'slotId': slot.id,
        'doctorId': slot.doctor_id,
        'startTime': slot.start_time.isoformat(),
        'isBooked': slot.is_booked,
        'lockedUntil': slot.locked_until.isoformat() if slot.locked_until else None,
        'ts': timezone.now().isoformat(),
    }
    try:
        async_to_sync(channel_layer.group_send)(slot_group(slot.doctor_id), message)
    except Exception:
        logger.warning('Slot broadcast failed for slot %s', slot.id, exc_info=True)


def format_slot(s: Slot, user_id: Optional[int] = None, now=None) -> dict:
    now = now or timezone.now()
    return {
        'id': s.id,
        'doctorId': s.doctor_id,
        'startTime': s.start_time.isoformat(),
        'endTime': s.end_time.isoformat(),
        'isBooked': s.is_booked,
        'isLocked': s.is_held(now),
        'lockedByMe': bool(user_id and s.is_held(now) and s.locked_by == user_id),
        'lockedUntil': s.locked_until.isoformat() if s.is_held(now) else None,
    }


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime.combine(day, time.min), tz)
    return start, start + timedelta(days=1)


def bookable_q(user_id: Optional[int], now) -> Q:
    """Unbooked and not held by someone else's unexpired hold."""
    free = Q(locked_until__isnull=True) | Q(locked_until__lte=now)
    if user_id:
        free |= Q(locked_by=user_id)
    return Q(is_booked=False) & free


def available_slots(doctor_id: int, day: Optional[date] = None, *, user_id: Optional[int] = None,
                    now=None) -> list[Slot]:
    """Bookable slots of one doctor, ordered by start.

    With ``day`` the result is limited to that local calendar day; without
    it every future slot is returned.  Slots that already started are
    never offered.
    """
    now = now or timezone.now()
    qs = Slot.objects.filter(doctor_id=doctor_id, start_time__gt=now).filter(bookable_q(user_id, now))
    if day is not None:
        start, end = _day_bounds(day)
        qs = qs.filter(start_time__gte=start, start_time__lt=end)
    return list(qs.order_by('start_time'))


def slot_summary(doctor_id: int, start_day: date, end_day: date, *, now=None) -> list[dict]:
    """Per-day totals between two local dates, inclusive."""
    now = now or timezone.now()
    range_start, _ = _day_bounds(start_day)
    _, range_end = _day_bounds(end_day)
    days: "OrderedDict[date, dict]" = OrderedDict()
    d = start_day
    while d <= end_day:
        days[d] = {'date': d.isoformat(), 'totalSlots': 0, 'availableSlots': 0}
        d += timedelta(days=1)
    free_ids = set(
        Slot.objects.filter(doctor_id=doctor_id, start_time__gte=range_start, start_time__lt=range_end,
                            start_time__gt=now)
        .filter(bookable_q(None, now))
        .values_list('id', flat=True)
    )
    tz = timezone.get_current_timezone()
    for s in Slot.objects.filter(doctor_id=doctor_id, start_time__gte=range_start, start_time__lt=range_end):
        bucket = days.get(timezone.localtime(s.start_time, tz).date())
        if bucket is None:
            continue
        bucket['totalSlots'] += 1
        if s.id in free_ids:
            bucket['availableSlots'] += 1
    return list(days.values())


def _refusal(slot_id, now) -> Exception:
    """Work out why a hold was refused, for the error response."""
    slot = Slot.objects.filter(pk=slot_id).first()
    if slot is None:
        return SlotNotFound()
    if slot.is_booked:
        return SlotUnavailable('Slot already booked')
    if slot.start_time <= now:
        return SlotInPast()
    # held by someone else, or lost a race that has since resolved
    return SlotUnavailable('Slot is temporarily reserved by another user')


def lock_slot(slot_id, user, now=None) -> Slot:
    """Place or extend ``user``'s hold on a slot for ``SLOT_LOCK_MINUTES``."""
    now = now or timezone.now()
    until = now + timedelta(minutes=settings.SLOT_LOCK_MINUTES)
    updated = (
        Slot.objects.filter(pk=slot_id, is_booked=False, start_time__gt=now)
        .filter(Q(locked_until__isnull=True) | Q(locked_until__lte=now) | Q(locked_by=user.id))
        .update(locked_until=until, locked_by=user.id, updated_at=now)
    )
    if not updated:
        raise _refusal(slot_id, now)
    slot = Slot.objects.get(pk=slot_id)
    logger.info('Slot %s held by user %s until %s', slot.id, user.id, until.isoformat())
    broadcast_slot_change(slot, 'locked')
    return slot


def release_slot(slot_id, user) -> bool:
    """Drop the caller's own hold.  Returns False when there was none."""
    updated = (
        Slot.objects.filter(pk=slot_id, locked_by=user.id, is_booked=False)
        .update(locked_until=None, locked_by=None, updated_at=timezone.now())
    )
    if not updated:
        if not Slot.objects.filter(pk=slot_id).exists():
            raise SlotNotFound()
        return False
    slot = Slot.objects.get(pk=slot_id)
    logger.info('Slot %s released by user %s', slot.id, user.id)
    broadcast_slot_change(slot, 'released')
    return True


def release_expired_locks(now=None) -> int:
    """Clear every hold whose deadline has passed.  Returns rows touched."""
    now = now or timezone.now()
    expired = Slot.objects.filter(locked_until__isnull=False, locked_until__lte=now)
    slots: Iterable[Slot] = list(expired.only('id', 'doctor_id', 'start_time', 'is_booked'))
    count = expired.update(locked_until=None, locked_by=None, updated_at=now)
    if count:
        logger.info('Released %s expired slot holds', count)
        for slot in slots:
            slot.locked_until = None
            broadcast_slot_change(slot, 'released')
    return count
