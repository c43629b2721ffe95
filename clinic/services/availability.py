"""
Weekly availability rules, per-date exceptions and slot generation.

For each date in the generation window a date exception takes precedence
over the weekly rule: an unavailable exception produces no slots, an
available one supplies its own hours.  Slots are cut back to back from the
window start and a slot is only kept when its end still fits inside the
window.  Slots that already exist for the doctor at the same start time are
left alone, so regeneration never touches booked or held slots.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from clinic.models import Doctor, DoctorAvailability, DoctorDateException, Slot

logger = logging.getLogger(__name__)


def weekday_index(d: date) -> int:
    """Day of week counted from Sunday = 0."""
    return (d.weekday() + 1) % 7


def format_rule(r: DoctorAvailability) -> dict:
    return {
        'id': r.id,
        'dayOfWeek': r.day_of_week,
        'startTime': r.start_time.strftime('%H:%M'),
        'endTime': r.end_time.strftime('%H:%M'),
        'slotDuration': r.slot_duration,
        'isActive': r.is_active,
    }


def format_exception(e: DoctorDateException) -> dict:
    return {
        'id': e.id,
        'date': e.date.isoformat(),
        'isAvailable': e.is_available,
        'startTime': e.start_time.strftime('%H:%M') if e.start_time else None,
        'endTime': e.end_time.strftime('%H:%M') if e.end_time else None,
        'slotDuration': e.slot_duration,
    }


def cut_intervals(day: date, start: time, end: time, minutes: int, tz=None) -> list[tuple[datetime, datetime]]:
    """Split ``start..end`` on ``day`` into back-to-back slots of ``minutes``."""
    if minutes <= 0:
        return []
    tz = tz or timezone.get_current_timezone()
    current = timezone.make_aware(datetime.combine(day, start), tz)
    window_end = timezone.make_aware(datetime.combine(day, end), tz)
    step = timedelta(minutes=minutes)
    out = []
    while current < window_end:
        nxt = current + step
        if nxt <= window_end:
            out.append((current, nxt))
        current = nxt
    return out


def plan_slots(rules: Iterable[DoctorAvailability], exceptions: Iterable[DoctorDateException],
               start_day: date, end_day: date) -> list[tuple[datetime, datetime]]:
    """Return the intervals the schedule produces between two dates, inclusive."""
    by_weekday: dict[int, list[DoctorAvailability]] = {}
    for r in rules:
        if r.is_active:
            by_weekday.setdefault(r.day_of_week, []).append(r)
    by_date = {e.date: e for e in exceptions}

    intervals: list[tuple[datetime, datetime]] = []
    d = start_day
    while d <= end_day:
        exc = by_date.get(d)
        if exc is not None:
            if exc.is_available and exc.start_time and exc.end_time:
                intervals.extend(cut_intervals(d, exc.start_time, exc.end_time,
                                               exc.slot_duration or settings.DEFAULT_SLOT_MINUTES))
        else:
            for r in by_weekday.get(weekday_index(d), []):
                intervals.extend(cut_intervals(d, r.start_time, r.end_time,
                                               r.slot_duration or settings.DEFAULT_SLOT_MINUTES))
        d += timedelta(days=1)
    return intervals


def generate_slots(doctor: Doctor, days: Optional[int] = None, now=None) -> int:
    """Create the future slots the current schedule implies.  Returns how many were new."""
    now = now or timezone.now()
    days = settings.SLOT_GENERATE_DAYS if days is None else days
    start_day = timezone.localdate(now)
    end_day = start_day + timedelta(days=days)
    rules = list(doctor.availability.filter(is_active=True))
    exceptions = list(doctor.date_exceptions.filter(date__gte=start_day, date__lte=end_day))

    planned = [(s, e) for s, e in plan_slots(rules, exceptions, start_day, end_day) if s > now]
    if not planned:
        return 0
    existing = set(
        Slot.objects.filter(doctor=doctor, start_time__gte=min(s for s, _ in planned),
                            start_time__lte=max(s for s, _ in planned))
        .values_list('start_time', flat=True)
    )
    seen = set(existing)
    new_slots = []
    for s, e in planned:
        if s in seen:
            continue
        seen.add(s)
        new_slots.append(Slot(doctor=doctor, start_time=s, end_time=e))
    Slot.objects.bulk_create(new_slots, ignore_conflicts=True)
    logger.info('Generated %s slots for doctor %s over %s days', len(new_slots), doctor.id, days)
    return len(new_slots)


def replace_weekly_rules(doctor: Doctor, rules: list[dict], generate_days: Optional[int] = None) -> int:
    """Swap the doctor's weekly rules for ``rules`` and generate slots.

    Inactive entries are dropped.  Returns the number of slots created.
    """
    with transaction.atomic():
        doctor.availability.all().delete()
        DoctorAvailability.objects.bulk_create([
            DoctorAvailability(
                doctor=doctor,
                day_of_week=r['day_of_week'],
                start_time=r['start_time'],
                end_time=r['end_time'],
                slot_duration=r.get('slot_duration') or settings.DEFAULT_SLOT_MINUTES,
                is_active=True,
            )
            for r in rules if r.get('is_active', True)
        ])
        if not doctor.availability.exists():
            return 0
        return generate_slots(doctor, generate_days)


def upsert_exceptions(doctor: Doctor, items: list[dict]) -> int:
    with transaction.atomic():
        for item in items:
            DoctorDateException.objects.update_or_create(
                doctor=doctor,
                date=item['date'],
                defaults={
                    'is_available': item.get('is_available', False),
                    'start_time': item.get('start_time'),
                    'end_time': item.get('end_time'),
                    'slot_duration': item.get('slot_duration') or settings.DEFAULT_SLOT_MINUTES,
                },
            )
    return len(items)


def delete_exception(doctor: Doctor, day: date) -> bool:
    deleted, _ = DoctorDateException.objects.filter(doctor=doctor, date=day).delete()
    return bool(deleted)
