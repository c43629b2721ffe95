from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.db.models import Count, Max
from django.db.models.functions import TruncDate
from django.utils import timezone

from clinic.models import CalendarEvent

EDITABLE_FIELDS = ('title', 'description', 'start_time', 'end_time', 'type', 'sub_type', 'category',
                   'status', 'value', 'unit', 'intensity', 'medication_info', 'metadata')


def format_event(e: CalendarEvent) -> dict:
    return {
        'id': e.id,
        'title': e.title,
        'description': e.description,
        'start_time': e.start_time.isoformat(),
        'end_time': e.end_time.isoformat() if e.end_time else None,
        'type': e.type,
        'sub_type': e.sub_type,
        'category': e.category,
        'status': e.status,
        'value': e.value,
        'unit': e.unit,
        'intensity': e.intensity,
        'medication_info': e.medication_info,
        'metadata': e.metadata,
        'is_system_generated': e.is_system_generated,
    }


def _in_range(qs, start: Optional[datetime], end: Optional[datetime]):
    if start:
        qs = qs.filter(start_time__gte=start)
    if end:
        qs = qs.filter(start_time__lte=end)
    return qs


def list_events(user, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[CalendarEvent]:
    return list(_in_range(CalendarEvent.objects.filter(user=user), start, end).order_by('start_time', 'id'))


def get_event(user, event_id) -> Optional[CalendarEvent]:
    # scoped by owner so other users' events look absent
    return CalendarEvent.objects.filter(pk=event_id, user=user).first()


def create_event(user, data: dict) -> CalendarEvent:
    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
    return CalendarEvent.objects.create(user=user, **fields)


def update_event(event: CalendarEvent, data: dict) -> CalendarEvent:
    for k, v in data.items():
        if k in EDITABLE_FIELDS:
            setattr(event, k, v)
    event.save()
    return event


def log_activity(user, data: dict, now=None) -> CalendarEvent:
    """Record something the user just did, stamped now and already completed."""
    fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and k not in ('start_time', 'end_time', 'status')}
    if not fields.get('title'):
        fields['title'] = f"Logged {fields.get('type', 'activity')}"
    return CalendarEvent.objects.create(
        user=user,
        start_time=now or timezone.now(),
        status='completed',
        **fields,
    )


def symptom_heatmap(user, start: Optional[datetime] = None, end: Optional[datetime] = None) -> list[dict]:
    """Daily maximum intensity and count of ``vital`` events."""
    qs = _in_range(CalendarEvent.objects.filter(user=user, type='vital'), start, end)
    rows = (qs.annotate(day=TruncDate('start_time', tzinfo=timezone.get_current_timezone()))
            .values('day')
            .annotate(maxIntensity=Max('intensity'), count=Count('id'))
            .order_by('day'))
    return [{'date': r['day'].isoformat(), 'maxIntensity': r['maxIntensity'], 'count': r['count']} for r in rows]
