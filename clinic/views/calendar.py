"""Per-user wellness calendar: events, quick activity log and symptom heatmap."""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.serializers.calendar import CalendarEventSerializer, CalendarRangeSerializer, LogActivitySerializer
from clinic.services import calendar as calendar_service


def _range(request):
    q = CalendarRangeSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return q.validated_data.get('start'), q.validated_data.get('end')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def events(request):
    if request.method == 'GET':
        start, end = _range(request)
        data = [calendar_service.format_event(e) for e in calendar_service.list_events(request.user, start, end)]
        return Response({'ok': True, 'data': data})
    s = CalendarEventSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    event = calendar_service.create_event(request.user, dict(s.validated_data))
    return Response({'ok': True, 'data': calendar_service.format_event(event)}, status=status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def event_detail(request, event_id: int):
    event = calendar_service.get_event(request.user, event_id)
    if event is None:
        return Response({'ok': False, 'message': 'Event not found'}, status=status.HTTP_404_NOT_FOUND)
    if request.method == 'DELETE':
        event.delete()
        return Response({'ok': True, 'message': 'Event deleted successfully'})
    s = CalendarEventSerializer(event, data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    event = calendar_service.update_event(event, dict(s.validated_data))
    return Response({'ok': True, 'data': calendar_service.format_event(event)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def log_activity(request):
    s = LogActivitySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    event = calendar_service.log_activity(request.user, dict(s.validated_data))
    return Response({'ok': True, 'data': calendar_service.format_event(event)}, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def symptom_heatmap(request):
    start, end = _range(request)
    return Response({'ok': True, 'data': calendar_service.symptom_heatmap(request.user, start, end)})
