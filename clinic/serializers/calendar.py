from rest_framework import serializers

from clinic.models import CalendarEvent

from .fields import CleanCharField


class CalendarRangeSerializer(serializers.Serializer):
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        start, end = attrs.get('start'), attrs.get('end')
        if start and end and end < start:
            raise serializers.ValidationError('end must not be before start')
        return attrs


class CalendarEventSerializer(serializers.Serializer):
    """Field names follow the stored column names used by the calendar UI."""
    title = CleanCharField(max_length=255)
    description = CleanCharField(required=False, allow_blank=True, allow_null=True, max_length=5000)
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField(required=False, allow_null=True)
    type = serializers.ChoiceField(choices=[c for c, _ in CalendarEvent.TYPE_CHOICES])
    sub_type = serializers.ChoiceField(choices=[c for c, _ in CalendarEvent.SUB_TYPE_CHOICES], required=False)
    category = CleanCharField(required=False, allow_blank=True, allow_null=True, max_length=100)
    status = serializers.ChoiceField(choices=[c for c, _ in CalendarEvent.STATUS_CHOICES], required=False)
    value = CleanCharField(required=False, allow_blank=True, allow_null=True, max_length=100)
    unit = CleanCharField(required=False, allow_blank=True, allow_null=True, max_length=32)
    intensity = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=5)
    medication_info = serializers.JSONField(required=False, allow_null=True)
    metadata = serializers.JSONField(required=False, allow_null=True)

    def validate(self, attrs):
        start = attrs.get('start_time', getattr(self.instance, 'start_time', None))
        end = attrs.get('end_time', getattr(self.instance, 'end_time', None))
        if start and end and end < start:
            raise serializers.ValidationError('end_time must not be before start_time')
        return attrs


class LogActivitySerializer(CalendarEventSerializer):
    title = CleanCharField(required=False, allow_blank=True, max_length=255)
    start_time = None
    end_time = None
    status = None
