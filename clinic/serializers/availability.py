from rest_framework import serializers


class WeeklyRuleSerializer(serializers.Serializer):
    dayOfWeek = serializers.IntegerField(min_value=0, max_value=6, source='day_of_week')
    startTime = serializers.TimeField(source='start_time')
    endTime = serializers.TimeField(source='end_time')
    slotDuration = serializers.IntegerField(required=False, min_value=5, max_value=240, source='slot_duration')
    isActive = serializers.BooleanField(required=False, default=True, source='is_active')

    def validate(self, attrs):
        if attrs['end_time'] <= attrs['start_time']:
            raise serializers.ValidationError('endTime must be after startTime')
        return attrs


class AvailabilitySerializer(serializers.Serializer):
    availability = WeeklyRuleSerializer(many=True)
    generateDays = serializers.IntegerField(required=False, min_value=1, max_value=90)


class DateExceptionSerializer(serializers.Serializer):
    date = serializers.DateField()
    isAvailable = serializers.BooleanField(required=False, default=False, source='is_available')
    startTime = serializers.TimeField(required=False, allow_null=True, source='start_time')
    endTime = serializers.TimeField(required=False, allow_null=True, source='end_time')
    slotDuration = serializers.IntegerField(required=False, min_value=5, max_value=240, source='slot_duration')

    def validate(self, attrs):
        if attrs.get('is_available'):
            start, end = attrs.get('start_time'), attrs.get('end_time')
            if not start or not end:
                raise serializers.ValidationError('startTime and endTime are required when available')
            if end <= start:
                raise serializers.ValidationError('endTime must be after startTime')
        else:
            attrs['start_time'] = None
            attrs['end_time'] = None
        return attrs


class DateExceptionListSerializer(serializers.Serializer):
    exceptions = DateExceptionSerializer(many=True, allow_empty=False)
