from rest_framework import serializers

from clinic.models import Appointment

from .fields import CleanCharField

STATUS_CHOICES = [Appointment.STATUS_BOOKED, Appointment.STATUS_COMPLETED, Appointment.STATUS_CANCELLED]
TYPE_CHOICES = [Appointment.TYPE_ONLINE, Appointment.TYPE_IN_PERSON]

MAX_RANGE_DAYS = 92


class SlotDayQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)


class SlotListQuerySerializer(SlotDayQuerySerializer):
    doctorId = serializers.IntegerField()


class SlotRangeQuerySerializer(serializers.Serializer):
    startDate = serializers.DateField()
    endDate = serializers.DateField()

    def validate(self, attrs):
        span = (attrs['endDate'] - attrs['startDate']).days
        if span < 0:
            raise serializers.ValidationError('endDate must not be before startDate')
        if span > MAX_RANGE_DAYS:
            raise serializers.ValidationError(f'Range cannot exceed {MAX_RANGE_DAYS} days')
        return attrs


class SlotIdSerializer(serializers.Serializer):
    slotId = serializers.IntegerField(min_value=1)


class BookingSerializer(SlotIdSerializer):
    type = serializers.ChoiceField(choices=TYPE_CHOICES)
    notes = CleanCharField(required=False, allow_blank=True, max_length=2000, default='')


class AppointmentListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_CHOICES, required=False)


class DoctorAppointmentQuerySerializer(AppointmentListQuerySerializer):
    date = serializers.DateField(required=False)
