from django.contrib.auth import password_validation
from rest_framework import serializers

from clinic.models import Doctor

from .fields import CleanCharField

MODE_CHOICES = [Doctor.MODE_ONLINE, Doctor.MODE_IN_PERSON, Doctor.MODE_BOTH]


class DoctorRegisterSerializer(serializers.Serializer):
    name = CleanCharField(max_length=255)
    email = serializers.EmailField(max_length=254)
    password = serializers.CharField(write_only=True, min_length=6, max_length=128)
    specialization = CleanCharField(required=False, allow_blank=True, max_length=255)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=20)
    mode = serializers.ChoiceField(choices=MODE_CHOICES, required=False, default=Doctor.MODE_BOTH)

    def validate_password(self, v):
        password_validation.validate_password(v)
        return v


class DoctorListQuerySerializer(serializers.Serializer):
    specialization = serializers.CharField(required=False, allow_blank=True)
    mode = serializers.ChoiceField(choices=MODE_CHOICES, required=False)
    search = serializers.CharField(required=False, allow_blank=True, max_length=100)
    maxFee = serializers.IntegerField(required=False, min_value=0)
    minExperience = serializers.IntegerField(required=False, min_value=0)
    verifiedOnly = serializers.BooleanField(required=False, default=False)
    page = serializers.IntegerField(required=False, min_value=1)
    pageSize = serializers.IntegerField(required=False, min_value=1, max_value=100)

    def validate_specialization(self, v):
        return [s.strip() for s in (v or '').split(',') if s.strip()]


class DoctorProfileSerializer(serializers.Serializer):
    """Partial profile update.  Keys map onto ``Doctor`` fields."""
    name = CleanCharField(required=False, max_length=255)
    specialization = CleanCharField(required=False, allow_blank=True, max_length=255)
    mode = serializers.ChoiceField(choices=MODE_CHOICES, required=False)
    experience = serializers.IntegerField(required=False, min_value=0, max_value=80)
    about = CleanCharField(required=False, allow_blank=True, max_length=5000)
    qualifications = CleanCharField(required=False, allow_blank=True, max_length=512)
    consultationFee = serializers.IntegerField(required=False, min_value=0, source='consultation_fee')
    languages = CleanCharField(required=False, allow_blank=True, max_length=255)
    image = serializers.CharField(required=False, allow_blank=True, max_length=512)


class AdminDoctorCreateSerializer(DoctorProfileSerializer):
    name = CleanCharField(max_length=255)
    isVerified = serializers.BooleanField(required=False, default=False, source='is_verified')


class DoctorVerifySerializer(serializers.Serializer):
    isVerified = serializers.BooleanField(required=False, default=True)
