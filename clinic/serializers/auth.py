from django.contrib.auth import password_validation
from rest_framework import serializers

from .fields import CleanCharField


class RegisterSerializer(serializers.Serializer):
    name = CleanCharField(max_length=255)
    email = serializers.EmailField(max_length=254)
    password = serializers.CharField(write_only=True, min_length=6, max_length=128)
    # admins are created by other admins, never self-registered
    role = serializers.ChoiceField(choices=['user', 'doctor'], required=False, default='user')
    phone = serializers.CharField(required=False, allow_blank=True, max_length=20)

    def validate_name(self, v):
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v

    def validate_password(self, v):
        password_validation.validate_password(v)
        return v


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class TokenSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=128)


class EmailSerializer(serializers.Serializer):
    email = serializers.EmailField()


class ResetPasswordSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=128)
    password = serializers.CharField(write_only=True, min_length=6, max_length=128)


class ChangePasswordSerializer(serializers.Serializer):
    currentPassword = serializers.CharField(write_only=True)
    newPassword = serializers.CharField(write_only=True, min_length=6, max_length=128)


class ProfileUpdateSerializer(serializers.Serializer):
    name = CleanCharField(required=False, max_length=255)


class TwoFactorToggleSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()


class TwoFactorVerifySerializer(serializers.Serializer):
    userId = serializers.IntegerField()
    otp = serializers.CharField(max_length=6)


class OtpSendSerializer(serializers.Serializer):
    phone = serializers.CharField(max_length=32)
    country = serializers.CharField(required=False, max_length=2, min_length=2)


class OtpVerifySerializer(serializers.Serializer):
    otp = serializers.CharField(max_length=6)
