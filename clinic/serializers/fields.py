import bleach
from rest_framework import serializers


def clean_text(v):
    if v is None:
        return v
    return bleach.clean(str(v).strip(), tags=[], strip=True)


class CleanCharField(serializers.CharField):
    """CharField that strips markup from user supplied text."""

    def to_internal_value(self, data):
        return clean_text(super().to_internal_value(data))
