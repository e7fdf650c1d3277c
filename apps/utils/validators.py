import re
from rest_framework import serializers


def validate_phone(value):
    pattern = r"^\+?\d{10,15}$"
    if not re.match(pattern, str(value)):
        raise serializers.ValidationError("Invalid phone number format.")
    return value
