"""
Core serializers.
"""
from rest_framework import serializers

from .models import Clinic


class ClinicSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Clinic
        fields = ['id', 'name']
        read_only_fields = fields


class UserProfileSerializer(serializers.Serializer):
    """Profile of the authenticated user, with clinic and role names."""
    id = serializers.UUIDField()
    email = serializers.EmailField()
    name = serializers.CharField()
    is_active = serializers.BooleanField()
    clinic = ClinicSummarySerializer(allow_null=True)
    roles = serializers.ListField(child=serializers.CharField())
