"""
Assistant request/response serializers.
"""
from rest_framework import serializers


class ChatRequestSerializer(serializers.Serializer):
    question = serializers.CharField(max_length=2000)


class DosageRequestSerializer(serializers.Serializer):
    medication_name = serializers.CharField(max_length=255)
    dosage = serializers.CharField(max_length=100)


class MoodRequestSerializer(serializers.Serializer):
    mood = serializers.CharField(max_length=2000)
    medication_name = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)


class DosageExplanationSerializer(serializers.Serializer):
    explanation = serializers.CharField()
    diagram = serializers.CharField(allow_null=True)
    images = serializers.ListField(child=serializers.CharField())
