"""
Assistant endpoints.

- POST /api/v1/assistant/chat/ - {question} -> {answer}
- POST /api/v1/assistant/explain-dosage/ - {medication_name, dosage} -> {explanation, diagram, images}
- POST /api/v1/assistant/analyze-mood/ - {mood, medication_name?} -> {analysis}

Upstream failures return 502 with the standard error envelope.
"""
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from apps.assistant import services
from apps.assistant.serializers import (
    ChatRequestSerializer,
    DosageExplanationSerializer,
    DosageRequestSerializer,
    MoodRequestSerializer,
)


class AssistantView(APIView):
    permission_classes = [IsAuthenticated]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'assistant'


class ChatView(AssistantView):
    def post(self, request):
        serializer = ChatRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        answer = services.answer_question(serializer.validated_data['question'])
        return Response({'answer': answer})


class ExplainDosageView(AssistantView):
    def post(self, request):
        serializer = DosageRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        explanation = services.explain_dosage(
            serializer.validated_data['medication_name'],
            serializer.validated_data['dosage'],
        )
        return Response(DosageExplanationSerializer(explanation).data)


class AnalyzeMoodView(AssistantView):
    def post(self, request):
        serializer = MoodRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        analysis = services.analyze_mood(
            serializer.validated_data['mood'],
            serializer.validated_data.get('medication_name') or None,
        )
        return Response({'analysis': analysis})
