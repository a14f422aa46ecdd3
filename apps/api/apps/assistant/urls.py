"""
URL configuration for the assistant app.
"""
from django.urls import path

from .views import AnalyzeMoodView, ChatView, ExplainDosageView

urlpatterns = [
    path('chat/', ChatView.as_view(), name='assistant-chat'),
    path('explain-dosage/', ExplainDosageView.as_view(), name='assistant-explain-dosage'),
    path('analyze-mood/', AnalyzeMoodView.as_view(), name='assistant-analyze-mood'),
]
