"""
Protocol API URLs.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AssignProtocolView,
    InjectionCompletionViewSet,
    PatientCalendarView,
    PatientProtocolHistoryAdminView,
    PatientProtocolHistoryView,
    PatientProtocolView,
    ProtocolViewSet,
)

router = DefaultRouter()
router.register(r'protocols', ProtocolViewSet, basename='protocol')
router.register(r'patient/injection-completions', InjectionCompletionViewSet, basename='injection-completion')

urlpatterns = [
    path('patients/<uuid:patient_id>/assign-protocol/', AssignProtocolView.as_view(), name='assign-protocol'),
    path('patients/<uuid:patient_id>/protocol-history/', PatientProtocolHistoryAdminView.as_view(), name='patient-protocol-history-admin'),
    path('patient/protocol/', PatientProtocolView.as_view(), name='patient-protocol'),
    path('patient/protocol-history/', PatientProtocolHistoryView.as_view(), name='patient-protocol-history'),
    path('patient/calendar/', PatientCalendarView.as_view(), name='patient-calendar'),
    path('', include(router.urls)),
]
