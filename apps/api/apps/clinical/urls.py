"""
Clinical API URLs.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    AppointmentViewSet,
    DocumentViewSet,
    MedicationViewSet,
    PatientAppointmentViewSet,
    PatientDocumentViewSet,
)

router = DefaultRouter()
router.register(r'medications', MedicationViewSet, basename='medication')
router.register(r'appointments', AppointmentViewSet, basename='appointment')
router.register(r'documents', DocumentViewSet, basename='document')
router.register(r'patient/appointments', PatientAppointmentViewSet, basename='patient-appointment')
router.register(r'patient/documents', PatientDocumentViewSet, basename='patient-document')

urlpatterns = [
    path('', include(router.urls)),
]
