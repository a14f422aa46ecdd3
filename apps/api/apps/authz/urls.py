"""
Authz URLs - Clinic registration, password setup, patients.
"""
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import PatientViewSet, RegisterClinicView, SetPasswordView

router = DefaultRouter()
router.register(r'patients', PatientViewSet, basename='patient')

urlpatterns = [
    path('auth/register-clinic/', RegisterClinicView.as_view(), name='register-clinic'),
    path('auth/set-password/', SetPasswordView.as_view(), name='set-password'),
    path('', include(router.urls)),
]
