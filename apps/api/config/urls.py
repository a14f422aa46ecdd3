"""
URL configuration for the AIVF clinic platform.
"""
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)
from apps.core.observability.health import HealthzView, ReadyzView

urlpatterns = [
    # Health checks (no auth required)
    path('healthz', HealthzView.as_view(), name='healthz'),
    path('readyz', ReadyzView.as_view(), name='readyz'),

    # Admin
    path('admin/', admin.site.urls),

    # API
    path('api/', include('apps.core.urls')),  # Core API (healthz, auth/token, auth/me)
    path('api/v1/', include('apps.authz.urls')),  # Clinic registration, patients, password setup
    path('api/v1/', include('apps.clinical.urls')),  # Medications, appointments, documents
    path('api/v1/', include('apps.protocols.urls')),  # Protocols, schedules, injection ledger
    path('api/v1/assistant/', include('apps.assistant.urls')),  # AI assistant

    # API Schema
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/schema/swagger-ui/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/schema/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]
