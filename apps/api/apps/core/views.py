"""
Core views - API health check and current user profile.
"""
from django.db import connection
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import UserProfileSerializer


class HealthCheckView(APIView):
    """
    Health check for clients of the versioned API.

    Returns 200 when the database answers, 503 otherwise.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request):
        health_status = {'status': 'ok', 'database': 'ok'}

        try:
            connection.ensure_connection()
        except Exception as e:
            health_status['status'] = 'degraded'
            health_status['database'] = f'error: {e}'
            return Response(health_status, status=status.HTTP_503_SERVICE_UNAVAILABLE)

        return Response(health_status, status=status.HTTP_200_OK)


class CurrentUserView(APIView):
    """
    Current authenticated user profile.

    GET /api/auth/me/ - The frontend calls this after JWT login to decide
    between the clinic dashboard and the patient dashboard.

    Response format:
    {
        "id": "uuid",
        "email": "user@example.com",
        "name": "Jane Doe",
        "is_active": true,
        "clinic": {"id": "uuid", "name": "Sunrise Fertility"},
        "roles": ["clinic_admin"]
    }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user

        profile_data = {
            'id': user.id,
            'email': user.email,
            'name': user.name,
            'is_active': user.is_active,
            'clinic': user.clinic,
            'roles': list(user.user_roles.values_list('role__name', flat=True)),
        }

        serializer = UserProfileSerializer(profile_data)
        return Response(serializer.data, status=status.HTTP_200_OK)
