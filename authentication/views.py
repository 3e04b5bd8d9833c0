"""
Authentication views for CampusFix Backend.

Provides REST API endpoints for:
- Login (student id / staff id + password)
- Student registration
- Token refresh
- Current user profile
- Password change
- Staff account provisioning
"""

import logging
from rest_framework import status, views
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework.throttling import ScopedRateThrottle

from .serializers import (
    LoginSerializer,
    RegistrationSerializer,
    UserSerializer,
    ProfileUpdateSerializer,
    ChangePasswordSerializer,
    CreateStaffSerializer,
)
from .permissions import IsAuthenticated, IsCoordinator
from audit.models import AuditLog, AuditEventType

logger = logging.getLogger('campusfix.auth')


class LoginThrottle(ScopedRateThrottle):
    """Rate limiting for login endpoints."""
    scope = 'login'


class LoginView(views.APIView):
    """
    Login endpoint for every role.

    POST /api/v1/auth/login/

    Request:
    {
        "identifier": "22235103189",   // student id or staff id
        "password": "secure_password",
        "role": "student"              // optional
    }

    Response:
    {
        "refresh": "jwt_refresh_token",
        "access": "jwt_access_token",
        "role": "student",
        "user": { ... }
    }
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [LoginThrottle]
    throttle_scope = 'login'
    serializer_class = LoginSerializer

    def post(self, request):
        serializer = self.serializer_class(
            data=request.data,
            context={'request': request}
        )
        serializer.is_valid(raise_exception=True)
        result = serializer.save()
        return Response(result, status=status.HTTP_200_OK)


class RegistrationView(views.APIView):
    """
    Registration endpoint for students.

    POST /api/v1/auth/register/

    Request:
    {
        "student_id": "22235103189",
        "name": "Asha Rao",
        "password": "secure_password"
    }

    Response: same shape as login.
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [LoginThrottle]
    throttle_scope = 'login'
    serializer_class = RegistrationSerializer

    def post(self, request):
        serializer = self.serializer_class(
            data=request.data,
            context={'request': request}
        )
        serializer.is_valid(raise_exception=True)
        result = serializer.save()
        logger.info(f"[REGISTER] New student {result['user']['student_id']}")
        return Response(result, status=status.HTTP_201_CREATED)


class CurrentUserView(views.APIView):
    """
    Current user information.

    GET   /api/v1/auth/me/
    PATCH /api/v1/auth/me/   {"name": "...", "profile_image": "https://..."}

    Only the owner edits their own profile; role and ids are read-only.
    """

    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)

    def patch(self, request):
        serializer = ProfileUpdateSerializer(
            request.user,
            data=request.data,
            partial=True
        )
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        AuditLog.log(
            event_type=AuditEventType.USER_UPDATED,
            actor=user,
            target=user,
            request=request,
            description="Profile updated",
            metadata={'fields': sorted(serializer.validated_data.keys())}
        )

        return Response(UserSerializer(user).data)


class ChangePasswordView(views.APIView):
    """
    Change the current user's password.

    POST /api/v1/auth/change-password/

    Request:
    {
        "current_password": "old",
        "new_password": "new"
    }
    """

    permission_classes = [IsAuthenticated]
    throttle_classes = [LoginThrottle]
    throttle_scope = 'login'

    def post(self, request):
        serializer = ChangePasswordSerializer(
            data=request.data,
            context={'request': request}
        )
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(
            {'success': True, 'detail': 'Password changed successfully.'},
            status=status.HTTP_200_OK
        )


class CreateStaffView(views.APIView):
    """
    Provision a staff or admin account.

    POST /api/v1/auth/staff/

    Request:
    {
        "role": "staff" | "admin",
        "name": "Ravi Kumar",
        "password": "initial_password"
    }

    Response: the created user, including the allocated staff id.
    """

    permission_classes = [IsCoordinator]

    def post(self, request):
        serializer = CreateStaffSerializer(
            data=request.data,
            context={'request': request}
        )
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info(f"[STAFF] {request.user.staff_id} provisioned {user.role} {user.staff_id}")
        return Response(
            UserSerializer(user).data,
            status=status.HTTP_201_CREATED
        )
