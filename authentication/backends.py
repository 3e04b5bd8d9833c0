"""
Custom JWT authentication backend for CampusFix.

Extends simplejwt authentication with an account check on every request:
deactivated or deleted users are refused even while their token is
still within its lifetime.
"""

import logging
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken

from audit.middleware import client_ip
from audit.models import AuditLog, AuditEventType

security_logger = logging.getLogger('campusfix.security')


class ActiveUserJWTAuthentication(JWTAuthentication):
    """
    JWT authentication that re-checks the account on each request.

    Every request must include:
    - Authorization: Bearer <token>
    """

    def authenticate(self, request):
        """
        Authenticate the request and validate the account status.

        Returns:
            tuple: (user, validated_token) if successful

        Raises:
            InvalidToken: If token or account validation fails
        """
        result = super().authenticate(request)

        if result is None:
            return None

        user, validated_token = result

        self._check_user_status(user, request, validated_token)

        return (user, validated_token)

    def _check_user_status(self, user, request, token):
        """
        Check if user account may still use the API.

        Raises:
            InvalidToken: If user is inactive or deleted, or the role
                claim no longer matches the account
        """
        if not user.is_active or user.is_deleted:
            security_logger.warning(
                f"[Auth] inactive account {user.identifier} refused, ip={client_ip(request)}"
            )
            AuditLog.log(
                event_type=AuditEventType.AUTH_TOKEN_REVOKED,
                actor=user,
                request=request,
                success=False,
                description="Inactive user attempted API access"
            )
            raise InvalidToken({
                'detail': 'Your account is not active.',
                'code': 'account_inactive'
            })

        claimed_role = token.get('role')
        if claimed_role is not None and claimed_role != user.role:
            security_logger.warning(
                f"[Auth] role claim {claimed_role} does not match {user.identifier}, ip={client_ip(request)}"
            )
            raise InvalidToken({
                'detail': 'Token does not match this account.',
                'code': 'role_mismatch'
            })
