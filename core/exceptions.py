"""
Custom exception handling for CampusFix Backend.

Provides the engine's error taxonomy and a consistent error response format.
Every taxonomy error is recoverable at the caller: the client surfaces the
message and lets the human retry with corrected input.
"""

import logging
from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status

from audit.middleware import client_ip

security_logger = logging.getLogger('campusfix.security')


class CampusFixAPIException(Exception):
    """Base exception class for CampusFix engine errors."""

    default_code = 'ERROR'
    default_message = 'An error occurred.'
    default_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message=None, code=None, status_code=None):
        self.message = message or self.default_message
        self.code = code or self.default_code
        self.status_code = status_code or self.default_status_code
        super().__init__(self.message)


class InvalidState(CampusFixAPIException):
    """An operation's precondition on status or assignment is not met."""
    default_code = 'INVALID_STATE'
    default_message = 'Report is not in a state that allows this action.'
    default_status_code = status.HTTP_409_CONFLICT


class InvalidTransition(InvalidState):
    """
    Raised for a status edge that is not in the lifecycle graph.

    Subclass of InvalidState: the loser of two concurrent transitions on
    the same report sees the edge from the winner's status as illegal.
    """
    default_code = 'INVALID_TRANSITION'

    def __init__(self, current, requested, message=None):
        self.current = current
        self.requested = requested
        super().__init__(
            message or f"Cannot move report from '{current}' to '{requested}'."
        )


class Locked(CampusFixAPIException):
    """Mutation attempted on a report in a terminal state."""
    default_code = 'LOCKED'
    default_message = 'Report is closed and can no longer be changed.'
    default_status_code = status.HTTP_423_LOCKED


class NotFound(CampusFixAPIException):
    """A report or user id does not resolve."""
    default_code = 'NOT_FOUND'
    default_message = 'The requested resource was not found.'
    default_status_code = status.HTTP_404_NOT_FOUND


class Unauthorized(CampusFixAPIException):
    """The actor's role lacks permission for the requested operation."""
    default_code = 'UNAUTHORIZED'
    default_message = 'You do not have permission to perform this action.'
    default_status_code = status.HTTP_403_FORBIDDEN


class ValidationError(CampusFixAPIException):
    """Missing or malformed input, or a stored value that fails integrity checks."""
    default_code = 'VALIDATION_ERROR'
    default_message = 'Invalid request. Please check your input.'
    default_status_code = status.HTTP_400_BAD_REQUEST


def custom_exception_handler(exc, context):
    """
    Custom exception handler that:
    1. Renders engine errors with their own code and message
    2. Provides consistent error response format for DRF errors
    3. Logs security-relevant exceptions

    Response format:
    {
        "success": false,
        "error": {
            "code": "ERROR_CODE",
            "message": "User-friendly message"
        }
    }
    """
    request = context.get('request')
    view = context.get('view')

    if isinstance(exc, CampusFixAPIException):
        error = {
            'code': exc.code,
            'message': exc.message,
        }
        if isinstance(exc, InvalidTransition):
            error['current_status'] = exc.current
            error['requested_status'] = exc.requested
        if exc.status_code == status.HTTP_403_FORBIDDEN:
            _log_security_event(exc, request, view, exc.status_code)
        return Response({'success': False, 'error': error}, status=exc.status_code)

    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if response is not None:
        custom_response = {
            'success': False,
            'error': {
                'code': _get_error_code(response.status_code),
                'message': _get_safe_message(exc, response.status_code),
            }
        }

        if response.status_code in [401, 403, 429]:
            _log_security_event(exc, request, view, response.status_code)

        response.data = custom_response

    return response


def _get_error_code(status_code):
    """Map HTTP status codes to error codes."""
    error_codes = {
        400: 'BAD_REQUEST',
        401: 'UNAUTHENTICATED',
        403: 'FORBIDDEN',
        404: 'NOT_FOUND',
        405: 'METHOD_NOT_ALLOWED',
        409: 'CONFLICT',
        423: 'LOCKED',
        429: 'RATE_LIMIT_EXCEEDED',
        500: 'INTERNAL_ERROR',
    }
    return error_codes.get(status_code, 'UNKNOWN_ERROR')


def _get_safe_message(exc, status_code):
    """
    Get a safe, user-friendly error message.
    Never expose internal details or stack traces.
    """
    safe_messages = {
        400: 'Invalid request. Please check your input.',
        401: 'Authentication required.',
        403: 'You do not have permission to perform this action.',
        404: 'The requested resource was not found.',
        405: 'This method is not allowed.',
        409: 'Request conflicts with current state.',
        429: 'Too many requests. Please try again later.',
        500: 'An internal error occurred. Please try again later.',
    }

    # For validation errors (400), we can be more specific
    if status_code == 400 and hasattr(exc, 'detail'):
        if isinstance(exc.detail, dict):
            for field, errors in exc.detail.items():
                if isinstance(errors, list) and errors:
                    if field == 'non_field_errors':
                        return str(errors[0])
                    return f"Validation error: {field} - {errors[0]}"
                if isinstance(errors, str):
                    return errors
        elif isinstance(exc.detail, list) and exc.detail:
            return str(exc.detail[0])
        elif isinstance(exc.detail, str):
            return exc.detail

    return safe_messages.get(status_code, 'An error occurred.')


def _log_security_event(exc, request, view, status_code):
    """One campusfix.security line per refused request."""
    caller = 'anonymous'
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        caller = f'{user.role}:{user.identifier}'

    security_logger.warning(
        f"[Security] status={status_code} caller={caller} "
        f"ip={client_ip(request) if request else 'unknown'} "
        f"view={view.__class__.__name__ if view else 'unknown'} "
        f"exception={exc.__class__.__name__}"
    )
