"""
Request logging middleware for CampusFix Backend.

Writes one ``campusfix.audit`` line per API request. Business actions are
recorded separately by the services through AuditLog.log().
"""

import logging
import re
import time

audit_logger = logging.getLogger('campusfix.audit')

REPORT_PATH = re.compile(r'^/api/v1/reports/(?P<report_id>[0-9a-f-]{36})/')


def client_ip(request):
    """First address in X-Forwarded-For, else the socket peer."""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR', 'unknown')


class AuditLoggingMiddleware:
    """
    Log method, path, caller, status and duration of every ``/api/`` call.

    Report routes also carry the report id, and retried writes the
    client's X-Request-ID, so a single report's traffic can be grepped
    out of the audit log.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        started = time.monotonic()
        response = self.get_response(request)

        if request.path.startswith('/api/'):
            elapsed_ms = (time.monotonic() - started) * 1000
            self._log(request, response.status_code, elapsed_ms)

        return response

    def _log(self, request, status_code, elapsed_ms):
        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated:
            caller = f'{user.role}:{user.identifier}'
        else:
            caller = 'anonymous'

        line = (
            f"[API] {request.method} {request.path} {status_code} "
            f"{elapsed_ms:.1f}ms caller={caller} ip={client_ip(request)}"
        )

        match = REPORT_PATH.match(request.path)
        if match:
            line += f" report={match.group('report_id')}"

        request_id = request.META.get('HTTP_X_REQUEST_ID')
        if request_id:
            line += f" request_id={request_id}"

        if status_code >= 500:
            audit_logger.error(line)
        elif status_code >= 400:
            audit_logger.warning(line)
        else:
            audit_logger.info(line)
