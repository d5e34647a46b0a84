"""
Per-request context for the audit trail.

Services call audit.api.log() without a request in hand; the middleware
parks the current request on a thread-local so log() can still record the
caller's address, user agent and correlation id. Install it after
AuthenticationMiddleware.
"""
import threading
import uuid

_local = threading.local()


def get_current_request():
    return getattr(_local, "request", None)


def get_request_id():
    return getattr(_local, "request_id", None)


class AuditContextMiddleware:
    """Bind the request and an X-Request-ID (generated when absent) for the duration of a call."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.audit_request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        _local.request, _local.request_id = request, request.audit_request_id
        try:
            return self.get_response(request)
        finally:
            _local.request = _local.request_id = None
