import logging
import time
from django.utils.deprecation import MiddlewareMixin
from django.http import JsonResponse

logger = logging.getLogger("apps.utils")


class RequestLogMiddleware(MiddlewareMixin):
    """
    One log line per request: method, path, status, duration.
    """
    def process_request(self, request):
        request._started_at = time.monotonic()

    def process_response(self, request, response):
        started = getattr(request, "_started_at", None)
        duration_ms = (time.monotonic() - started) * 1000 if started else 0.0
        user = getattr(request, "user", None)
        logger.info(
            "%s %s -> %s (%.1fms)",
            request.method,
            request.path,
            response.status_code,
            duration_ms,
            extra={"user_id": getattr(user, "id", None)} if user and user.is_authenticated else {},
        )
        return response


class GlobalExceptionMiddleware(MiddlewareMixin):
    """
    Last line of defense for non-DRF views.
    """
    def process_exception(self, request, exception):
        logger.exception(f"Unhandled Middleware Exception: {str(exception)}")
        if request.path.startswith('/api/'):
            return JsonResponse(
                {"error": "Internal System Error"},
                status=500
            )
        return None  # Let Django's default 500 handler work for HTML
