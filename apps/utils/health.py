from django.core.cache import cache
from django.db import connection
from django.http import JsonResponse


def health_check(request):
    status = {"db": "unknown", "cache": "unknown"}
    try:
        # Check DB
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        status["db"] = "ok"

        # Check cache (redis in prod, locmem in dev)
        cache.set("health:ping", "pong", timeout=5)
        status["cache"] = "ok" if cache.get("health:ping") == "pong" else "degraded"

        return JsonResponse({"status": "ok", "components": status}, status=200)
    except Exception as e:
        return JsonResponse(
            {"status": "error", "detail": str(e), "components": status},
            status=503
        )
