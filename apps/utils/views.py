# apps/utils/views.py
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.conf import settings

from apps.pricing.models import RuleContext
from apps.pricing.services import PricingService


class ServerInfoView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            "app_name": settings.PROJECT_NAME,
            "version": "1.0.0",
            "debug": settings.DEBUG,
        })


class GlobalConfigView(APIView):
    """
    Frontend ko global settings (delivery rules, return window) bhejne ke liye API.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({
            "return_window_days": settings.RETURN_WINDOW_DAYS,
            "delivery_rules": {
                context: [rule.as_dict() for rule in PricingService.delivery_rules(context)]
                for context in RuleContext.values
            },
        })
