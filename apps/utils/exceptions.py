from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework import status
import logging

logger = logging.getLogger(__name__)


class BusinessLogicException(Exception):
    """
    Raised when a domain rule is violated (e.g. 'Order cannot be cancelled').
    """
    code = "business_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message, code=None):
        self.message = message
        if code:
            self.code = code
        super().__init__(message)


class NotFound(BusinessLogicException):
    """
    Referenced order / group / option does not exist.
    """
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class InvalidTransition(BusinessLogicException):
    """
    Requested status is not reachable from the order's current status.
    """
    code = "invalid_transition"
    http_status = status.HTTP_409_CONFLICT


class PreconditionFailed(BusinessLogicException):
    """
    Transition exists but a business rule blocks it right now
    (cancel after seller confirmed, return window expired, ...).
    """
    code = "precondition_failed"
    http_status = status.HTTP_409_CONFLICT


class ValidationFailed(BusinessLogicException):
    code = "validation_failed"


class ConfigurationGap(BusinessLogicException):
    """
    Delivery rule set has no tier for a subtotal.
    Only raised in strict mode; checkout defaults the charge to zero.
    """
    code = "configuration_gap"


def custom_exception_handler(exc, context):
    # Call REST framework's default exception handler first
    response = exception_handler(exc, context)

    if isinstance(exc, BusinessLogicException):
        return Response(
            {"error": exc.message, "code": exc.code},
            status=exc.http_status
        )

    # If response is None, it's an unhandled server error (500)
    if response is None:
        logger.error(f"Unhandled Exception: {exc}", exc_info=True)
        return Response(
            {"error": "Internal Server Error", "code": "server_error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return response
