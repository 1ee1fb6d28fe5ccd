"""
Error taxonomy and the API error envelope.

Every error response has the shape:
    {"success": false, "message": "...", "errors": [{"field": "...", "message": "..."}]}
"""

import logging

from django.conf import settings
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ForbiddenError(exceptions.PermissionDenied):
    default_detail = "Access denied."
    default_code = "forbidden"


class ConflictError(exceptions.APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Resource already exists."
    default_code = "conflict"


class RateLimitError(exceptions.Throttled):
    default_detail = "Please wait before retrying."
    default_code = "rate_limited"


class InternalError(exceptions.APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Internal server error."
    default_code = "internal_error"


class DomainError(exceptions.APIException):
    """
    A business-rule violation. Carries optional structured context in `data`.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Business rule violation."
    default_code = "domain_error"

    def __init__(self, detail=None, code=None, data=None):
        super().__init__(detail, code)
        self.data = data or {}


def _flatten_errors(detail, prefix=""):
    """
    Turns DRF's nested error structure into [{"field": ..., "message": ...}].
    """
    errors = []
    if isinstance(detail, dict):
        for key, value in detail.items():
            field = f"{prefix}.{key}" if prefix else str(key)
            errors.extend(_flatten_errors(value, field))
    elif isinstance(detail, list):
        for item in detail:
            errors.extend(_flatten_errors(item, prefix))
    else:
        errors.append({"field": prefix or "non_field_errors", "message": str(detail)})
    return errors


def envelope_exception_handler(exc, context):
    """
    DRF EXCEPTION_HANDLER producing the {"success": false, ...} envelope.

    Exceptions DRF doesn't know about are logged and turned into a 500 whose
    detail is only exposed when DEBUG is on.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception("Unhandled error in %s", view.__class__.__name__ if view else "request", exc_info=exc)
        body = {"success": False, "message": "Internal server error."}
        if settings.DEBUG:
            body["error"] = str(exc)
        return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, exceptions.ValidationError):
        body = {
            "success": False,
            "message": "Validation failed",
            "errors": _flatten_errors(exc.detail),
        }
    elif isinstance(exc, (Http404, DjangoPermissionDenied)):
        body = {"success": False, "message": str(response.data.get("detail", "Not found."))}
    else:
        detail = exc.detail if isinstance(exc, exceptions.APIException) else response.data
        if isinstance(detail, (dict, list)):
            body = {"success": False, "message": "Request failed", "errors": _flatten_errors(detail)}
        else:
            body = {"success": False, "message": str(detail)}

    if isinstance(exc, DomainError) and exc.data:
        body["data"] = exc.data

    if isinstance(exc, exceptions.Throttled) and exc.wait is not None:
        body["retry_after"] = exc.wait

    if isinstance(exc, InternalError) and not settings.DEBUG:
        body["message"] = InternalError.default_detail

    response.data = body
    return response
