from __future__ import annotations

import json
import logging
from functools import wraps
from typing import Any

from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError
from django.http import HttpRequest, HttpResponse, JsonResponse

from apps.common.exceptions import AlreadyBookedError, StaleRecordError

logger = logging.getLogger(__name__)


def is_htmx_request(request: HttpRequest) -> bool:
    """Detect HTMX (or django-htmx) requests in a resilient way."""
    header_value: Any = None
    if hasattr(request, "headers"):
        header_value = request.headers.get("HX-Request")
    if isinstance(header_value, str) and header_value.lower() == "true":
        return True

    meta_value = request.META.get("HTTP_HX_REQUEST")
    if isinstance(meta_value, str) and meta_value.lower() == "true":
        return True

    htmx_attr = getattr(request, "htmx", None)
    if isinstance(htmx_attr, bool):
        return htmx_attr
    return bool(htmx_attr)


def htmx_trigger_response(events: dict, status: int = 204) -> HttpResponse:
    response = HttpResponse(status=status)
    response["HX-Trigger"] = json.dumps(events)
    return response


def error_messages(exc: ValidationError) -> list[str]:
    return [str(message) for message in exc.messages]


def error_response(request: HttpRequest, exc: Exception) -> HttpResponse:
    """Map workflow exceptions to a JSON (or HTMX alert) error response."""
    if isinstance(exc, AlreadyBookedError):
        status, messages = 409, error_messages(exc)
    elif isinstance(exc, StaleRecordError):
        status, messages = 409, [str(exc)]
    elif isinstance(exc, ValidationError):
        status, messages = 400, error_messages(exc)
    elif isinstance(exc, PermissionDenied):
        status, messages = 403, [str(exc) or "Permission denied."]
    elif isinstance(exc, ObjectDoesNotExist):
        status, messages = 404, [str(exc) or "Not found."]
    else:
        raise exc

    if is_htmx_request(request):
        return htmx_trigger_response(
            {
                "show-sweet-alert": {
                    "icon": "error",
                    "title": "Request failed",
                    "text": "\n".join(messages),
                }
            },
            status=status if status != 400 else 422,
        )
    return JsonResponse({"errors": messages}, status=status)


def json_workflow_view(view):
    """Turn workflow errors raised by ``view`` into JSON error responses."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except (ValidationError, PermissionDenied, ObjectDoesNotExist, StaleRecordError) as exc:
            logger.info("%s rejected: %s", view.__name__, exc)
            return error_response(request, exc)

    return wrapper
