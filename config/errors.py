import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def error_response(status_code, message, **extra):
    """Build the JSON error body every endpoint answers with."""
    body = {
        "success": False,
        "statusCode": status_code,
        "message": message,
    }
    body.update(extra)
    return Response(body, status=status_code)


def first_error_message(errors):
    """Pull the first human-readable message out of serializer errors."""
    if isinstance(errors, dict):
        for value in errors.values():
            message = first_error_message(value)
            if message:
                return message
        return None
    if isinstance(errors, (list, tuple)):
        for value in errors:
            message = first_error_message(value)
            if message:
                return message
        return None
    return str(errors) if errors else None


def api_exception_handler(exc, context):
    """
    Normalise DRF's exceptions into the same shape as error_response,
    so clients only ever look at `message`.
    """
    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.NotAuthenticated):
        message = "You are not authenticated."
    elif isinstance(exc, exceptions.ValidationError):
        message = first_error_message(response.data) or "Invalid request"
    elif isinstance(response.data, dict) and 'detail' in response.data:
        message = str(response.data['detail'])
    else:
        message = first_error_message(response.data) or "Request failed"

    if response.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(f"Unhandled API error: {message}")

    body = {
        "success": False,
        "statusCode": response.status_code,
        "message": message,
    }
    if isinstance(exc, exceptions.ValidationError):
        body["errors"] = response.data
    response.data = body
    return response
