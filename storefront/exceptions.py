import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ConflictError(exceptions.APIException):
    """A unique key (e.g. email) is already taken."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Resource already exists."
    default_code = "conflict"


class InvalidCredentials(exceptions.APIException):
    # same message for unknown email and wrong password
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid credentials"
    default_code = "invalid_credentials"


def _first_message(detail):
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ""
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ""
    return str(detail)


def api_exception_handler(exc, context):
    """
    Render every error as {"message": ...}.
    Field-level validation errors also keep the per-field map under "errors".
    Anything DRF does not know about becomes a logged 500.
    """
    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception("Unhandled error in %s", view.__class__.__name__ if view else "view", exc_info=exc)
        return Response({"message": "Server error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    data = response.data
    body = {"message": _first_message(data)}
    if isinstance(exc, exceptions.ValidationError) and isinstance(data, dict):
        field_errors = {k: v for k, v in data.items() if k != "non_field_errors"}
        if field_errors:
            body["errors"] = field_errors

    response.data = body
    return response
