import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from store.exceptions import (
    AuthTimeout,
    InvalidArgument,
    NotFound,
    PayloadTooLarge,
    PermissionDenied,
    StorageError,
    TrackerError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = [
    (InvalidArgument, status.HTTP_400_BAD_REQUEST),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (PayloadTooLarge, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (AuthTimeout, status.HTTP_401_UNAUTHORIZED),
]


def tracker_exception_handler(exc, context):
    """Render tracker errors as ``{"error": code, "detail": message}``."""
    if not isinstance(exc, TrackerError):
        return exception_handler(exc, context)

    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_class, error_status in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            code = error_status
            break
    if code >= 500:
        logger.error(f"Tracker error in {context.get('view').__class__.__name__}: {exc}")
    return Response({'error': exc.code, 'detail': exc.message}, status=code)
