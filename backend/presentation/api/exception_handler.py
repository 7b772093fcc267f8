import logging

from django.db import IntegrityError
from django.db.models.deletion import ProtectedError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from domain.shared.exceptions import (
    AuditWriteError,
    ConflictException,
    DomainException,
    EntityNotFoundException,
    InvalidStateException,
    PermissionDeniedException,
    UnauthenticatedException,
    ValidationFailedException,
)

logger = logging.getLogger(__name__)


DOMAIN_STATUS = (
    (UnauthenticatedException, status.HTTP_401_UNAUTHORIZED),
    (PermissionDeniedException, status.HTTP_403_FORBIDDEN),
    (EntityNotFoundException, status.HTTP_404_NOT_FOUND),
    (ValidationFailedException, status.HTTP_400_BAD_REQUEST),
    (InvalidStateException, status.HTTP_409_CONFLICT),
    (ConflictException, status.HTTP_409_CONFLICT),
    (AuditWriteError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def domain_status(exc: DomainException) -> int:
    for exc_class, http_status in DOMAIN_STATUS:
        if isinstance(exc, exc_class):
            return http_status
    return status.HTTP_400_BAD_REQUEST


def custom_exception_handler(exc, context):
    """
    Map domain errors to HTTP responses with a ``{detail, error, ...}`` body;
    everything else goes through the default DRF handler.
    """
    if isinstance(exc, DomainException):
        http_status = domain_status(exc)
        if http_status >= 500:
            logger.error(f"{exc.code}: {exc.message}")
        return Response(
            {'detail': exc.message, 'error': exc.code, **exc.details},
            status=http_status,
        )

    if isinstance(exc, ProtectedError):
        return Response(
            {
                'detail': 'Cannot delete: the object is referenced by other records.',
                'error': 'protected_error',
            },
            status=status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, IntegrityError):
        return Response(
            {
                'detail': 'Data integrity violation.',
                'error': 'integrity_error',
            },
            status=status.HTTP_409_CONFLICT,
        )

    return exception_handler(exc, context)
