"""
DRF exception handler for SidesHub.

Every error leaves the API as {"error": <message>, "details": <optional>}.

Expected outcomes (already liked, not the owner, ...) never get here -
services return booleans for those. This handler covers what is left:
DRF's own exceptions, bad identifiers, constraint violations that slipped
past validation, and an unreachable database.
"""
import logging

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import DatabaseError, IntegrityError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

logger = logging.getLogger(__name__)


def _error(message, code, details=None):
    body = {'error': message}
    if details is not None:
        body['details'] = details
    return Response(body, status=code)


def custom_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is not None:
        # DRF's own body ({"detail": ...} or field errors) moves under "details"
        if not isinstance(response.data, dict) or 'error' not in response.data:
            response.data = {'error': str(exc), 'details': response.data}
        return response

    view = context.get('view')
    view_name = view.__class__.__name__ if view else 'unknown view'

    if isinstance(exc, ObjectDoesNotExist):
        return _error(str(exc) or 'Not found.', status.HTTP_404_NOT_FOUND)

    if isinstance(exc, ValidationError):
        # e.g. a malformed UUID reaching the ORM
        return _error('Invalid identifier.', status.HTTP_400_BAD_REQUEST, exc.messages)

    # IntegrityError subclasses DatabaseError, check it first
    if isinstance(exc, IntegrityError):
        set_rollback()
        logger.warning(f"Constraint violation in {view_name}: {exc}")
        return _error('Conflicting data. This may be a duplicate entry.', status.HTTP_409_CONFLICT)

    if isinstance(exc, DatabaseError):
        set_rollback()
        logger.error(f"Database error in {view_name}: {exc}")
        return _error('Database unavailable.', status.HTTP_503_SERVICE_UNAVAILABLE)

    if isinstance(exc, ValueError):
        return _error(str(exc), status.HTTP_400_BAD_REQUEST)

    logger.exception(f"Unhandled exception in {view_name}: {exc}")
    return _error('An unexpected error occurred.', status.HTTP_500_INTERNAL_SERVER_ERROR)
