"""
Error taxonomy shared by the stores, the credential lifecycle manager and the
bulk provisioning engine.

Every error carries a stable machine-readable ``kind`` plus a human-readable
message and, where it applies, the offending field. The DRF exception handler
at the bottom renders all of them (and DRF's own errors) as one shape::

    {"kind": "duplicate_key", "detail": "...", "field": "gate_code", ...}
"""
from enum import Enum
import logging

from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    VALIDATION = 'validation_error'
    DUPLICATE_KEY = 'duplicate_key'
    DUPLICATE_RFID = 'duplicate_rfid'
    SUBJECT_HAS_CREDENTIAL = 'subject_already_has_credential'
    NOT_FOUND = 'not_found'
    NOT_DELETED = 'not_deleted'
    ALREADY_DELETED = 'already_deleted'
    INVALID_TRANSITION = 'invalid_transition'
    CREDENTIAL_EXPIRED = 'credential_expired'
    FORBIDDEN = 'forbidden'
    NOT_AUTHENTICATED = 'not_authenticated'
    STORAGE_UNAVAILABLE = 'storage_unavailable'
    ERROR = 'error'


class ServiceError(drf_exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = ErrorKind.ERROR
    default_detail = 'The request could not be completed.'

    def __init__(self, message=None, field=None, **context):
        super().__init__(detail=message, code=self.kind.value)
        self.message = str(self.detail)
        self.field = field
        self.context = context

    def as_dict(self):
        data = {
            'kind': self.kind.value,
            'detail': self.message,
            'field': self.field,
        }
        if self.context:
            data.update(self.context)
        return data


class ValidationError(ServiceError):
    kind = ErrorKind.VALIDATION
    default_detail = 'Invalid input.'


class DuplicateKeyError(ServiceError):
    """
    A uniqueness reservation is held by another live record.
    The conflict payload names the namespace, the key and the current owner.
    """
    status_code = status.HTTP_409_CONFLICT
    kind = ErrorKind.DUPLICATE_KEY
    default_detail = 'A record with this value already exists.'

    def __init__(self, message=None, field=None, namespace=None, key=None, existing_id=None):
        super().__init__(message, field=field, conflict={
            'namespace': namespace,
            'key': key,
            'existing_id': existing_id,
        })
        self.namespace = namespace
        self.key = key
        self.existing_id = existing_id


class DuplicateRfid(DuplicateKeyError):
    kind = ErrorKind.DUPLICATE_RFID
    default_detail = 'This RFID number is already in use.'


class SubjectAlreadyHasCredential(DuplicateKeyError):
    kind = ErrorKind.SUBJECT_HAS_CREDENTIAL
    default_detail = 'The subject already has a card assigned.'


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = ErrorKind.NOT_FOUND
    default_detail = 'Resource not found.'


class NotDeletedError(ServiceError):
    kind = ErrorKind.NOT_DELETED
    default_detail = 'Record is not deleted and cannot be restored.'


class AlreadyDeletedError(ServiceError):
    kind = ErrorKind.ALREADY_DELETED
    default_detail = 'Record is already deleted.'


class InvalidTransitionError(ServiceError):
    kind = ErrorKind.INVALID_TRANSITION
    default_detail = 'The requested state change is not allowed.'


class CredentialExpired(ServiceError):
    kind = ErrorKind.CREDENTIAL_EXPIRED
    default_detail = 'Card has expired. Extend the expiry date before activating it.'


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = ErrorKind.FORBIDDEN
    default_detail = 'You do not have permission to perform this action.'


class StorageUnavailable(ServiceError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    kind = ErrorKind.STORAGE_UNAVAILABLE
    default_detail = 'Storage is temporarily unavailable. Please retry.'


def describe(exc):
    """Reduce a ServiceError to the dict stored in bulk error entries."""
    return {
        'kind': exc.kind.value,
        'detail': exc.message,
        'field': exc.field,
    }


def _first_error(detail):
    """Walk DRF's nested error structure down to (field, message)."""
    if isinstance(detail, dict):
        for field, value in detail.items():
            inner_field, message = _first_error(value)
            if field == 'non_field_errors':
                return inner_field, message
            return inner_field or field, message
        return None, ''
    if isinstance(detail, list):
        return _first_error(detail[0]) if detail else (None, '')
    return None, str(detail)


def exception_handler(exc, context):
    """
    DRF EXCEPTION_HANDLER: decode every error once into the tagged shape.
    """
    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ServiceError):
        if exc.status_code >= 500:
            logger.error(f"{exc.kind.value}: {exc.message}")
        response.data = exc.as_dict()
        return response

    if isinstance(exc, drf_exceptions.ValidationError):
        field, message = _first_error(exc.detail)
        response.data = {
            'kind': ErrorKind.VALIDATION.value,
            'detail': message,
            'field': field,
            'errors': exc.detail,
        }
        return response

    if isinstance(exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)):
        kind = ErrorKind.NOT_AUTHENTICATED
    elif isinstance(exc, drf_exceptions.PermissionDenied):
        kind = ErrorKind.FORBIDDEN
    elif isinstance(exc, (drf_exceptions.NotFound, Http404)):
        kind = ErrorKind.NOT_FOUND
    else:
        kind = ErrorKind.ERROR

    detail = response.data.get('detail', '') if isinstance(response.data, dict) else response.data
    response.data = {'kind': kind.value, 'detail': str(detail), 'field': None}
    return response

