from rest_framework.permissions import BasePermission

from .exceptions import Forbidden

ADMINISTRATOR = 'administrator'
REGISTRATION_OFFICER = 'registration_officer'

OPERATOR_ROLES = (ADMINISTRATOR, REGISTRATION_OFFICER)
ADMINISTRATOR_ROLES = (ADMINISTRATOR,)


def require_user_type(actor, allowed):
    """
    Service-level check. ``actor=None`` means the caller was authorized at
    the boundary already; a known actor outside ``allowed`` is Forbidden.
    """
    if actor is None or allowed is None:
        return
    if getattr(actor, 'user_type', None) not in allowed:
        raise Forbidden(
            f"User type '{getattr(actor, 'user_type', None)}' may not perform this action."
        )


class IsAdministrator(BasePermission):
    """
    Allows access only to authenticated users with a user_type of 'administrator'.
    """
    def has_permission(self, request, view):
        return (
            request.user.is_authenticated and
            hasattr(request.user, 'user_type') and
            request.user.user_type == ADMINISTRATOR
        )


class IsOperator(BasePermission):
    """
    Administrators and registration officers.
    """
    def has_permission(self, request, view):
        return (
            request.user.is_authenticated and
            hasattr(request.user, 'user_type') and
            request.user.user_type in OPERATOR_ROLES
        )
