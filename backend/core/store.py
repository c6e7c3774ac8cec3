"""
Generic resource store with soft-delete semantics.

Stores wrap one model and own its uniqueness keys: every create, update,
soft-delete and restore keeps the UniquenessIndex in step with the live rows
inside the same transaction, so a failure anywhere leaves neither a partial
record nor a dangling reservation.
"""
from dataclasses import dataclass
from datetime import datetime
import logging

from django.core.exceptions import FieldDoesNotExist, ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from .exceptions import (
    AlreadyDeletedError, DuplicateKeyError, NotDeletedError, NotFoundError, ValidationError,
)
from .permissions import require_user_type
from .querying import Query, QueryGateway
from .retry import retry_on_transient
from .uniqueness import ReservationConflict, UniquenessIndex

logger = logging.getLogger(__name__)


@dataclass
class DeletedRecord:
    instance: object
    deleted_at: datetime


def actor_label(actor):
    if actor is None:
        return 'system'
    return f"{getattr(actor, 'username', actor)} ({getattr(actor, 'user_type', 'unknown')})"


class ResourceStore:
    model = None
    lookup_field = 'pk'
    verbose_name = 'Record'

    # namespace -> model field holding the key
    unique_fields = {}

    # Fields callers may never write directly
    protected_fields = ('created_at', 'updated_at', 'deleted_at')

    search_fields = ()
    filter_fields = ()
    ordering_fields = ()
    ordering = ('-created_at',)

    # user_type values allowed to mutate / to delete and restore; None = anyone
    write_roles = None
    delete_roles = None

    def __init__(self, actor=None, index=None):
        self.actor = actor
        self.index = index or UniquenessIndex()
        self.gateway = QueryGateway(
            self.model,
            search_fields=self.search_fields,
            filter_fields=self.filter_fields,
            ordering_fields=self.ordering_fields,
            ordering=self.ordering,
        )

    # -- hooks -----------------------------------------------------------

    def get_queryset(self):
        return self.model.objects.all()

    def entity_id(self, instance):
        return str(getattr(instance, self.lookup_field))

    def unique_keys(self, instance):
        """Ordered {namespace: key} for the keys this instance must own."""
        keys = {}
        for namespace, field_name in self.unique_fields.items():
            value = getattr(instance, field_name)
            if value not in (None, ''):
                keys[namespace] = value
        return keys

    def field_for_namespace(self, namespace):
        return self.unique_fields.get(namespace, namespace)

    def clean(self, instance, creating, changed=()):
        """Field-level validation; unique checks are left to the index."""
        try:
            instance.full_clean(validate_unique=False, validate_constraints=False)
        except DjangoValidationError as exc:
            field, messages = next(iter(exc.message_dict.items()))
            raise ValidationError(messages[0], field=None if field == '__all__' else field)

    def conflict_error(self, conflict, restoring=False):
        field = self.field_for_namespace(conflict.namespace)
        if restoring:
            message = (
                f"Cannot restore {self.verbose_name.lower()}: {field} '{conflict.key}' "
                f"is now used by another record ({conflict.existing_id})."
            )
        else:
            message = f"{self.verbose_name} with this {field} already exists."
        return DuplicateKeyError(
            message, field=field, namespace=conflict.namespace,
            key=conflict.key, existing_id=conflict.existing_id,
        )

    # -- internals -------------------------------------------------------

    def _check_role(self, roles):
        require_user_type(self.actor, roles)

    def _lookup(self, queryset, value):
        try:
            return queryset.get(**{self.lookup_field: value})
        except (self.model.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(f"{self.verbose_name} not found.")

    def _reserve(self, instance, keys, restoring=False):
        for namespace, key in keys.items():
            try:
                if restoring:
                    self.index.reacquire(namespace, key, self.entity_id(instance), self.model._meta.label)
                else:
                    self.index.reserve(namespace, key, self.entity_id(instance), self.model._meta.label)
            except ReservationConflict as conflict:
                raise self.conflict_error(conflict, restoring=restoring)

    def _same_key(self, namespace, first, second):
        if first is None or second is None:
            return first is second
        return self.index.normalize(namespace, first) == self.index.normalize(namespace, second)

    def _stored_value(self, instance, name):
        """Column value for ``name``; foreign keys compare by id."""
        try:
            return getattr(instance, self.model._meta.get_field(name).attname)
        except FieldDoesNotExist:
            return getattr(instance, name, None)

    def _release(self, instance, keys):
        for namespace, key in keys.items():
            self.index.release(namespace, key, self.entity_id(instance))

    # -- operations ------------------------------------------------------

    @retry_on_transient
    def create(self, data):
        self._check_role(self.write_roles)
        instance = self.model(**data)
        self.clean(instance, creating=True, changed=tuple(data))

        with transaction.atomic():
            self._reserve(instance, self.unique_keys(instance))
            instance.save()

        logger.info(f"{self.verbose_name} {self.entity_id(instance)} created by {actor_label(self.actor)}")
        return instance

    def get(self, value):
        """Fetch by lookup value, soft-deleted records included."""
        return self._lookup(self.get_queryset(), value)

    def get_for_update(self, value):
        """Fetch and row-lock; call inside transaction.atomic()."""
        return self._lookup(self.model.objects.select_for_update(), value)

    def list(self, query=None):
        query = query or Query()
        queryset = self.get_queryset()
        if not query.include_deleted:
            queryset = queryset.alive()
        return self.gateway.run(queryset, query)

    @retry_on_transient
    def update(self, value, fields):
        self._check_role(self.write_roles)
        blocked = sorted(set(fields) & set(self.protected_fields))
        if blocked:
            raise ValidationError(f"Field '{blocked[0]}' cannot be changed directly.", field=blocked[0])

        with transaction.atomic():
            instance = self.get_for_update(value)
            old_keys = self.unique_keys(instance)
            before = {name: self._stored_value(instance, name) for name in fields}
            for name, field_value in fields.items():
                setattr(instance, name, field_value)
            # Resending a field with its current value is not a change
            changed = tuple(name for name in fields if self._stored_value(instance, name) != before[name])
            self.clean(instance, creating=False, changed=changed)

            # Deleted records hold no keys; restore re-checks them
            if not instance.is_deleted:
                new_keys = self.unique_keys(instance)
                self._reserve(instance, {
                    ns: key for ns, key in new_keys.items() if not self._same_key(ns, old_keys.get(ns), key)
                })
                self._release(instance, {
                    ns: key for ns, key in old_keys.items() if not self._same_key(ns, key, new_keys.get(ns))
                })

            instance.save(update_fields=list(fields) + ['updated_at'])

        logger.info(f"{self.verbose_name} {value} updated by {actor_label(self.actor)}: {', '.join(fields)}")
        return instance

    @retry_on_transient
    def soft_delete(self, value):
        self._check_role(self.delete_roles or self.write_roles)
        with transaction.atomic():
            instance = self.get_for_update(value)
            now = timezone.now()
            # Conditional update: only one caller can flip deleted_at
            flipped = self.model.objects.filter(
                pk=instance.pk, deleted_at__isnull=True
            ).update(deleted_at=now, updated_at=now)
            if not flipped:
                raise AlreadyDeletedError(f"{self.verbose_name} is already deleted.")

            self._release(instance, self.unique_keys(instance))
            instance.deleted_at = now
            instance.updated_at = now

        logger.warning(f"{self.verbose_name} {value} soft deleted by {actor_label(self.actor)}")
        return DeletedRecord(instance=instance, deleted_at=now)

    @retry_on_transient
    def restore(self, value):
        self._check_role(self.delete_roles or self.write_roles)
        with transaction.atomic():
            instance = self.get_for_update(value)
            if instance.deleted_at is None:
                raise NotDeletedError(f"{self.verbose_name} is not deleted and cannot be restored.")

            self._reserve(instance, self.unique_keys(instance), restoring=True)
            now = timezone.now()
            flipped = self.model.objects.filter(
                pk=instance.pk, deleted_at__isnull=False
            ).update(deleted_at=None, updated_at=now)
            if not flipped:
                raise NotDeletedError(f"{self.verbose_name} is not deleted and cannot be restored.")
            instance.deleted_at = None
            instance.updated_at = now

        logger.info(f"{self.verbose_name} {value} restored by {actor_label(self.actor)}")
        return instance