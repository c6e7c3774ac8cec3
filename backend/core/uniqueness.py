"""
Uniqueness index: per-namespace key -> owning entity, for live records only.

Each reservation is a row guarded by a (namespace, key) unique constraint, so
two callers racing for the same key are serialized by the database while
callers on disjoint keys never contend. Soft-deleting a record releases its
keys; restoring it re-acquires them and fails if someone else took one in the
meantime.
"""
import logging

from django.db import IntegrityError, transaction

from .models import UniquenessReservation

logger = logging.getLogger(__name__)


class ReservationConflict(Exception):
    def __init__(self, namespace, key, existing_id, existing_type=''):
        self.namespace = namespace
        self.key = key
        self.existing_id = existing_id
        self.existing_type = existing_type
        super().__init__(f"{self.namespace} '{self.key}' is held by {self.existing_type} {self.existing_id}")


class UniquenessIndex:

    def normalize(self, namespace, key):
        key = str(key).strip()
        if namespace == UniquenessReservation.LOCATION_NAME:
            # Location names compare case-insensitively
            return key.casefold()
        return key

    def owner(self, namespace, key):
        reservation = UniquenessReservation.objects.filter(
            namespace=namespace, key=self.normalize(namespace, key)
        ).first()
        return reservation.entity_id if reservation else None

    def reserve(self, namespace, key, entity_id, entity_type=''):
        """
        Claim ``key`` for ``entity_id``. Raises ReservationConflict when a
        different entity already holds it; re-reserving one's own key is a no-op.
        """
        key = self.normalize(namespace, key)
        entity_id = str(entity_id)

        for _ in range(2):
            try:
                with transaction.atomic():
                    UniquenessReservation.objects.create(
                        namespace=namespace,
                        key=key,
                        entity_id=entity_id,
                        entity_type=entity_type,
                    )
                return
            except IntegrityError:
                existing = UniquenessReservation.objects.filter(namespace=namespace, key=key).first()
                if existing is None:
                    # Released between our insert and the lookup
                    continue
                if existing.entity_id == entity_id:
                    return
                raise ReservationConflict(namespace, key, existing.entity_id, existing.entity_type)

        existing = UniquenessReservation.objects.filter(namespace=namespace, key=key).first()
        raise ReservationConflict(namespace, key, existing.entity_id if existing else '', '')

    def release(self, namespace, key, entity_id=None):
        reservations = UniquenessReservation.objects.filter(
            namespace=namespace, key=self.normalize(namespace, key)
        )
        if entity_id is not None:
            reservations = reservations.filter(entity_id=str(entity_id))
        deleted, _ = reservations.delete()
        return deleted > 0

    def reacquire(self, namespace, key, entity_id, entity_type=''):
        try:
            self.reserve(namespace, key, entity_id, entity_type)
        except ReservationConflict:
            logger.warning(f"Cannot re-acquire {namespace} '{key}' for {entity_type} {entity_id}: taken while deleted")
            raise
