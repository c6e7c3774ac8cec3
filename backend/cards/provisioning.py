"""
Bulk card issuance.

Every item is issued independently through the lifecycle manager: one
failure is recorded in ``BulkResult.errors`` and never undoes or stops the
others. Items that name the same subject are always handled by one worker in
input order, so within a batch the first occurrence wins and the later ones
fail with SubjectAlreadyHasCredential.
"""
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import logging

from django.conf import settings
from django.db import DatabaseError, connections

from core.exceptions import ErrorKind, ServiceError, describe
from core.permissions import require_user_type
from core.store import actor_label

from .lifecycle import CredentialLifecycleManager

logger = logging.getLogger(__name__)


@dataclass
class BulkResult:
    created: list = field(default_factory=list)
    errors: list = field(default_factory=list)
    total_requested: int = 0

    @property
    def summary(self):
        return {
            'total_requested': self.total_requested,
            'successful': len(self.created),
            'failed': len(self.errors),
        }


class BulkProvisioningEngine:

    def __init__(self, manager=None, max_workers=None):
        self.manager = manager or CredentialLifecycleManager()
        if max_workers is None:
            max_workers = getattr(settings, 'CARD_BULK_MAX_WORKERS', 1)
        self.max_workers = max(1, int(max_workers))

    def bulk_issue(self, subject_refs, generate_rfid=True, expiry_date=None):
        subject_refs = list(subject_refs)
        # A caller who may not issue at all is refused outright, not per item
        require_user_type(self.manager.actor, self.manager.store.write_roles)

        items = list(enumerate(subject_refs))
        if self.max_workers == 1 or len(items) < 2:
            outcomes = self._run_group(items, generate_rfid, expiry_date)
        else:
            outcomes = self._run_parallel(items, generate_rfid, expiry_date)

        result = BulkResult(total_requested=len(subject_refs))
        for index, ref, card, reason in sorted(outcomes, key=lambda outcome: outcome[0]):
            if card is not None:
                result.created.append(card)
            else:
                result.errors.append({
                    'index': index,
                    'subject_ref': ref.as_dict(),
                    'reason': reason,
                })

        logger.info(
            f"Bulk card issuance by {actor_label(self.manager.actor)}: "
            f"{len(result.created)} created, {len(result.errors)} failed of {result.total_requested}"
        )
        return result

    def _issue_one(self, index, ref, generate_rfid, expiry_date):
        try:
            card = self.manager.issue(ref, generate_rfid=generate_rfid, expiry_date=expiry_date)
            return index, ref, card, None
        except ServiceError as exc:
            logger.warning(f"Bulk item {index} ({ref.key}) failed: {exc.kind.value}: {exc.message}")
            return index, ref, None, describe(exc)
        except DatabaseError as exc:
            logger.error(f"Bulk item {index} ({ref.key}) hit a storage error: {exc}")
            return index, ref, None, {
                'kind': ErrorKind.STORAGE_UNAVAILABLE.value,
                'detail': 'Storage error while issuing this card.',
                'field': None,
            }

    def _run_group(self, items, generate_rfid, expiry_date):
        return [self._issue_one(index, ref, generate_rfid, expiry_date) for index, ref in items]

    def _run_group_in_thread(self, items, generate_rfid, expiry_date):
        try:
            return self._run_group(items, generate_rfid, expiry_date)
        finally:
            connections.close_all()

    def _run_parallel(self, items, generate_rfid, expiry_date):
        groups = OrderedDict()
        for index, ref in items:
            groups.setdefault(ref.key, []).append((index, ref))

        outcomes = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(self._run_group_in_thread, group, generate_rfid, expiry_date)
                for group in groups.values()
            ]
            for future in futures:
                outcomes.extend(future.result())
        return outcomes
