"""
Card lifecycle.

A card moves between three states::

    provisioned (is_active) <-> deactivated (not is_active)
            \\                      /
             +----> deleted <-----+        (restore goes back)

``is_active`` and ``deleted_at`` only ever change through the transitions
below, each a conditional UPDATE so two concurrent callers cannot both win.
Expiry is never swept: it is checked when a card is read or activated.
"""
from dataclasses import dataclass, field
import logging
import random
import string

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.exceptions import (
    CredentialExpired, DuplicateRfid, InvalidTransitionError,
    SubjectAlreadyHasCredential, ValidationError,
)
from core.models import UniquenessReservation
from core.permissions import ADMINISTRATOR_ROLES, OPERATOR_ROLES, require_user_type
from core.retry import retry_on_transient
from core.store import ResourceStore, actor_label

from .models import Card
from .subjects import SubjectRef, subject_snapshot

logger = logging.getLogger(__name__)

RFID_MIN_LENGTH = 3
RFID_MAX_LENGTH = 50


class CardStore(ResourceStore):
    model = Card
    lookup_field = 'card_uuid'
    verbose_name = 'Card'

    protected_fields = (
        'created_at', 'updated_at', 'deleted_at',
        'is_active', 'card_type', 'student', 'staff', 'issued_date', 'card_uuid',
    )

    search_fields = (
        'rfid_number', 'student__first_name', 'student__surname',
        'student__registration_number', 'student__department',
        'staff__first_name', 'staff__surname', 'staff__staff_number', 'staff__department',
    )
    filter_fields = (
        'is_active', 'card_type', 'student__department', 'student__student_status',
        'staff__department', 'staff__employment_status',
    )
    ordering_fields = ('created_at', 'issued_date', 'rfid_number', 'card_type', 'expiry_date')

    write_roles = OPERATOR_ROLES
    delete_roles = ADMINISTRATOR_ROLES

    def get_queryset(self):
        return Card.objects.select_related('student', 'staff')

    def unique_keys(self, instance):
        # Subject first: a duplicate subject is reported even when the RFID also clashes
        keys = {}
        subject = instance.card_holder
        if subject is not None:
            keys[UniquenessReservation.SUBJECT_CREDENTIAL] = SubjectRef.for_subject(subject).key
        if instance.rfid_number:
            keys[UniquenessReservation.RFID_NUMBER] = instance.rfid_number
        return keys

    def field_for_namespace(self, namespace):
        if namespace == UniquenessReservation.SUBJECT_CREDENTIAL:
            return 'subject'
        return 'rfid_number'

    def clean(self, instance, creating, changed=()):
        if not creating and instance.is_deleted:
            raise InvalidTransitionError("Cannot update a deleted card. Restore it first.")
        super().clean(instance, creating, changed)

    def conflict_error(self, conflict, restoring=False):
        context = {
            'namespace': conflict.namespace,
            'key': conflict.key,
            'existing_id': conflict.existing_id,
        }
        if conflict.namespace == UniquenessReservation.SUBJECT_CREDENTIAL:
            if restoring:
                message = "Cannot restore card: the card holder has been issued another card since."
            else:
                message = "The card holder already has a card assigned. Delete it before issuing a new one."
            return SubjectAlreadyHasCredential(message, field='subject', **context)

        if restoring:
            message = f"Cannot restore card: RFID number '{conflict.key}' is now used by another card."
        else:
            message = "This RFID number is already in use."
        return DuplicateRfid(message, field='rfid_number', **context)


@dataclass
class VerificationResult:
    verified: bool
    card_active: bool = False
    subject: dict = None
    verified_at: object = field(default_factory=timezone.now)

    def as_dict(self):
        return {
            'verified': self.verified,
            'card_active': self.card_active,
            'subject': self.subject,
            'verified_at': self.verified_at.isoformat(),
        }


def clean_rfid_number(value):
    rfid_number = str(value or '').strip()
    if not RFID_MIN_LENGTH <= len(rfid_number) <= RFID_MAX_LENGTH:
        raise ValidationError(
            f"RFID number must be between {RFID_MIN_LENGTH} and {RFID_MAX_LENGTH} characters.",
            field='rfid_number'
        )
    return rfid_number


class CredentialLifecycleManager:
    """
    Issues cards and drives them through their states on behalf of ``actor``.
    """

    def __init__(self, actor=None, store=None, clock=None, rng=None):
        self.actor = actor
        self.store = store or CardStore(actor=actor)
        self.clock = clock or timezone.now
        self.rng = rng or random

    # -- reads -----------------------------------------------------------

    def get(self, card_uuid):
        return self.store.get(card_uuid)

    def list(self, query=None):
        return self.store.list(query)

    def is_expired(self, card):
        return card.is_expired(self.clock())

    # -- issuance --------------------------------------------------------

    def generate_rfid(self):
        """
        Random digits never used by any card, deleted ones included.
        """
        length = getattr(settings, 'CARD_RFID_LENGTH', 10)
        attempts = getattr(settings, 'CARD_RFID_GENERATION_ATTEMPTS', 10)
        for _ in range(attempts):
            candidate = ''.join(self.rng.choices(string.digits, k=length))
            if not Card.objects.filter(rfid_number=candidate).exists():
                return candidate
        raise DuplicateRfid(
            f"Could not generate an unused RFID number after {attempts} attempts.",
            field='rfid_number'
        )

    def _check_issue_input(self, generate_rfid, rfid_number, expiry_date):
        has_rfid = rfid_number not in (None, '')
        if generate_rfid and has_rfid:
            raise ValidationError("Cannot both generate RFID and provide custom RFID number.", field='rfid_number')
        if not generate_rfid and not has_rfid:
            raise ValidationError("Either provide an RFID number or set generate_rfid to true.", field='rfid_number')
        if expiry_date is not None and expiry_date <= self.clock():
            raise ValidationError("Expiry date must be in the future.", field='expiry_date')
        return None if generate_rfid else clean_rfid_number(rfid_number)

    def issue(self, subject_ref, generate_rfid=False, rfid_number=None, expiry_date=None):
        """
        Create a card in the provisioned state for an active subject.

        The subject and RFID reservations and the card row commit together;
        any failure leaves nothing behind.
        """
        require_user_type(self.actor, self.store.write_roles)
        rfid_number = self._check_issue_input(generate_rfid, rfid_number, expiry_date)
        subject = subject_ref.resolve()

        data = {
            'card_type': subject_ref.subject_type,
            subject_ref.subject_type: subject,
            'expiry_date': expiry_date,
            'is_active': True,
        }

        if not generate_rfid:
            card = self.store.create({**data, 'rfid_number': rfid_number})
        else:
            card = self._issue_generated(data)

        logger.info(
            f"Card {card.card_uuid} issued to {card.card_type} {card.card_holder_number} "
            f"by {actor_label(self.actor)}"
        )
        return card

    def _issue_generated(self, data):
        attempts = getattr(settings, 'CARD_RFID_GENERATION_ATTEMPTS', 10)
        for attempt in range(1, attempts + 1):
            candidate = self.generate_rfid()
            try:
                return self.store.create({**data, 'rfid_number': candidate})
            except DuplicateRfid:
                # Another caller took the candidate between the check and the reservation
                logger.warning(f"Generated RFID {candidate} was taken (attempt {attempt}/{attempts})")
        raise DuplicateRfid(
            f"Could not reserve a generated RFID number after {attempts} attempts.",
            field='rfid_number'
        )

    # -- transitions -----------------------------------------------------

    @retry_on_transient
    def deactivate(self, card_uuid):
        require_user_type(self.actor, self.store.write_roles)
        with transaction.atomic():
            card = self.store.get_for_update(card_uuid)
            if card.is_deleted:
                raise InvalidTransitionError("Cannot deactivate a deleted card.")
            self._flip_active(card, active=False, message='Card is already deactivated.')

        logger.info(f"Card {card.card_uuid} deactivated by {actor_label(self.actor)}")
        return card

    @retry_on_transient
    def activate(self, card_uuid):
        require_user_type(self.actor, self.store.write_roles)
        with transaction.atomic():
            card = self.store.get_for_update(card_uuid)
            if card.is_deleted:
                raise InvalidTransitionError("Cannot activate a deleted card.")
            if card.is_active:
                raise InvalidTransitionError('Card is already active.')
            if card.is_expired(self.clock()):
                raise CredentialExpired(
                    f"Card expired on {card.expiry_date.isoformat()}. "
                    f"Extend the expiry date before activating it.",
                    field='expiry_date'
                )
            self._flip_active(card, active=True, message='Card is already active.')

        logger.info(f"Card {card.card_uuid} activated by {actor_label(self.actor)}")
        return card

    def _flip_active(self, card, active, message):
        now = timezone.now()
        flipped = Card.objects.filter(
            pk=card.pk, deleted_at__isnull=True, is_active=not active
        ).update(is_active=active, updated_at=now)
        if not flipped:
            raise InvalidTransitionError(message)
        card.is_active = active
        card.updated_at = now

    def delete(self, card_uuid):
        """Soft delete; frees the subject and RFID for a replacement card."""
        return self.store.soft_delete(card_uuid)

    def restore(self, card_uuid):
        return self.store.restore(card_uuid)

    def update(self, card_uuid, rfid_number=None, expiry_date=None, **extra):
        """Change the RFID number and/or expiry date of a live card."""
        if extra:
            name = sorted(extra)[0]
            raise ValidationError(f"Field '{name}' cannot be changed directly.", field=name)

        fields = {}
        if rfid_number is not None:
            fields['rfid_number'] = clean_rfid_number(rfid_number)
        if expiry_date is not None:
            fields['expiry_date'] = expiry_date
        if not fields:
            raise ValidationError("Provide rfid_number or expiry_date to update.")
        return self.store.update(card_uuid, fields)

    # -- verification ----------------------------------------------------

    def verify(self, subject_ref):
        """
        Read-only check used by the public verification page. Unknown
        subjects and subjects without a live card both come back as
        ``verified=False``.
        """
        try:
            subject = subject_ref.resolve()
        except ValidationError:
            return VerificationResult(verified=False)

        card = subject.cards.alive().first()
        if card is None:
            return VerificationResult(verified=False)

        return VerificationResult(
            verified=True,
            card_active=card.is_active and not card.is_expired(self.clock()),
            subject=subject_snapshot(subject),
        )
