"""
Gate reader access decisions.

A decision only reads cards and gates: it never changes a card's state, even
when it finds the card expired. The attempt is always written to AccessLog.
"""
from dataclasses import dataclass
import logging
import time

from django.utils import timezone

from cards.models import Card
from facilities.models import AccessGate

from .models import AccessLog

logger = logging.getLogger(__name__)

DENIAL_MESSAGES = {
    'invalid_rfid': 'Invalid RFID',
    'card_inactive': 'Card inactive',
    'card_expired': 'Card expired',
    'subject_inactive': 'Card holder inactive',
    'unknown_gate': 'Unknown gate',
    'gate_unavailable': 'Gate not active',
}


@dataclass
class AccessDecision:
    granted: bool
    denial_reason: str = None
    card: Card = None
    gate: AccessGate = None
    log: AccessLog = None

    @property
    def message(self):
        return 'Access granted' if self.granted else DENIAL_MESSAGES[self.denial_reason]


def _decide(rfid_number, hardware_id, now):
    gate = None
    if hardware_id:
        gate = AccessGate.objects.alive().filter(hardware_id=hardware_id).first()
        if gate is None:
            return AccessDecision(False, 'unknown_gate')
        if gate.status != 'active':
            return AccessDecision(False, 'gate_unavailable', gate=gate)

    card = Card.objects.alive().select_related('student', 'staff').filter(rfid_number=rfid_number).first()
    if card is None:
        return AccessDecision(False, 'invalid_rfid', gate=gate)
    if not card.is_active:
        return AccessDecision(False, 'card_inactive', card=card, gate=gate)
    if card.is_expired(now):
        return AccessDecision(False, 'card_expired', card=card, gate=gate)

    holder = card.card_holder
    if holder is None or not holder.is_active:
        return AccessDecision(False, 'subject_inactive', card=card, gate=gate)

    return AccessDecision(True, card=card, gate=gate)


def evaluate_access(rfid_number, hardware_id=None, ip_address=None):
    started = time.monotonic()
    now = timezone.now()
    rfid_number = rfid_number.strip()

    decision = _decide(rfid_number, hardware_id, now)

    decision.log = AccessLog.objects.create(
        rfid_number=rfid_number,
        card=decision.card,
        gate=decision.gate,
        hardware_id=hardware_id or '',
        access_status='granted' if decision.granted else 'denied',
        denial_reason=decision.denial_reason,
        ip_address=ip_address,
        timestamp=now,
        response_time_ms=int((time.monotonic() - started) * 1000),
    )

    if decision.granted:
        logger.info(f"Access granted for RFID {rfid_number} at gate {hardware_id or '-'}")
    else:
        logger.info(f"Access denied for RFID {rfid_number} at gate {hardware_id or '-'}: {decision.denial_reason}")
    return decision
