"""
Gateways for the clinical services that do not have a real vendor yet:
e-Rx (prescription network), secure email (HIPAA mail relay) and insurance
eligibility (clearinghouse).

Each concern has an ABC and one explicit fake. The active implementation is
picked by name from settings (ERX_BACKEND / SECURE_EMAIL_BACKEND /
ELIGIBILITY_BACKEND); a real vendor is added by registering a new class.
"""

import logging
import random
import time
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from django.conf import settings

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _simulate_delivery():
    delay = getattr(settings, 'STUB_DELIVERY_DELAY', 0)
    if delay:
        time.sleep(delay)


# ── e-Rx ───────────────────────────────────────────────────────────────────


class BaseERxGateway(ABC):

    @abstractmethod
    def send(self, intake_id: str, prescription: str) -> dict:
        """Transmit a prescription. Returns the delivery receipt."""


class StubERxGateway(BaseERxGateway):

    def send(self, intake_id: str, prescription: str) -> dict:
        logger.info("[STUB] sending e-Rx for intake %s: %s...", intake_id, prescription[:100])
        _simulate_delivery()
        return {
            'success': True,
            'message': 'e-Rx sent successfully (STUB)',
            'erx_id': f'ERX-{_now_ms()}',
            'pharmacy': 'CVS Pharmacy #1234 (Mock)',
            'timestamp': _now_iso(),
        }


# ── secure email ───────────────────────────────────────────────────────────


class BaseSecureEmailGateway(ABC):

    @abstractmethod
    def send(self, intake_id: str, body: str, recipient: Optional[str] = None) -> dict:
        """Send an encrypted message to the patient. Returns the delivery receipt."""


class StubSecureEmailGateway(BaseSecureEmailGateway):

    def send(self, intake_id: str, body: str, recipient: Optional[str] = None) -> dict:
        logger.info("[STUB] sending secure email for intake %s: %s...", intake_id, body[:100])
        _simulate_delivery()
        return {
            'success': True,
            'message': 'Secure email sent via Paubox (STUB)',
            'email_id': f'PAUBOX-{_now_ms()}',
            'recipient': 'patient@example.com (Mock)',
            'encryption': 'TLS 1.3',
            'hipaa_compliant': True,
            'timestamp': _now_iso(),
        }


# ── eligibility ────────────────────────────────────────────────────────────

NOT_FOUND_REASON = 'Member ID not found in payer system. Please verify the policy number and try again.'


class BaseEligibilityChecker(ABC):

    @abstractmethod
    def check(self, payer_name: str, member_id: str, dob: str,
              first_name: Optional[str] = None, last_name: Optional[str] = None) -> dict:
        """Return the payer's eligibility answer for one member."""


class MockEligibilityChecker(BaseEligibilityChecker):
    """
    演示用规则：member_id 最后一位是偶数，或者包含 "wc"（不分大小写）就算 eligible。
    金额用 member_id 做随机种子，同一个 member 每次查结果一样。
    """

    @staticmethod
    def is_eligible(member_id: str) -> bool:
        last = member_id[-1:]
        return (last.isdigit() and int(last) % 2 == 0) or 'wc' in member_id.lower()

    def check(self, payer_name: str, member_id: str, dob: str,
              first_name: Optional[str] = None, last_name: Optional[str] = None) -> dict:
        if not self.is_eligible(member_id):
            return {
                'eligible': False,
                'payerName': payer_name,
                'memberId': member_id,
                'reason': NOT_FOUND_REASON,
            }

        rng = random.Random(member_id)
        today = date.today()
        return {
            'eligible': True,
            'payerName': payer_name,
            'memberId': member_id,
            'planType': 'Workers Compensation',
            'copay': 0 if rng.random() > 0.5 else 25,
            'deductible': 0 if rng.random() > 0.3 else 500,
            'deductibleMet': 0 if rng.random() > 0.5 else rng.randrange(300),
            'officeVisitsCovered': True,
            'physicalTherapyCovered': True,
            'imagingCovered': True,
            'surgeryCovered': True,
            'prescriptionCovered': True,
            'requiresAuth': rng.random() > 0.7,
            'effectiveDate': (today - timedelta(days=90)).isoformat(),
            'expirationDate': (today + timedelta(days=365)).isoformat(),
        }


# ── factories ──────────────────────────────────────────────────────────────

ERX_BACKENDS = {'stub': StubERxGateway}
SECURE_EMAIL_BACKENDS = {'stub': StubSecureEmailGateway}
ELIGIBILITY_BACKENDS = {'mock': MockEligibilityChecker}


def _build(registry: dict, setting: str, default: str):
    name = getattr(settings, setting, default)
    cls = registry.get(name)
    if cls is None:
        raise ValueError(f"Unknown {setting}: {name!r}. Known backends: {list(registry.keys())}")
    return cls()


def get_erx_gateway() -> BaseERxGateway:
    return _build(ERX_BACKENDS, 'ERX_BACKEND', 'stub')


def get_secure_email_gateway() -> BaseSecureEmailGateway:
    return _build(SECURE_EMAIL_BACKENDS, 'SECURE_EMAIL_BACKEND', 'stub')


def get_eligibility_checker() -> BaseEligibilityChecker:
    return _build(ELIGIBILITY_BACKENDS, 'ELIGIBILITY_BACKEND', 'mock')
