"""Device identity, entitlement expiry and the consumed-code ledger.

All three live in the dual-tier config so a wiped database or a wiped flat
file alone never loses them. The activation-code checksum is an external
collaborator passed in as ``validator``.
"""

from __future__ import annotations

import math
import secrets
import string
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from fieldvault.state.dual_tier import DualTierConfig

KEY_DEVICE_ID = "fieldvault_device_id"
KEY_EXPIRY = "fieldvault_expiry"
KEY_CONSUMED_CODES = "fieldvault_consumed_codes"

SUBSCRIPTION_DAYS = 30
_DAY_MS = 24 * 60 * 60 * 1000
_DEVICE_ID_ALPHABET = string.digits + string.ascii_uppercase
_DEVICE_ID_LENGTH = 6

CodeValidator = Callable[[str, str], bool]


class ActivationResult(str, Enum):
    SUCCESS = "SUCCESS"
    INVALID = "INVALID"
    ALREADY_USED = "ALREADY_USED"


@dataclass
class SubscriptionStatus:
    active: bool
    days_left: int


def _now_ms() -> int:
    return int(time.time() * 1000)


class EntitlementLedger:
    def __init__(self, config: DualTierConfig) -> None:
        self._config = config

    def device_id(self) -> str:
        """Return the permanent device id, generating it on first use."""
        device = self._config.read(KEY_DEVICE_ID)
        if not device:
            device = "".join(
                secrets.choice(_DEVICE_ID_ALPHABET) for _ in range(_DEVICE_ID_LENGTH)
            )
        self._config.write(KEY_DEVICE_ID, device)
        return str(device)

    def subscription_status(self, now_ms: int | None = None) -> SubscriptionStatus:
        now = _now_ms() if now_ms is None else now_ms
        raw = self._config.read(KEY_EXPIRY)
        if raw is None:
            return SubscriptionStatus(active=False, days_left=0)
        try:
            expiry = int(raw)
        except (TypeError, ValueError):
            return SubscriptionStatus(active=False, days_left=0)
        if now > expiry:
            return SubscriptionStatus(active=False, days_left=0)
        days_left = max(0, math.ceil((expiry - now) / _DAY_MS))
        return SubscriptionStatus(active=True, days_left=days_left)

    def consumed_codes(self) -> list[str]:
        codes = self._config.read(KEY_CONSUMED_CODES)
        if not isinstance(codes, list):
            return []
        return [str(c) for c in codes]

    def activate(
        self, code: str, validator: CodeValidator, now_ms: int | None = None
    ) -> ActivationResult:
        """Redeem *code* for a fresh subscription window.

        Args:
            code: Activation code as typed by the user (case-insensitive).
            validator: ``validator(code, device_id) -> bool``.
            now_ms: Current time in epoch milliseconds (for testing).
        """
        upper = code.strip().upper()
        used = self.consumed_codes()
        if upper in used:
            return ActivationResult.ALREADY_USED
        if not validator(upper, self.device_id()):
            return ActivationResult.INVALID

        now = _now_ms() if now_ms is None else now_ms
        self._config.write(KEY_EXPIRY, str(now + SUBSCRIPTION_DAYS * _DAY_MS))
        self._config.write(KEY_CONSUMED_CODES, [*used, upper])
        return ActivationResult.SUCCESS
