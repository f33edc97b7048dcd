"""Rotating QR token codec.

A token is base64 of ``TIMESTAMP:<issued-at epoch millis>``, optionally
followed by ``:<hex HMAC-SHA256>`` when a signing secret is configured.
Decoding never raises; it returns ``Fresh``, ``Expired`` or ``Invalid``.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from ..common.datetime_utils import ensure_aware, epoch_millis, from_epoch_millis
from ..core.constants import QR_TOKEN_MARKER


@dataclass(frozen=True)
class Fresh:
    issued_at: datetime


@dataclass(frozen=True)
class Expired:
    issued_at: datetime
    age_seconds: float


@dataclass(frozen=True)
class Invalid:
    reason: str


TokenCheck = Union[Fresh, Expired, Invalid]


def _sign(payload: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def encode(issued_at: datetime, *, secret: Optional[str] = None) -> str:
    payload = f"{QR_TOKEN_MARKER}{epoch_millis(issued_at)}"
    if secret:
        payload = f"{payload}:{_sign(payload, secret)}"
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode(token: str, now: datetime, lifespan_seconds: float, *, secret: Optional[str] = None) -> TokenCheck:
    try:
        decoded = base64.b64decode((token or "").strip(), validate=True).decode("utf-8")
    except ValueError:
        # binascii.Error and UnicodeDecodeError are both ValueError; so is non-ASCII input.
        return Invalid("not a valid QR code")

    if not decoded.startswith(QR_TOKEN_MARKER):
        return Invalid("QR code is not a check-in code")

    millis_part, _, signature = decoded[len(QR_TOKEN_MARKER):].partition(":")
    try:
        millis = int(millis_part)
    except ValueError:
        return Invalid("QR code is corrupted")

    if secret:
        expected = _sign(f"{QR_TOKEN_MARKER}{millis_part}", secret)
        if not signature or not hmac.compare_digest(signature, expected):
            return Invalid("QR code signature does not match")

    try:
        issued_at = from_epoch_millis(millis)
    except (OverflowError, OSError, ValueError):
        return Invalid("QR code is corrupted")

    age = ensure_aware(now) - issued_at
    if age > timedelta(seconds=lifespan_seconds):
        return Expired(issued_at=issued_at, age_seconds=age.total_seconds())
    return Fresh(issued_at=issued_at)
