from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import qrcode

from ..common.datetime_utils import ensure_aware, now_utc
from . import token as token_codec


@dataclass(frozen=True)
class IssuedToken:
    token: str
    issued_at: datetime
    expires_at: datetime


class TokenIssuer:
    """Issues the rotating check-in code shown on the office screen.

    Stateless: every call encodes "now". The display polls for a new code
    before the previous one's lifespan runs out.
    """

    def __init__(self, *, secret: Optional[str] = None):
        self._secret = secret or None

    def issue(self, lifespan_seconds: int, *, now: Optional[datetime] = None) -> IssuedToken:
        issued_at = ensure_aware(now or now_utc())
        return IssuedToken(
            token=token_codec.encode(issued_at, secret=self._secret),
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=lifespan_seconds),
        )

    @staticmethod
    def render_png(token: str) -> bytes:
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_L,
            box_size=10,
            border=2,
        )
        qr.add_data(token)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()
