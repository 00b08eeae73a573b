"""Operator console gate.

A convenience marker shared with the presentation layer, not an access
control: the backend does not check it.
"""

from __future__ import annotations

import hmac
import logging
import secrets
import time
from dataclasses import dataclass

from equipment_booking.client import settings
from equipment_booking.client.errors import OperatorAccessError

CONSOLE_LOGGER = logging.getLogger("equipment_booking.console")


@dataclass
class OperatorSession:
    token: str
    issued_at: float
    expires_at: float
    closed: bool = False

    def is_active(self, now: float | None = None) -> bool:
        current = time.time() if now is None else now
        return not self.closed and current < self.expires_at

    def close(self) -> None:
        self.closed = True


def open_session(
    password: str | None,
    *,
    expected_password: str | None = None,
    ttl_seconds: int | None = None,
    now: float | None = None,
) -> OperatorSession:
    expected = settings.OPERATOR_CONSOLE_PASSWORD if expected_password is None else expected_password
    if not expected:
        raise OperatorAccessError("Operator console is disabled; OPERATOR_CONSOLE_PASSWORD is not set.")
    candidate = (password or "").strip()
    if not candidate or not hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8")):
        CONSOLE_LOGGER.warning("Operator login failed")
        raise OperatorAccessError("Invalid password")

    issued_at = time.time() if now is None else now
    ttl = settings.OPERATOR_SESSION_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    session = OperatorSession(
        token=secrets.token_urlsafe(24),
        issued_at=issued_at,
        expires_at=issued_at + max(ttl, 1),
    )
    CONSOLE_LOGGER.info("Operator session opened expires_at=%s", int(session.expires_at))
    return session
