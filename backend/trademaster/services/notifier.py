"""Out-of-band delivery of password reset links."""

import logging
from typing import Protocol
from urllib.parse import urlencode

from trademaster.config import settings

logger = logging.getLogger(__name__)


def build_reset_link(token: str, base_url: str = "") -> str:
    base = (base_url or settings.FRONTEND_URL).rstrip("/")
    return f"{base}/set-new-password?{urlencode({'token': token})}"


class ResetNotifier(Protocol):
    def send_reset_link(self, email: str, token: str) -> None: ...


class LoggingResetNotifier:
    """Hands the reset link to the log instead of a mail server"""

    def send_reset_link(self, email: str, token: str) -> None:
        logger.info("Password reset link for %s: %s", email, build_reset_link(token))


reset_notifier = LoggingResetNotifier()
