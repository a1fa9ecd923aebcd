"""
Outgoing mail for account emails (confirmation, password reset).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass
class MailMessage:
    to: str
    subject: str
    body: str


class Mailer(Protocol):
    def send(self, message: MailMessage) -> None:
        ...


@dataclass
class LoggingMailer:
    """Logs messages and keeps them in `sent`; no network delivery."""

    sent: list[MailMessage] = field(default_factory=list)

    def send(self, message: MailMessage) -> None:
        logger.info("Mail to %s: %s", message.to, message.subject)
        self.sent.append(message)
