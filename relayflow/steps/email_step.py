"""Email step and SMTP delivery."""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Any, Dict, Protocol

from pydantic import BaseModel

from ..config import SmtpConfig
from ..constants import MAX_EMAIL_RECIPIENTS
from ..contracts import StepResult
from ..errors import StepConfigError, StepExecutionError

logger = logging.getLogger(__name__)


class SendReceipt(BaseModel):
    message_id: str
    success: bool = True


class EmailProvider(Protocol):
    """Deliver a single plain-text email."""

    async def send_email(self, to: str, subject: str, body: str) -> SendReceipt: ...


class SmtpEmailProvider:
    """Send mail through an SMTP server using ``smtplib`` in a worker thread."""

    def __init__(self, config: SmtpConfig | None = None) -> None:
        self.config = config or SmtpConfig()

    def _send(self, message: EmailMessage) -> None:
        cfg = self.config
        smtp_cls = smtplib.SMTP_SSL if cfg.port == 465 else smtplib.SMTP
        with smtp_cls(cfg.host, cfg.port, timeout=30) as smtp:
            if smtp_cls is smtplib.SMTP and smtp.has_extn("starttls"):
                smtp.starttls()
            if cfg.user and cfg.password:
                smtp.login(cfg.user, cfg.password)
            smtp.send_message(message)

    async def send_email(self, to: str, subject: str, body: str) -> SendReceipt:
        message = EmailMessage()
        message["From"] = self.config.from_address
        message["To"] = to
        message["Subject"] = subject
        message_id = make_msgid()
        message["Message-ID"] = message_id
        message.set_content(body)
        try:
            await asyncio.to_thread(self._send, message)
        except (smtplib.SMTPException, OSError) as e:
            raise StepExecutionError(f"Failed to send email to {to}: {e}") from e
        return SendReceipt(message_id=message_id)


def parse_recipients(value: str) -> list[str]:
    """Split a comma separated address list, dropping blanks."""
    return [addr.strip() for addr in value.split(",") if addr.strip()]


class EmailStepExecutor:
    """Send an email to up to five recipients, one message each."""

    def __init__(self, provider: EmailProvider | None = None) -> None:
        self._provider = provider or SmtpEmailProvider()

    async def execute(
        self, config: Dict[str, Any], context: Dict[str, Any]
    ) -> StepResult:
        for field in ("to", "subject", "body"):
            value = config.get(field)
            if not value or not isinstance(value, str):
                raise StepConfigError(
                    f'Email step requires a valid "{field}" in config.{field}'
                )

        recipients = parse_recipients(config["to"])
        if not recipients:
            raise StepConfigError("Email step requires at least one recipient address")
        if len(recipients) > MAX_EMAIL_RECIPIENTS:
            raise StepConfigError(
                f"Email step supports a maximum of {MAX_EMAIL_RECIPIENTS} recipient addresses"
            )

        emails = []
        for address in recipients:
            receipt = await self._provider.send_email(
                address, config["subject"], config["body"]
            )
            emails.append(
                {"to": address, "messageId": receipt.message_id, "success": receipt.success}
            )
        logger.info(f"Sent {len(emails)} email(s) with subject {config['subject']!r}")

        return StepResult(
            output={
                "emailsSent": len(emails),
                "emails": emails,
                "to": config["to"],
                "subject": config["subject"],
            }
        )
