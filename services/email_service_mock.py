"""Mock email transport for conflict alerts."""

from datetime import datetime
from typing import Optional

import pytz
import structlog

log = structlog.get_logger()


class EmailServiceMock:
    """Mock email transport that records emails instead of sending them."""

    def __init__(self):
        """Initialize email service."""
        self.sent_emails: list[dict] = []

    async def send(
        self,
        recipient: str,
        subject: str,
        body: str,
        from_user: Optional[str] = None
    ) -> None:
        """Record an email (mock)."""
        email_record = {
            "to": recipient,
            "subject": subject,
            "body": body,
            "from": from_user,
            "sent_at": datetime.now(pytz.UTC),
        }
        self.sent_emails.append(email_record)
        log.info("email_recorded", to=recipient, subject=subject)

    def get_sent_emails(self) -> list[dict]:
        """Get all sent emails."""
        return self.sent_emails.copy()

    def emails_to(self, recipient: str) -> list[dict]:
        return [e for e in self.sent_emails if e["to"].lower() == recipient.lower()]

    def clear_emails(self):
        """Clear email log (for testing/reset)."""
        self.sent_emails = []
