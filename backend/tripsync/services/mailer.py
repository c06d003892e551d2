"""Invite email delivery using Resend."""

import asyncio
import html
import logging
import re

import resend
from starlette.concurrency import run_in_threadpool

from tripsync.core.config import APP_URL, EMAIL_FROM, MAIL_TIMEOUT_SECONDS, RESEND_API_KEY
from tripsync.core.errors import UpstreamError

logger = logging.getLogger(__name__)

# "Name <addr@host>" or a bare address
_SENDER_RE = re.compile(r"^(?:[^<>]*<)?[^@\s<>]+@[^@\s<>]+\.[^@\s<>]+>?$")


class MailDeliveryError(UpstreamError):
    pass


class Mailer:
    def __init__(
        self,
        api_key: str = RESEND_API_KEY,
        sender: str = EMAIL_FROM,
        app_url: str = APP_URL,
        timeout: float = MAIL_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.sender = sender
        self.app_url = app_url.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        """False means invites are recorded without an email."""
        return bool(self.api_key or self.sender)

    def verify(self) -> None:
        if not self.api_key:
            raise MailDeliveryError("Mail transport has no API key")
        if not self.sender or not _SENDER_RE.match(self.sender.strip()):
            raise MailDeliveryError(f"Mail sender address is not valid: {self.sender!r}")

    async def send_invite(self, to: str, trip_name: str, inviter_name: str, invite_id: str) -> str | None:
        """
        Send an invite email.

        Args:
            to: Recipient email address
            trip_name: Name of the trip the recipient is invited to
            inviter_name: Display name of the member sending the invite
            invite_id: Invite id placed in the accept link

        Returns:
            The provider's message id, when it reports one

        Raises:
            MailDeliveryError: If the provider rejects the message or does not answer in time
        """
        link = f"{self.app_url}/invites?invite={invite_id}"
        safe_trip, safe_inviter = html.escape(trip_name), html.escape(inviter_name)
        html_content = f"""
        <html>
        <body>
            <p>Hello,</p>
            <p>{safe_inviter} invited you to join <strong>{safe_trip}</strong>.</p>
            <p><a href="{link}">Open the invitation</a></p>
        </body>
        </html>
        """
        text_content = f"""
        {inviter_name} invited you to join {trip_name}.

        Open the invitation: {link}
        """
        params = {
            "from": self.sender,
            "to": [to],
            "subject": f"{inviter_name} invited you to {trip_name}",
            "html": html_content,
            "text": text_content,
        }

        resend.api_key = self.api_key
        try:
            result = await asyncio.wait_for(run_in_threadpool(resend.Emails.send, params), self.timeout)
        except asyncio.TimeoutError:
            raise MailDeliveryError(f"Mail transport timed out after {self.timeout}s")
        except Exception as e:
            # resend raises its own errors and lets transport errors through
            raise MailDeliveryError(str(e)) from e

        message_id = result.get("id") if isinstance(result, dict) else None
        logger.info("[send_invite] Sent invite %s to %s (message id %s)", invite_id, to, message_id)
        return message_id


def get_mailer() -> Mailer:
    return Mailer()
