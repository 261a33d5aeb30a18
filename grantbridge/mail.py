"""
Contact form delivery over SMTP.
"""

import html
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from grantbridge.config import Settings
from grantbridge.core.errors import DeliveryError


logger = logging.getLogger(__name__)


def _header(value: str) -> str:
    # Header values must stay on one line
    return " ".join(value.splitlines()).strip()


def build_contact_email(
    name: str,
    email: str,
    message: str,
    contact_type: Optional[str] = None,
    subject: Optional[str] = None,
    rating: Optional[int] = None,
    sender: Optional[str] = None,
    recipient: str = "support@grantbridge.online",
) -> EmailMessage:
    """Compose the support email for a contact form submission."""
    kind = contact_type or "message"
    body = [
        f"<h2>New {html.escape(kind)} from GrantBridge</h2>",
        f"<p><strong>From:</strong> {html.escape(name)} ({html.escape(email)})</p>",
        f"<p><strong>Type:</strong> {html.escape(kind)}</p>",
    ]
    if subject:
        body.append(f"<p><strong>Subject:</strong> {html.escape(subject)}</p>")
    if rating:
        body.append(f"<p><strong>Rating:</strong> {rating}/5 stars</p>")
    body.extend([
        "<p><strong>Message:</strong></p>",
        f"<p>{html.escape(message).replace(chr(10), '<br>')}</p>",
        "<hr>",
        "<p><small>Sent from GrantBridge Contact Form</small></p>",
    ])

    msg = EmailMessage()
    msg["From"] = f'"GrantBridge Contact" <{sender or recipient}>'
    msg["To"] = recipient
    msg["Reply-To"] = _header(email)
    msg["Subject"] = _header(f"[GrantBridge {kind}] {subject or 'New message from ' + name}")
    msg.set_content("\n".join(body), subtype="html")
    return msg


class ContactMailer:
    """Sends contact form emails through the configured SMTP server."""

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_pass
        self.recipient = settings.support_email

    def send(
        self,
        name: str,
        email: str,
        message: str,
        contact_type: Optional[str] = None,
        subject: Optional[str] = None,
        rating: Optional[int] = None,
    ) -> None:
        """
        Raises:
            DeliveryError: If the SMTP exchange fails
        """
        try:
            msg = build_contact_email(
                name,
                email,
                message,
                contact_type=contact_type,
                subject=subject,
                rating=rating,
                sender=self.user,
                recipient=self.recipient,
            )
            with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
                smtp.starttls()
                if self.user and self.password:
                    smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError, ValueError) as e:
            logger.error(f"✗ Error sending contact email: {e}")
            raise DeliveryError("Failed to send email") from e

        logger.info(f"Contact form email sent from {email}")
