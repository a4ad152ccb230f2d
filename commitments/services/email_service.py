"""Welcome emails for newly created user accounts.

Mail goes out over SMTP when ``SMTP_HOST`` is configured; otherwise the
message is only logged. Sending never raises: callers get ``True`` or
``False`` and carry on with the account creation either way.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from commitments.config import get_settings

logger = logging.getLogger(__name__)


def _welcome_body(username: str, password: str, recipient_name: str, app_name: str) -> str:
    return (
        f"Hello {recipient_name},\n\n"
        f"An account has been created for you in {app_name}.\n\n"
        f"Username: {username}\n"
        f"Password: {password}\n\n"
        "Please change the password after your first login.\n"
    )


def send_via_smtp(to_email: str, subject: str, body: str) -> bool:
    """Send a plain-text email through the configured SMTP server."""
    settings = get_settings()
    msg = MIMEMultipart()
    msg["From"] = settings.SMTP_SENDER
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.attach(MIMEText(body, "plain", "utf-8"))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            server.starttls()
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except smtplib.SMTPAuthenticationError:
        logger.error("SMTP authentication failed for %s", settings.SMTP_USER)
        return False
    except smtplib.SMTPRecipientsRefused:
        logger.error("SMTP server refused recipient %s", to_email)
        return False
    except (smtplib.SMTPException, OSError) as exc:
        logger.error("SMTP error sending to %s: %s", to_email, exc)
        return False
    return True


def send_user_welcome_email(
    to_email: str,
    username: str,
    password: str,
    recipient_name: str = "",
) -> bool:
    """Send the new-account email containing the login credentials.

    Args:
        to_email: Recipient address.
        username: Login name of the new account.
        password: Plain-text initial password.
        recipient_name: Greeting name; falls back to *username*.

    Returns:
        ``True`` when the message was sent or simulated, ``False`` on
        an SMTP failure.
    """
    settings = get_settings()
    subject = f"{settings.EMAIL_APP_NAME}: your account"
    body = _welcome_body(username, password, recipient_name or username, settings.EMAIL_APP_NAME)

    if not settings.SMTP_HOST:
        logger.info("Email simulated (SMTP not configured): to=%s username=%s", to_email, username)
        return True

    sent = send_via_smtp(to_email, subject, body)
    if sent:
        logger.info("Welcome email sent to %s", to_email)
    return sent
