# expense_tracker/services/mailer.py
import asyncio
import logging
import smtplib
from email.message import EmailMessage

from expense_tracker.settings import settings

log = logging.getLogger(__name__)


class MailError(Exception):
    pass


def _send_sync(msg: EmailMessage) -> None:
    with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=15) as smtp:
        smtp.starttls()
        if settings.smtp_user:
            smtp.login(settings.smtp_user, settings.smtp_password or "")
        smtp.send_message(msg)


async def send_mail(to: str, subject: str, text: str, html: str | None = None) -> None:
    if not settings.smtp_host:
        raise MailError("SMTP is not configured")

    msg = EmailMessage()
    msg["From"] = f"Expense Tracker <{settings.email_from}>"
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(text)
    if html:
        msg.add_alternative(html, subtype="html")

    try:
        await asyncio.to_thread(_send_sync, msg)
    except (smtplib.SMTPException, OSError) as e:
        raise MailError(str(e)) from e
    log.info("Mail sent to %s: %s", to, subject)


async def send_password_reset(to: str, reset_url: str) -> None:
    text = (
        "You are receiving this email because you (or someone else) requested a password reset.\n\n"
        f"Reset your password here (valid for 1 hour):\n{reset_url}\n\n"
        "If you did not request this, please ignore this email."
    )
    html = (
        "<p>You requested a password reset.</p>"
        f'<p><a href="{reset_url}">Reset your password</a> (valid for 1 hour)</p>'
        "<p>If you did not request this, please ignore this email.</p>"
    )
    await send_mail(to, "Password Reset Request", text, html)
