import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from .config import settings

logger = logging.getLogger(__name__)


class MailDispatchError(Exception):
    pass


def smtp_configured() -> bool:
    return bool(settings.smtp_username and settings.smtp_password)


def send_email(*, recipient_email: str, subject: str, text_body: str, html_body: str | None = None) -> bool:
    """Send one message over STARTTLS. Returns False when delivery was only simulated."""
    if not smtp_configured():
        logger.warning(f"Email simulation (SMTP not configured): To={recipient_email}, Subject={subject}")
        return False

    sender = settings.smtp_from_email or settings.smtp_username
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = recipient_email
    msg.attach(MIMEText(text_body, "plain"))
    if html_body:
        msg.attach(MIMEText(html_body, "html"))

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=15) as server:
            server.starttls()
            server.login(settings.smtp_username, settings.smtp_password)
            server.sendmail(sender, [recipient_email], msg.as_string())
    except (smtplib.SMTPException, OSError) as exc:
        raise MailDispatchError(f"Failed to send email to {recipient_email}: {exc}") from exc
    return True


def send_password_reset_email(*, recipient_email: str, reset_url: str) -> bool:
    expires = settings.reset_token_exp_minutes
    text_body = (
        "You have requested a password reset.\n"
        f"Please open the following link to reset your password:\n{reset_url}\n\n"
        "If you did not request a password reset, please ignore this email.\n"
        f"This link will expire in {expires} minutes."
    )
    html_body = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
        "<h2>Password Reset Request</h2>"
        "<p>You have requested a password reset. Please click the link below to reset your password:</p>"
        f'<p><a href="{reset_url}">Reset Password</a></p>'
        '<p style="color: #666;">If you did not request a password reset, please ignore this email. '
        f"This link will expire in {expires} minutes.</p>"
        "</div>"
    )
    return send_email(
        recipient_email=recipient_email,
        subject="Password Reset Request",
        text_body=text_body,
        html_body=html_body,
    )
