"""
Outbound email.

The contract is a single function-style call taking {to, subject, html} and
returning {success, error?}. When EMAIL_FUNCTION_URL is set the payload is
POSTed there; otherwise it is delivered directly over SMTP.
"""
import html as html_lib
import smtplib
from email.message import EmailMessage
from typing import Optional

import httpx
import structlog
from pydantic import BaseModel

from ..config import settings

logger = structlog.get_logger(__name__)


class EmailResult(BaseModel):
    success: bool
    error: Optional[str] = None


def _missing(to: Optional[str], subject: Optional[str], html: Optional[str]) -> bool:
    return not (to and to.strip() and subject and subject.strip() and html and html.strip())


def deliver_smtp(to: str, subject: str, html: str) -> EmailResult:
    """Send through the configured SMTP server (the transport behind the email endpoint)."""
    if _missing(to, subject, html):
        return EmailResult(success=False, error="Missing fields")
    if not (settings.smtp_host and settings.mail_from):
        return EmailResult(success=False, error="SMTP not configured")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.mail_from
    msg["To"] = to
    msg.set_content("This message requires an HTML-capable email client.")
    msg.add_alternative(html, subtype="html")
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=30) as s:
            if settings.smtp_tls:
                s.starttls()
            if settings.smtp_username and settings.smtp_password:
                s.login(settings.smtp_username, settings.smtp_password)
            s.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("smtp_send_failed", to=to, error=str(e))
        return EmailResult(success=False, error=str(e))
    return EmailResult(success=True)


def _post_to_function(url: str, to: str, subject: str, html: str) -> EmailResult:
    try:
        with httpx.Client(timeout=30.0) as client:
            response = client.post(url, json={"to": to, "subject": subject, "html": html})
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("email_function_failed", to=to, error=str(e))
        return EmailResult(success=False, error=str(e))
    return EmailResult(success=bool(data.get("success")), error=data.get("error"))


def send_email(to: str, subject: str, html: str) -> EmailResult:
    if _missing(to, subject, html):
        return EmailResult(success=False, error="Missing fields")
    if not settings.enable_email:
        return EmailResult(success=False, error="Email disabled")
    if settings.email_function_url:
        return _post_to_function(settings.email_function_url, to, subject, html)
    return deliver_smtp(to, subject, html)


def send_or_raise(to: str, subject: str, html: str) -> None:
    """For background jobs: turn a failed result into an exception for the job log."""
    result = send_email(to, subject, html)
    if not result.success:
        raise RuntimeError(result.error or "Email delivery failed")


def welcome_email_html(name: str, email: str, password: Optional[str] = None) -> str:
    login_url = f"{settings.public_base_url}/login"
    esc = html_lib.escape
    credentials = f"<p>Email: <strong>{esc(email)}</strong></p>"
    if password:
        credentials += f"<p>Temporary password: <strong>{esc(password)}</strong></p>"
    return (
        f"<h2>Welcome to {esc(settings.app_name)}, {esc(name)}!</h2>"
        f"<p>Your account has been created.</p>{credentials}"
        f'<p><a href="{esc(login_url)}">Sign in</a> and change your password after your first login.</p>'
    )


def invoice_email_html(invoice) -> str:
    esc = html_lib.escape
    rows = "".join(
        f"<tr><td>{esc(i.description)}</td><td>{i.quantity:g}</td>"
        f"<td>{i.unit_price:,.2f}</td><td>{i.total:,.2f}</td></tr>"
        for i in invoice.items
    )
    due = f"<p>Due date: {invoice.due_date.isoformat()}</p>" if invoice.due_date else ""
    return (
        f"<h2>Invoice {esc(invoice.invoice_number)}</h2>"
        f"<p>Dear {esc(invoice.client_name)},</p>"
        f"<table><tr><th>Description</th><th>Qty</th><th>Unit price</th><th>Total</th></tr>{rows}</table>"
        f"<p>Total: {esc(invoice.currency)} {invoice.total:,.2f}</p>{due}"
    )
