"""
core/mailer.py -- Outbound mail for transactional messages (password reset).

The mailer is the notifier collaborator of the password reset flow. It only
knows how to deliver an HTML message to one recipient; what the message says
is the caller's business.

Dev mode: when SMTP_HOST is empty the message is logged (recipient redacted)
instead of sent, and send_mail() reports success so local resets still work.

Failure semantics: send_mail() returns False on any SMTP or socket error and
logs it. It never raises -- the reset flow reports the failure to its caller
rather than aborting after the token was already persisted.

Layer rule: no imports from api/, auth/, or shop/.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

logger = logging.getLogger("storefront.mail")


def make_a_nice_email(text: str) -> str:
    """Wrap a plain message in the storefront's minimal HTML mail layout."""
    return f"""
    <div class="email" style="
      border: 1px solid black;
      padding: 20px;
      font-family: sans-serif;
      line-height: 2;
      font-size: 20px;
    ">
      <h2>Hello There!</h2>
      <p>{text}</p>
      <p>The Storefront Team</p>
    </div>
    """


def _redact(email: str) -> str:
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class Mailer:
    """SMTP mail sender.

    Usage:
        mailer = Mailer(smtp_host="smtp.example.com", from_email="shop@example.com")
        ok = mailer.send_mail("user@example.com", "Subject", "<p>Hi</p>")
    """

    def __init__(
        self,
        *,
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        smtp_use_tls: bool = True,
        from_email: str = "no-reply@storefront.local",
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)

    def send_mail(self, to: str, subject: str, html_body: str) -> bool:
        """Deliver one HTML message. Returns True on success, False on failure."""
        if not self.is_configured:
            logger.info("Mail not configured, logging instead: to=%s subject=%r", _redact(to), subject)
            logger.debug("Mail body: %s", html_body)
            return True

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to, msg.as_string())
            else:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=30) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to, msg.as_string())
        except (smtplib.SMTPException, OSError):
            logger.exception("Mail delivery failed: to=%s subject=%r", _redact(to), subject)
            return False

        logger.info("Mail sent: to=%s subject=%r", _redact(to), subject)
        return True
