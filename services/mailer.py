"""
Mail collaborator for the password-reset flow.

SMTPMailer sends through smtplib when SMTP is configured; LogMailer is the
development fallback and only logs that a message would have been sent.
Both return a bool and never raise, so a failed delivery stays a logged,
discarded result.
"""
from __future__ import annotations

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Reset your password"


def redact_email(email: str) -> str:
    """Redact an email address for logging to avoid PII leakage."""
    if not isinstance(email, str) or "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def _reset_bodies(link: str) -> tuple[str, str]:
    text = (
        "We received a request to reset your password.\n\n"
        f"Open this link to choose a new one (valid for one hour):\n{link}\n\n"
        "If you did not ask for this, you can ignore this email."
    )
    html = (
        "<p>We received a request to reset your password.</p>"
        f'<p><a href="{link}">Choose a new password</a> (valid for one hour).</p>'
        "<p>If you did not ask for this, you can ignore this email.</p>"
    )
    return text, html


class Mailer:
    def send_password_reset(self, email: str, link: str) -> bool:
        raise NotImplementedError


class LogMailer(Mailer):
    def send_password_reset(self, email: str, link: str) -> bool:
        # the link embeds a live token, so it is not logged
        logger.info("mail not configured; password reset for %s not sent", redact_email(email))
        return True


class SMTPMailer(Mailer):
    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        user: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        from_email: Optional[str] = None,
        from_name: str = "Lodge Members",
        timeout: int = 30,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.use_tls = use_tls
        self.from_email = from_email or user
        self.from_name = from_name
        self.timeout = timeout

    def _message(self, to_email: str, subject: str, text_body: str, html_body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))
        return msg

    def _send(self, to_email: str, msg: MIMEMultipart) -> None:
        context = ssl.create_default_context()
        if self.use_tls:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls(context=context)
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.from_email, to_email, msg.as_string())
        else:
            with smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout) as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.sendmail(self.from_email, to_email, msg.as_string())

    def send_password_reset(self, email: str, link: str) -> bool:
        text_body, html_body = _reset_bodies(link)
        try:
            self._send(email, self._message(email, RESET_SUBJECT, text_body, html_body))
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("password reset mail to %s failed: %s", redact_email(email), exc)
            return False
        logger.info("password reset mail sent to %s", redact_email(email))
        return True


def mailer_from_config(config) -> Mailer:
    host = config.get("SMTP_HOST")
    if not host:
        return LogMailer()
    return SMTPMailer(
        host=host,
        port=int(config.get("SMTP_PORT", 587)),
        user=config.get("SMTP_USER"),
        password=config.get("SMTP_PASSWORD"),
        use_tls=bool(config.get("SMTP_USE_TLS", True)),
        from_email=config.get("MAIL_FROM"),
    )
