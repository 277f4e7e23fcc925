"""
Email delivery for governance notifications.

When SMTP is not configured (MAIL_SERVER unset) messages are logged and
not sent, which is the normal mode for development and tests.

Configuration (env vars):
    MAIL_SERVER     SMTP host (default: None → log-only mode)
    MAIL_PORT       SMTP port (default: 587)
    MAIL_USE_TLS    Use TLS (default: true)
    MAIL_USERNAME   SMTP username
    MAIL_PASSWORD   SMTP password
    MAIL_DEFAULT_SENDER  Default from address
"""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)

SEVERITY_COLORS = {
    "info": "#3b82f6",
    "warning": "#f59e0b",
    "error": "#ef4444",
    "success": "#22c55e",
    "critical": "#7c3aed",
}

_GOVERNANCE_HTML = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <div style="background: #1e293b; color: white; padding: 16px 24px;">
        <h2 style="margin: 0; font-size: 18px;">Template Governance</h2>
    </div>
    <div style="padding: 24px; border: 1px solid #e2e8f0; border-top: none;">
        <span style="background: {color}; color: white; padding: 4px 12px; font-size: 12px;
                     text-transform: uppercase;">{severity}</span>
        <h3 style="color: #1e293b;">{title}</h3>
        <p style="color: #475569; line-height: 1.6; white-space: pre-wrap;">{message}</p>
    </div>
</div>
"""


class EmailService:
    """SMTP sender with a log-only fallback."""

    @staticmethod
    def is_configured() -> bool:
        return bool(current_app.config.get("MAIL_SERVER"))

    @staticmethod
    def render(*, title: str, message: str, severity: str = "info") -> tuple[str, str]:
        """Return ``(subject, html_body)`` for a governance notification."""
        subject = f"[Template Governance] {severity.upper()}: {title}"
        body = _GOVERNANCE_HTML.format(
            color=SEVERITY_COLORS.get(severity, SEVERITY_COLORS["info"]),
            severity=html.escape(severity),
            title=html.escape(title),
            message=html.escape(message),
        )
        return subject, body

    @classmethod
    def send(cls, *, to_email: str, subject: str, html_body: str, to_name: str | None = None) -> str:
        """Send one email.  Returns ``"logged"`` in log-only mode, else ``"sent"``.

        SMTP errors propagate; NotificationService decides what to do with them.
        """
        if not cls.is_configured():
            logger.info("Email (log-only): to=%s subject='%s'", to_email, subject)
            return "logged"
        cls._send_smtp(to_email=to_email, to_name=to_name, subject=subject, html_body=html_body)
        logger.info("Email sent: to=%s subject='%s'", to_email, subject)
        return "sent"

    @staticmethod
    def _send_smtp(*, to_email: str, to_name: str | None, subject: str, html_body: str) -> None:
        cfg = current_app.config
        server = cfg.get("MAIL_SERVER")
        port = cfg.get("MAIL_PORT", 587)
        username = cfg.get("MAIL_USERNAME")
        password = cfg.get("MAIL_PASSWORD")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = cfg.get("MAIL_DEFAULT_SENDER", f"noreply@{server}")
        msg["To"] = f"{to_name} <{to_email}>" if to_name else to_email
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(server, port, timeout=30) as smtp:
            if cfg.get("MAIL_USE_TLS", True):
                smtp.starttls()
            if username and password:
                smtp.login(username, password)
            smtp.send_message(msg)
