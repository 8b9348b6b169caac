"""
Gmail SMTP transport.

Sends multipart (plain text + HTML) email through Gmail using an app
password. SMTP calls block, so ``send`` runs them in a worker thread.
"""
import asyncio
import html
import logging
import re
import smtplib
import time
import uuid
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Any, Dict, Optional

from taskmanager.config import Settings
from taskmanager.errors import NotConfigured

logger = logging.getLogger(__name__)

PRIORITY_HEADERS = {
    "urgent": ("1", "High", "high"),
    "high": ("2", "High", "high"),
    "normal": ("3", "Normal", "normal"),
}


def generate_html_from_text(text: str, subject: str = "") -> str:
    """Wrap a plain text body in the themed HTML email layout."""
    if not text:
        return ""

    body = html.escape(text)
    body = body.replace("\n\n", "</p><p>").replace("\n", "<br>")
    body = re.sub(r"\*\*(.*?)\*\*", r"<strong>\1</strong>", body)
    body = re.sub(r"`(.*?)`", r"<code>\1</code>", body)

    primary, accent = "#14b8a6", "#3b82f6"
    if any(marker in subject for marker in ("URGENT", "🚨", "⚠️", "Overdue", "OVERDUE", "MISSED")):
        primary, accent = "#ef4444", "#dc2626"
    elif "Completed" in subject or "✅" in subject:
        primary, accent = "#10b981", "#059669"

    title = html.escape(subject or "ToDo App Notification")
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>{title}</title></head>"
        "<body style=\"font-family: Arial, sans-serif; background:#f8fafc; padding:20px;\">"
        "<div style=\"max-width:600px; margin:0 auto; background:white; border-radius:16px; overflow:hidden;\">"
        f"<div style=\"background:{primary}; color:white; padding:30px; text-align:center;\">"
        f"<h2 style=\"margin:0;\">{title}</h2></div>"
        f"<div style=\"padding:30px; color:#334155; border-top:4px solid {accent};\"><p>{body}</p></div>"
        "<div style=\"padding:16px; text-align:center; font-size:12px; color:#94a3b8;\">"
        "Sent by your ToDo App notification system</div>"
        "</div></body></html>"
    )


class SmtpEmailTransport:
    """Email transport backed by Gmail SMTP with STARTTLS."""

    def __init__(self, settings: Settings):
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.gmail_user
        self.password = settings.gmail_app_password
        self.from_name = settings.gmail_from_name
        self.reply_to = settings.gmail_reply_to or settings.gmail_user
        self.timeout = 30

        if self.is_configured:
            logger.info("Gmail SMTP transport configured for %s", self.user)
        else:
            logger.warning("Gmail credentials not configured - email notifications disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self.user and self.password)

    def _require_configured(self):
        if not self.is_configured:
            raise NotConfigured("Gmail service not configured")

    def _build_message(self, to: str, subject: str, text: str, html_body: Optional[str], priority: str) -> MIMEMultipart:
        domain = self.user.split("@")[-1]
        x_priority, ms_priority, importance = PRIORITY_HEADERS.get(priority, PRIORITY_HEADERS["normal"])

        msg = MIMEMultipart("alternative")
        msg["From"] = formataddr((self.from_name, self.user))
        msg["To"] = to
        msg["Subject"] = subject
        msg["Reply-To"] = self.reply_to
        msg["Message-ID"] = f"<{int(time.time() * 1000)}.{uuid.uuid4().hex[:8]}@{domain}>"
        msg["X-Mailer"] = "ToDo App Notification System v2.0"
        msg["X-Priority"] = x_priority
        msg["X-MSMail-Priority"] = ms_priority
        msg["Importance"] = importance
        msg.attach(MIMEText(text or "", "plain", "utf-8"))
        msg.attach(MIMEText(html_body or generate_html_from_text(text, subject), "html", "utf-8"))
        return msg

    def _send_sync(self, msg: MIMEMultipart, to: str) -> Dict[str, Any]:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.user, self.password)
            refused = server.sendmail(self.user, [to], msg.as_string())
        return {"message_id": msg["Message-ID"], "accepted": [to] if to not in refused else [], "rejected": list(refused)}

    async def send(
        self,
        to: str,
        subject: str,
        text: str,
        html: Optional[str] = None,
        priority: str = "normal",
    ) -> Dict[str, Any]:
        """
        Send one email.

        Returns:
            Dict with the transport-assigned ``message_id``

        Raises:
            NotConfigured: if no Gmail credentials are set
            smtplib.SMTPException / OSError: on transport failure
        """
        self._require_configured()
        msg = self._build_message(to, subject, text, html, priority)
        result = await asyncio.to_thread(self._send_sync, msg, to)
        logger.info("Email sent via Gmail SMTP: message_id=%s to=%s", result["message_id"], to)
        return result

    def _verify_sync(self) -> bool:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.starttls()
            server.login(self.user, self.password)
        return True

    async def verify_connection(self) -> bool:
        """Log in to the SMTP server without sending anything."""
        self._require_configured()
        return await asyncio.to_thread(self._verify_sync)

    def status(self) -> Dict[str, Any]:
        return {
            "service": "Gmail SMTP",
            "configured": self.is_configured,
            "host": self.host,
            "port": self.port,
            "user": self.user,
        }
