"""Delivery of finished briefs by email (SMTP + STARTTLS)."""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Sequence

from dailybrief.storage.interfaces import DigestItemRecord

logger = logging.getLogger(__name__)


class Notifier:
    def send_brief(self, recipient: str, user_name: str, brief_date: str, items: Sequence[DigestItemRecord]) -> None:
        raise NotImplementedError


def _link_urls(item: DigestItemRecord):
    return [str(link.get("url")) for link in item.source_links if link.get("url")]


def build_brief_text(user_name: str, brief_date: str, items: Sequence[DigestItemRecord], app_url: str) -> str:
    blocks = []
    for item in items:
        links = "\n".join(_link_urls(item))
        blocks.append(
            f"{item.position}. {item.title}\n{item.summary}\nWhy it matters: {item.why_it_matters}\n{links}".rstrip()
        )
    body = "\n\n---\n\n".join(blocks)
    return f"Your Daily Brief - {brief_date}\nCurated for {user_name}\n\n{body}\n\nOpen in app: {app_url}/brief"


def build_brief_html(user_name: str, brief_date: str, items: Sequence[DigestItemRecord], app_url: str) -> str:
    esc = html.escape
    parts = [
        "<html><body>",
        "<h1>Your Daily Brief</h1>",
        f"<p>{esc(brief_date)} &middot; Curated for {esc(user_name)}</p>",
    ]
    for item in items:
        links = " ".join(
            f'<a href="{esc(str(link.get("url")), quote=True)}">{esc(str(link.get("label") or "Source"))}</a>'
            for link in item.source_links
            if link.get("url")
        )
        parts.append(
            "<div>"
            f"<h3>{esc(item.title)}</h3>"
            f"<p>{esc(item.summary)}</p>"
            f"<p><strong>Why it matters:</strong> {esc(item.why_it_matters)}</p>"
            f"<p>{links}</p>"
            "</div>"
        )
    parts.append(f'<p><a href="{esc(app_url, quote=True)}/brief">Open in app</a></p>')
    parts.append("</body></html>")
    return "\n".join(parts)


class EmailNotifier(Notifier):
    def __init__(
        self,
        *,
        smtp_server: str,
        smtp_port: int,
        sender: str,
        password: str,
        app_url: str = "http://localhost:3000",
        timeout: float = 30.0,
    ):
        self.smtp_server = smtp_server
        self.smtp_port = smtp_port
        self.sender = sender
        self.password = password
        self.app_url = app_url.rstrip("/")
        self.timeout = timeout

    def build_message(
        self, recipient: str, user_name: str, brief_date: str, items: Sequence[DigestItemRecord]
    ) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = f"Your Daily Brief - {brief_date}"
        msg.attach(MIMEText(build_brief_text(user_name, brief_date, items, self.app_url), "plain"))
        msg.attach(MIMEText(build_brief_html(user_name, brief_date, items, self.app_url), "html"))
        return msg

    def send_brief(self, recipient: str, user_name: str, brief_date: str, items: Sequence[DigestItemRecord]) -> None:
        msg = self.build_message(recipient, user_name, brief_date, items)
        try:
            with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.sender, self.password)
                server.sendmail(self.sender, [recipient], msg.as_string())
        except smtplib.SMTPAuthenticationError:
            logger.error("Email authentication failed - check credentials")
            raise
        except smtplib.SMTPRecipientsRefused:
            logger.error(f"Email recipient refused: {recipient}")
            raise
        logger.info(f"Brief email sent to {recipient}")
