"""SmtpTransport: smtplib mail client driven from the event loop via worker threads."""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formatdate, make_msgid

from logmailer.config import Config
from logmailer.errors import SendError, StartupConnectivityError

logger = logging.getLogger(__name__)


class SmtpTransport:
    def __init__(self, config: Config):
        self._config = config

    def _connect(self) -> smtplib.SMTP:
        """Open an authenticated SMTP session. Caller closes it."""
        cfg = self._config
        if cfg.smtp_ssl:
            server = smtplib.SMTP_SSL(cfg.smtp_host, cfg.smtp_port, timeout=cfg.smtp_timeout)
        else:
            server = smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.smtp_timeout)
        try:
            server.ehlo()
            if cfg.smtp_starttls and not cfg.smtp_ssl:
                server.starttls()
                server.ehlo()
            if cfg.smtp_user and cfg.smtp_password:
                server.login(cfg.smtp_user, cfg.smtp_password)
        except Exception:
            server.close()
            raise
        return server

    def _verify(self):
        with self._connect() as server:
            code, reply = server.noop()
            if code != 250:
                raise smtplib.SMTPResponseException(code, reply)

    async def verify_connection(self):
        """Check the SMTP server accepts a session. Raises StartupConnectivityError."""
        cfg = self._config
        try:
            await asyncio.to_thread(self._verify)
        except (OSError, smtplib.SMTPException) as e:
            raise StartupConnectivityError(
                f"SMTP server {cfg.smtp_host}:{cfg.smtp_port} unavailable: {e}"
            ) from e
        logger.info("SMTP server %s:%d is ready to take messages", cfg.smtp_host, cfg.smtp_port)

    def build_message(self, subject: str, html: str) -> EmailMessage:
        cfg = self._config
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = cfg.mail_from
        msg["To"] = ", ".join(cfg.mail_to)
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid(domain=cfg.mail_from.rpartition("@")[2] or None)
        msg.set_content("This notification contains HTML log output. Open it in an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> dict:
        with self._connect() as server:
            refused = server.send_message(msg, to_addrs=list(self._config.mail_to))
        return {
            "message_id": msg["Message-ID"],
            "subject": msg["Subject"],
            "recipients": list(self._config.mail_to),
            "refused": sorted(refused),
        }

    async def send(self, subject: str, html: str) -> dict:
        """Deliver one HTML message. Returns delivery info, raises SendError."""
        msg = self.build_message(subject, html)
        try:
            return await asyncio.to_thread(self._send_sync, msg)
        except (OSError, smtplib.SMTPException) as e:
            raise SendError(f"Failed to send {subject!r}: {e}") from e
