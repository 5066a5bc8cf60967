"""SMTP delivery through fastapi-mail."""

import asyncio
import logging
from typing import Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType

from sealsign_worker.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class Mailer:
    """Send rendered HTML e-mails. Without SMTP credentials messages are only logged."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[FastMail] = None):
        self.settings = settings or get_settings()
        self._client = client

    @property
    def client(self) -> Optional[FastMail]:
        if self._client is None and self.settings.mail_configured:
            conf = ConnectionConfig(
                MAIL_USERNAME=self.settings.mail_username,
                MAIL_PASSWORD=self.settings.mail_password,
                MAIL_FROM=self.settings.mail_from,
                MAIL_FROM_NAME=self.settings.mail_from_name,
                MAIL_PORT=self.settings.mail_port,
                MAIL_SERVER=self.settings.mail_server,
                MAIL_STARTTLS=self.settings.mail_starttls,
                MAIL_SSL_TLS=self.settings.mail_ssl_tls,
                USE_CREDENTIALS=True,
                VALIDATE_CERTS=self.settings.mail_validate_certs,
            )
            self._client = FastMail(conf)
        return self._client

    def send(self, to: str, subject: str, html: str) -> bool:
        """Send one message. Returns False when delivery was only simulated."""
        client = self.client
        if client is None:
            logger.info(f"Email simulation (no SMTP configured) to {to}: {subject}")
            return False

        message = MessageSchema(subject=subject, recipients=[to], body=html, subtype=MessageType.html)
        asyncio.run(client.send_message(message))
        return True
