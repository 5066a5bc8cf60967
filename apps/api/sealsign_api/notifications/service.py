"""Notifier backends.

The backend is chosen once per process from ``settings.notifier_backend``:
``celery`` hands messages to the worker, ``log`` writes them to the log and
``memory`` keeps them in a list for tests. Backends raise
``NotificationError`` when a message cannot be handed off; callers log it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol

from sealsign_api.errors import NotificationError
from sealsign_api.middleware.correlation import correlation_id_var
from sealsign_api.notifications import templates
from sealsign_api.settings import get_settings

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    kind: str
    to: str
    subject: str
    html: str
    context: dict = field(default_factory=dict)


class Notifier(Protocol):
    """Outbound notices for the signing workflow."""

    def send_signing_invite(
        self,
        email: str,
        url: str,
        message: Optional[str] = None,
        document_title: str = "",
        expires_at: Optional[datetime] = None,
    ) -> None:
        ...

    def send_completion_notices(
        self,
        requester_contact: Optional[str],
        signer_email: str,
        document_ref: str,
        signed_at: Optional[datetime] = None,
    ) -> None:
        ...

    def send_decline_notice(
        self,
        requester_contact: Optional[str],
        signer_email: str,
        document_ref: str,
        reason: Optional[str] = None,
    ) -> None:
        ...


class TemplateNotifier(ABC):
    """Renders notices and passes them to ``deliver``."""

    def __init__(self, expires_in_days: Optional[int] = None):
        self.expires_in_days = expires_in_days or get_settings().signature_request_ttl_days

    @abstractmethod
    def deliver(self, message: EmailMessage) -> None:
        """Hand a rendered message to the transport."""

    def _send(self, kind: str, to: str, **context) -> None:
        subject, html = templates.render(kind, **context)
        self.deliver(EmailMessage(kind=kind, to=to, subject=subject, html=html, context=context))

    def send_signing_invite(self, email, url, message=None, document_title="", expires_at=None) -> None:
        self._send(
            templates.SIGNING_INVITE,
            email,
            document_title=document_title,
            message=message,
            signing_url=url,
            expires_in_days=self.expires_in_days,
            expires_on=expires_at.strftime("%Y-%m-%d") if expires_at else None,
        )

    def send_completion_notices(self, requester_contact, signer_email, document_ref, signed_at=None) -> None:
        signed = signed_at.isoformat(timespec="seconds") if signed_at else ""
        if requester_contact:
            self._send(
                templates.COMPLETION_REQUESTER,
                requester_contact,
                document_title=document_ref,
                signer_email=signer_email,
                signed_at=signed,
            )
        else:
            logger.info(f"No requester contact for completion notice on {document_ref}")
        self._send(templates.COMPLETION_SIGNER, signer_email, document_title=document_ref, signed_at=signed)

    def send_decline_notice(self, requester_contact, signer_email, document_ref, reason=None) -> None:
        if not requester_contact:
            logger.info(f"No requester contact for decline notice on {document_ref}")
            return
        self._send(
            templates.DECLINE_REQUESTER,
            requester_contact,
            document_title=document_ref,
            signer_email=signer_email,
            reason=reason,
        )


class LogNotifier(TemplateNotifier):
    """Development backend: messages go to the log."""

    def deliver(self, message: EmailMessage) -> None:
        logger.info(
            f"Email ({message.kind}) to {message.to}: {message.subject}",
            extra={"kind": message.kind, "to": message.to, "context": message.context},
        )


class MemoryNotifier(TemplateNotifier):
    """Test backend: messages are kept in ``sent``."""

    def __init__(self, fail: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.sent: list[EmailMessage] = []
        self.fail = fail

    def deliver(self, message: EmailMessage) -> None:
        if self.fail:
            raise NotificationError(f"Simulated delivery failure for {message.kind}")
        self.sent.append(message)

    def to(self, address: str) -> list[EmailMessage]:
        return [m for m in self.sent if m.to == address]


class CeleryNotifier(TemplateNotifier):
    """Production backend: enqueue ``sealsign_worker.tasks.send_email``."""

    task_name = "sealsign_worker.tasks.send_email"

    def __init__(self, celery_app=None, **kwargs):
        super().__init__(**kwargs)
        self._celery_app = celery_app

    @property
    def celery_app(self):
        if self._celery_app is None:
            from sealsign_api.celery_client import get_celery_app

            self._celery_app = get_celery_app()
        return self._celery_app

    def deliver(self, message: EmailMessage) -> None:
        try:
            self.celery_app.send_task(
                self.task_name,
                kwargs={
                    "to": message.to,
                    "subject": message.subject,
                    "html": message.html,
                    "kind": message.kind,
                    "correlation_id": correlation_id_var.get(),
                },
            )
        except Exception as e:
            raise NotificationError(f"Failed to enqueue {message.kind} email: {e}") from e
        logger.info(f"Queued {message.kind} email", extra={"kind": message.kind, "to": message.to})


_BACKENDS = {
    "celery": CeleryNotifier,
    "log": LogNotifier,
    "memory": MemoryNotifier,
}

# Global instance
_notifier: Optional[Notifier] = None


def build_notifier(backend: str) -> Notifier:
    try:
        return _BACKENDS[backend.lower()]()
    except KeyError:
        raise ValueError(f"Unknown notifier backend: {backend}") from None


def get_notifier() -> Notifier:
    """Get or create the process-wide notifier."""
    global _notifier
    if _notifier is None:
        _notifier = build_notifier(get_settings().notifier_backend)
    return _notifier
