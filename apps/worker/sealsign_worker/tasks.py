"""Celery tasks for notification delivery."""

import logging
from typing import Optional

from sealsign_worker.celery_app import celery_app
from sealsign_worker.mailer import Mailer
from sealsign_worker.settings import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

_mailer: Optional[Mailer] = None


def get_mailer() -> Mailer:
    global _mailer
    if _mailer is None:
        _mailer = Mailer()
    return _mailer


@celery_app.task(
    bind=True,
    name="sealsign_worker.tasks.send_email",
    max_retries=settings.email_max_retries,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=settings.email_retry_backoff_max_seconds,
    retry_jitter=True,
)
def send_email(self, to: str, subject: str, html: str, kind: Optional[str] = None, correlation_id: Optional[str] = None):
    """Deliver a rendered notification e-mail with automatic retries."""
    log_extra = {
        "task": "send_email",
        "kind": kind,
        "correlation_id": correlation_id,
        "attempt": self.request.retries + 1,
    }

    try:
        delivered = get_mailer().send(to, subject, html)
    except Exception as e:
        logger.error(f"Error sending {kind} email: {e}", exc_info=True, extra=log_extra)
        raise

    logger.info(f"{'Sent' if delivered else 'Simulated'} {kind} email", extra=log_extra)
    return {"delivered": delivered, "kind": kind}
