"""
Review Notifications

Best-effort, fire-and-forget events emitted after a review has been committed:
evidence approved/rejected, audit approved/rejected, award completed.

Delivery runs on background tasks owned by a NotificationDispatcher. A failed
delivery is logged at WARNING and dropped; it never reaches the reviewer's
request and never rolls anything back.
"""
import asyncio
import logging
import os
from typing import Any, Dict, Optional, Set

import httpx

logger = logging.getLogger(__name__)

NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL")
NOTIFICATION_TIMEOUT_SECONDS = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "5"))


class ReviewNotifier:
    """Notification collaborator interface. Subclasses override ``send``."""

    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def notify_evidence_approved(self, evidence: Any, school: Any = None) -> None:
        await self.send("evidence.approved", _evidence_payload(evidence, school))

    async def notify_evidence_rejected(self, evidence: Any, school: Any = None) -> None:
        await self.send("evidence.rejected", _evidence_payload(evidence, school))

    async def notify_audit_approved(self, audit: Any) -> None:
        await self.send("audit.approved", _audit_payload(audit))

    async def notify_audit_rejected(self, audit: Any) -> None:
        await self.send("audit.rejected", _audit_payload(audit))

    async def notify_award_completed(self, school: Any, certificate: Any = None) -> None:
        payload = {
            "school_id": school.id,
            "school_name": school.name,
            "round": school.rounds_completed,
            "certificate_number": certificate.certificate_number if certificate else None,
        }
        await self.send("award.completed", payload)


class LoggingNotifier(ReviewNotifier):
    """Default notifier: records the event in the log and nothing else."""

    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info(f"[NOTIFY] {event} {payload}")


class WebhookNotifier(ReviewNotifier):
    """POST each event as JSON to a configured webhook."""

    def __init__(self, url: str, timeout: float = NOTIFICATION_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json={"event": event, "data": payload})
            response.raise_for_status()
        logger.debug(f"[NOTIFY] delivered {event} to webhook")


def _evidence_payload(evidence: Any, school: Any = None) -> Dict[str, Any]:
    return {
        "evidence_id": evidence.id,
        "school_id": evidence.school_id,
        "school_name": school.name if school else None,
        "title": evidence.title,
        "stage": evidence.stage,
        "round_number": evidence.round_number,
        "status": evidence.status,
        "review_notes": evidence.review_notes,
    }


def _audit_payload(audit: Any) -> Dict[str, Any]:
    return {
        "audit_id": audit.id,
        "school_id": audit.school_id,
        "round_number": audit.round_number,
        "status": audit.status,
        "review_notes": audit.review_notes,
    }


class NotificationDispatcher:
    """
    Schedules notifier calls as background tasks and keeps a handle on them
    so shutdown (and tests) can wait for delivery with ``drain``.
    """

    def __init__(self, notifier: ReviewNotifier):
        self.notifier = notifier
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, method: str, *args: Any) -> Optional[asyncio.Task]:
        """Fire ``notifier.<method>(*args)`` without awaiting it."""
        handler = getattr(self.notifier, method, None)
        if handler is None:
            logger.warning(f"[NOTIFY] notifier has no handler '{method}', dropping event")
            return None
        task = asyncio.create_task(self._deliver(method, handler, args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _deliver(self, method: str, handler, args) -> None:
        try:
            await handler(*args)
        except Exception as e:
            # Delivery failures never surface to the review that triggered them
            logger.warning(f"[NOTIFY] {method} failed: {type(e).__name__}: {str(e)}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every scheduled notification to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def build_notifier() -> ReviewNotifier:
    if NOTIFICATION_WEBHOOK_URL:
        logger.info(f"[NOTIFY] using webhook notifier: {NOTIFICATION_WEBHOOK_URL}")
        return WebhookNotifier(NOTIFICATION_WEBHOOK_URL)
    return LoggingNotifier()


_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    """Process-wide dispatcher, created on first use."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(build_notifier())
    return _dispatcher
