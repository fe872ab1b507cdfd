"""
Webhook Service

Notifies a data set's webhook URLs about changes. Delivery is best-effort
and only ever starts after the triggering transaction has committed:
callers take a WebhookTarget snapshot inside the transaction and schedule
the notification once the commit succeeded.

Each request is a JSON POST signed with HMAC-SHA256 over the body using
the data set's secret key (when it has one).

Every send is recorded in the operation log (logs table) in its own
session: a Started row before the request, then Success or Failed with
the error once it ends.
"""

import asyncio
import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from datamanager.config import settings
from datamanager.database import AsyncSessionLocal, utcnow
from datamanager.models import Log
from datamanager.models.log import (
    LOG_ACTION_SEND,
    LOG_STATUS_FAILED,
    LOG_STATUS_STARTED,
    LOG_STATUS_SUCCESS,
    LOG_TYPE_WEBHOOK,
    SYSTEM_USER,
)

logger = logging.getLogger(__name__)

DATA_SET_SAVED = "dataset.saved"
DATA_SET_DELETED = "dataset.deleted"
DATA_SET_MATERIALIZED = "dataset.materialized"
TRANSLATION_UPDATED = "translation.updated"


@dataclass(frozen=True)
class WebhookTarget:
    data_set_id: UUID
    urls: tuple[str, ...]
    secret_key: str | None = None

    @classmethod
    def from_data_set(cls, data_set) -> "WebhookTarget":
        return cls(
            data_set_id=data_set.id,
            urls=tuple(data_set.webhook_urls or ()),
            secret_key=data_set.secret_key,
        )


class WebhookNotifier:
    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        session_factory: async_sessionmaker | None = None,
    ):
        self.timeout = timeout if timeout is not None else settings.webhook_timeout_seconds
        self.transport = transport
        # Sessions for the operation log; None sends without logging
        self.session_factory = session_factory
        self._pending: set[asyncio.Task] = set()

    def build_payload(self, target: WebhookTarget, event_type: str, data: dict[str, Any]) -> dict[str, Any]:
        return {
            "event_type": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data_set_id": str(target.data_set_id),
            "data": data,
        }

    def _create_signature(self, secret: str, payload: str) -> str:
        return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()

    @staticmethod
    def verify_signature(secret: str, payload: str, signature: str) -> bool:
        expected = hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)

    async def send(
        self, client: httpx.AsyncClient, url: str, event_type: str, payload_json: str, secret: str | None
    ) -> str | None:
        """POST one event. Returns None on success, otherwise what went wrong."""
        headers = {
            "Content-Type": "application/json",
            "X-Webhook-Event": event_type,
            "X-Webhook-Timestamp": str(int(time.time())),
        }
        if secret:
            headers["X-Webhook-Signature"] = self._create_signature(secret, payload_json)

        try:
            response = await client.post(url, content=payload_json, headers=headers)
        except httpx.TimeoutException:
            logger.warning(f"Webhook {event_type} to {url} timed out")
            return "Request timed out"
        except httpx.HTTPError as e:
            logger.warning(f"Webhook {event_type} to {url} failed: {e}")
            return f"Request error: {e}"

        if not response.is_success:
            logger.warning(f"Webhook {event_type} to {url} returned HTTP {response.status_code}")
            return f"HTTP {response.status_code}: {response.reason_phrase}"
        return None

    async def deliver(self, client: httpx.AsyncClient, url: str, event_type: str, payload_json: str, secret: str | None) -> bool:
        return await self.send(client, url, event_type, payload_json, secret) is None

    # ── Operation log ─────────────────────────────────────────────────────────

    async def _log_started(self, session: AsyncSession, target: WebhookTarget, event_type: str) -> list[Log]:
        started_at = utcnow()
        logs = [
            Log(
                log_type=LOG_TYPE_WEBHOOK,
                action=LOG_ACTION_SEND,
                target=url,
                status=LOG_STATUS_STARTED,
                started_at=started_at,
                details=f"Event: {event_type}, DataSet: {target.data_set_id}",
                data_set_id=target.data_set_id,
                created_by=SYSTEM_USER,
            )
            for url in target.urls
        ]
        session.add_all(logs)
        try:
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception(f"Could not log webhook {event_type} for data set {target.data_set_id}")
            return []
        return logs

    async def _log_finished(self, session: AsyncSession, logs: list[Log], errors: list[str | None]) -> None:
        ended_at = utcnow()
        for log, error in zip(logs, errors):
            log.status = LOG_STATUS_SUCCESS if error is None else LOG_STATUS_FAILED
            log.ended_at = ended_at
            log.error_message = error
        try:
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.exception(f"Could not complete {len(logs)} webhook log entries")

    # ── Dispatch ──────────────────────────────────────────────────────────────

    async def _send_all(self, target: WebhookTarget, event_type: str, payload_json: str) -> list[str | None]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return list(
                await asyncio.gather(
                    *(self.send(client, url, event_type, payload_json, target.secret_key) for url in target.urls)
                )
            )

    async def notify(self, target: WebhookTarget, event_type: str, data: dict[str, Any]) -> list[bool]:
        """Send one event to every URL of the target, returning per-URL success."""
        if not target.urls:
            return []

        payload_json = json.dumps(self.build_payload(target, event_type, data), default=str)
        if self.session_factory is None:
            errors = await self._send_all(target, event_type, payload_json)
        else:
            async with self.session_factory() as session:
                logs = await self._log_started(session, target, event_type)
                errors = await self._send_all(target, event_type, payload_json)
                if logs:
                    await self._log_finished(session, logs, errors)

        results = [error is None for error in errors]
        logger.info(
            f"Webhook {event_type} for data set {target.data_set_id} delivered to {sum(results)}/{len(results)} URLs"
        )
        return results

    def schedule(self, target: WebhookTarget, event_type: str, data: dict[str, Any]) -> asyncio.Task | None:
        """Fire-and-forget notify(); call only after a successful commit."""
        if not target.urls:
            return None
        task = asyncio.create_task(self.notify(target, event_type, data))
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Webhook dispatch crashed", exc_info=task.exception())

    async def drain(self) -> None:
        """Wait for scheduled notifications, used on shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


webhook_notifier = WebhookNotifier(session_factory=AsyncSessionLocal)
