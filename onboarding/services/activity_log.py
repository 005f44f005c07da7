"""Append-only activity log. Write failures never fail the triggering operation."""
import logging
from typing import Optional

from onboarding.models.activity_log import ActivityLogEntry
from onboarding.store.base import DocumentStore

logger = logging.getLogger(__name__)


class ActivityLogger:
    def __init__(self, store: DocumentStore):
        self._store = store

    async def record(
        self,
        action: str,
        class_code: str,
        actor_email: str,
        description: str,
        performed_by_uid: Optional[str] = None,
    ) -> None:
        entry = ActivityLogEntry(
            action=action,
            class_code=class_code,
            actor_email=actor_email,
            description=description,
            performed_by_uid=performed_by_uid,
        )
        try:
            await self._store.add_activity_log(entry.to_document())
        except Exception as e:
            logger.error("Failed to log activity %s for %s: %s", action, actor_email, e)
