import asyncio
import logging
from typing import Dict, Optional

from .command_builder import build_ingest_command
from .config import Settings
from .errors import ConfigurationError, ConfigurationMissingError
from .event_filter import EventFilter
from .ingest_client import IngestClientInitializer
from .models import DispatchOutcome, DispatchStatus, Notification

logger = logging.getLogger(__name__)


class Dispatcher:
    """Turns one storage notification into at most one ingest submission."""

    def __init__(self, initializer: IngestClientInitializer):
        self.initializer = initializer
        self.last_outcome: Optional[DispatchOutcome] = None
        self.counts: Dict[DispatchStatus, int] = {status: 0 for status in DispatchStatus}
        self._event_filter: Optional[EventFilter] = None

    def _filter_for(self, settings: Settings) -> EventFilter:
        if self._event_filter is None:
            self._event_filter = EventFilter(settings)
        return self._event_filter

    async def dispatch(self, notification: Notification) -> DispatchOutcome:
        return self._record(await self._dispatch(notification))

    async def _dispatch(self, notification: Notification) -> DispatchOutcome:
        object_url = notification.object_url

        if not self.initializer.ensure_ready():
            logger.error("Could not initialize, cancel request for %s", object_url)
            return DispatchOutcome.failed(
                object_url, ConfigurationMissingError("Could not initialize the ingest client")
            )

        settings = self.initializer.settings
        try:
            decision = self._filter_for(settings).evaluate(notification)
        except ConfigurationError as exc:
            logger.error("Invalid filter configuration: %s", exc)
            return DispatchOutcome.failed(object_url, exc)

        if not decision.accepted:
            return DispatchOutcome.skipped(object_url, decision.reason)

        try:
            # Submitted as received; the decoded form only drives filtering.
            command = build_ingest_command(
                settings, decision.timestamp, object_url, notification.content_length
            )
            logger.debug(
                "INGEST URL:%s SIZE:%s INSERTDATE:%s",
                decision.decoded_url,
                command.source_size_bytes,
                decision.timestamp.isoformat(),
            )
            await asyncio.to_thread(self.initializer.client.ingest, command)
        except Exception as exc:
            logger.error(
                "Error while trying to insert object %s because of message: %s",
                decision.decoded_url,
                exc,
            )
            return DispatchOutcome.failed(object_url, exc)

        logger.info("Triggered insertion of object %s", decision.decoded_url)
        return DispatchOutcome.submitted(object_url, command)

    def _record(self, outcome: DispatchOutcome) -> DispatchOutcome:
        self.counts[outcome.status] += 1
        self.last_outcome = outcome
        return outcome
