import logging
from datetime import datetime
from typing import Optional
from urllib.parse import unquote

from pydantic import BaseModel

from .config import Settings
from .models import BLOB_CREATED, Notification, RejectReason
from .time_extractor import UNPARSED_TIMESTAMP, extract_timestamp, parse_date

logger = logging.getLogger(__name__)


class FilterDecision(BaseModel):
    accepted: bool
    reason: Optional[RejectReason] = None
    decoded_url: str = ""
    timestamp: datetime = UNPARSED_TIMESTAMP


class EventFilter:
    """Ordered guards deciding whether a notification warrants ingestion.

    The first rejecting guard wins. Rejections are expected outcomes in a
    noisy event stream, so they are logged and returned, never raised.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.min_date = parse_date(settings.min_date, settings.min_date_pattern)

    def evaluate(self, notification: Notification) -> FilterDecision:
        if notification.event_kind != BLOB_CREATED:
            logger.info("The event type %s is not supported", notification.event_kind)
            return self._reject(RejectReason.UNSUPPORTED_EVENT_KIND)

        decoded_url = unquote(notification.object_url)
        logger.debug("URL found: %s", decoded_url)

        blacklist = self.settings.blacklist
        if blacklist and blacklist in decoded_url:
            logger.info("Nothing to insert because %s has been blacklisted", decoded_url)
            return self._reject(RejectReason.BLACKLISTED_PATH, decoded_url)

        timestamp = extract_timestamp(
            decoded_url, self.settings.date_marker, self.settings.date_pattern
        )
        if timestamp < self.min_date:
            logger.warning(
                "The object %s is too old (configured min: %s, actual: %s)",
                decoded_url,
                self.settings.min_date,
                timestamp.isoformat(),
            )
            return self._reject(RejectReason.STALE_OBJECT, decoded_url, timestamp)

        if notification.content_length == 0:
            # Creation fires once at zero length and again when the write completes.
            logger.warning("Found an empty object %s raised by the notification", decoded_url)
            return self._reject(RejectReason.EMPTY_OBJECT_EVENT, decoded_url, timestamp)

        return FilterDecision(accepted=True, decoded_url=decoded_url, timestamp=timestamp)

    @staticmethod
    def _reject(
        reason: RejectReason,
        decoded_url: str = "",
        timestamp: datetime = UNPARSED_TIMESTAMP,
    ) -> FilterDecision:
        return FilterDecision(
            accepted=False, reason=reason, decoded_url=decoded_url, timestamp=timestamp
        )
