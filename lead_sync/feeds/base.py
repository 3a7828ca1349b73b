"""Shared behaviour for feed ingestors that read one dashboard endpoint."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FuturesTimeoutError
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional

from ..errors import FeedTimeoutError, FetchError
from ..models import FeedOutcome, LeadPatch

LOGGER = logging.getLogger(__name__)

DEFAULT_BOUNDED_WAIT_SECONDS = 5.0


class FeedIngestor:
    """Fetch one remote collection and normalise its rows into lead patches.

    Subclasses implement :meth:`fetch_rows` against the API client and
    :meth:`normalise` for their backend row shape. Passing ``fetch`` replaces
    the client call, which is how tests and offline runs feed canned rows in.
    """

    name = "feed"

    def __init__(self, client: Any = None, *, fetch: Optional[Callable[[], Iterable[Mapping[str, Any]]]] = None) -> None:
        if client is None and fetch is None:
            raise ValueError(f"{type(self).__name__} requires an API client or a fetch callable")
        self._client = client
        self._fetch = fetch

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"

    def fetch_rows(self) -> Iterable[Mapping[str, Any]]:  # pragma: no cover - abstract
        raise NotImplementedError

    def normalise(self, row: Mapping[str, Any]) -> LeadPatch:  # pragma: no cover - abstract
        raise NotImplementedError

    def _rows(self) -> Iterable[Mapping[str, Any]]:
        if self._fetch is not None:
            return self._fetch() or []
        return self.fetch_rows() or []

    def load(self) -> FeedOutcome:
        """Fetch and normalise; failures are returned as an error outcome, never raised."""

        try:
            rows = list(self._rows())
        except FetchError as exc:
            LOGGER.warning("Feed %s failed: %s", self.name, exc)
            return FeedOutcome.failed(self.name, exc)
        except Exception as exc:  # pragma: no cover - defensive programming
            LOGGER.exception("Feed %s raised while fetching", self.name)
            return FeedOutcome.failed(self.name, exc)

        patches: List[LeadPatch] = []
        for row in rows:
            try:
                patches.append(self.normalise(row))
            except (TypeError, ValueError) as exc:
                LOGGER.warning("Feed %s skipped malformed row %r: %s", self.name, row, exc)
        LOGGER.info("Feed %s loaded %s leads", self.name, len(patches))
        return FeedOutcome.succeeded(self.name, patches)

    def load_bounded(self, timeout: float = DEFAULT_BOUNDED_WAIT_SECONDS) -> FeedOutcome:
        """Race :meth:`load` against ``timeout`` seconds.

        When the timer wins a ``timeout`` outcome is returned straight away and
        whatever the abandoned fetch eventually produces is discarded.
        """

        future: "Future[FeedOutcome]" = Future()

        def run() -> None:
            if future.set_running_or_notify_cancel():
                future.set_result(self.load())

        # Daemon: an abandoned fetch must not hold up interpreter exit.
        worker = threading.Thread(target=run, name=f"feed-{self.name}", daemon=True)
        worker.start()
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            LOGGER.warning("Feed %s did not respond within %ss", self.name, timeout)
            return FeedOutcome.timed_out(self.name, FeedTimeoutError(self.name, timeout))


# --- Row helpers ---

def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def require_id(payload: Mapping[str, Any]) -> str:
    lead_id = clean_text(payload.get("id"))
    if lead_id is None:
        raise ValueError("row has no id")
    return lead_id


def parse_amount(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings or epoch milliseconds into a datetime."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc)
    text = str(value).strip()
    if text.isdigit():
        return datetime.fromtimestamp(int(text) / 1000.0, tz=timezone.utc)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def set_if_present(changes: dict, key: str, value: Any) -> None:
    """Only carry values the backend actually sent, so nulls never erase merged data."""

    if value is not None:
        changes[key] = value
