"""Action-required feed: leads the dashboard flags for human follow-up."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from ..models import CallAttempt, LeadPatch, LeadStatus, Message
from .base import FeedIngestor, clean_text, parse_timestamp, require_id, set_if_present


@dataclass(slots=True)
class ActionRequiredRow:
    """Backend row returned by the action-required list endpoint."""

    id: str
    lead_name: Optional[str] = None
    lead_number: Optional[str] = None
    location_preference: Optional[str] = None
    source: Optional[str] = None
    dob: Optional[str] = None
    insurance: Optional[str] = None
    call_summary: Optional[str] = None
    latest_reply: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "ActionRequiredRow":
        return cls(
            id=require_id(payload),
            lead_name=clean_text(payload.get("lead_name")),
            lead_number=clean_text(payload.get("lead_number")),
            location_preference=clean_text(payload.get("location_preference")),
            source=clean_text(payload.get("source")),
            dob=clean_text(payload.get("dob")),
            insurance=clean_text(payload.get("insurance")),
            call_summary=clean_text(payload.get("call_summary")),
            latest_reply=clean_text(payload.get("latest_reply")),
            created_at=parse_timestamp(payload.get("created_at")),
        )


class AlertsFeed(FeedIngestor):
    """Every lead on this feed is labelled ``Needs VA Follow-Up``.

    The endpoint has no status column of its own: being listed here is what
    marks a lead as needing attention.
    """

    name = "alerts"

    def __init__(self, client: Any = None, *, limit: int = 500, **kwargs: Any) -> None:
        super().__init__(client, **kwargs)
        self.limit = limit

    def fetch_rows(self) -> Iterable[Mapping[str, Any]]:
        return self._client.fetch_action_required(page=1, limit=self.limit)

    def normalise(self, row: Mapping[str, Any]) -> LeadPatch:
        dto = ActionRequiredRow.from_payload(row)
        changes: Dict[str, Any] = {"status": LeadStatus.NEEDS_FOLLOW_UP}
        set_if_present(changes, "name", dto.lead_name)
        set_if_present(changes, "phone", dto.lead_number)
        set_if_present(changes, "location", dto.location_preference)
        set_if_present(changes, "source", dto.source)
        set_if_present(changes, "dob", dto.dob)
        set_if_present(changes, "insurance", dto.insurance)
        set_if_present(changes, "call_summary", dto.call_summary)
        set_if_present(changes, "date_captured", dto.created_at)

        changes["call_attempts"] = (
            CallAttempt(id=f"{dto.id}-alert-1", ts=dto.created_at, summary=dto.call_summary or ""),
        )
        changes["messages"] = (
            (Message(id=f"{dto.id}-reply-1", sender="lead", text=dto.latest_reply, ts=dto.created_at),)
            if dto.latest_reply
            else ()
        )
        return LeadPatch(lead_id=dto.id, changes=changes)
