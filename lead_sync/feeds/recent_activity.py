"""Recent-activity feed: the latest AI calls and replies per lead."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from ..models import CallAttempt, CallOutcome, LeadPatch, Message
from ..vocabulary import status_from_raw_stage
from .base import FeedIngestor, clean_text, parse_amount, parse_timestamp, require_id, set_if_present


@dataclass(slots=True)
class RecentActivityRow:
    id: str
    lead_name: Optional[str] = None
    lead_number: Optional[str] = None
    email: Optional[str] = None
    location_preference: Optional[str] = None
    source: Optional[str] = None
    pipeline_stage: Optional[str] = None
    ai_summary: Optional[str] = None
    call_summary: Optional[str] = None
    latest_reply: Optional[str] = None
    dob: Optional[str] = None
    insurance: Optional[str] = None
    notes: Optional[str] = None
    sale_amount: Optional[float] = None
    appointment_date: Optional[datetime] = None
    activity_at: Optional[datetime] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RecentActivityRow":
        # ``timestamp`` is epoch milliseconds; ``created_at`` is the fallback.
        activity_at = parse_timestamp(payload.get("timestamp")) or parse_timestamp(payload.get("created_at"))
        appointment = payload.get("appointmentDate") or payload.get("scheduled_at")
        return cls(
            id=require_id(payload),
            lead_name=clean_text(payload.get("lead_name")),
            lead_number=clean_text(payload.get("lead_number")),
            email=clean_text(payload.get("email")),
            location_preference=clean_text(payload.get("location_preference")),
            source=clean_text(payload.get("source")),
            pipeline_stage=clean_text(payload.get("pipeline_stage")),
            ai_summary=clean_text(payload.get("ai_summary")),
            call_summary=clean_text(payload.get("call_summary")),
            latest_reply=clean_text(payload.get("latest_reply")),
            dob=clean_text(payload.get("dob")),
            insurance=clean_text(payload.get("insurance")),
            notes=clean_text(payload.get("notes")),
            sale_amount=parse_amount(payload.get("saleAmount")),
            appointment_date=parse_timestamp(appointment),
            activity_at=activity_at,
        )


class RecentActivityFeed(FeedIngestor):
    name = "recent_activity"

    def __init__(self, client: Any = None, *, limit: int = 1000, **kwargs: Any) -> None:
        super().__init__(client, **kwargs)
        self.limit = limit

    def fetch_rows(self) -> Iterable[Mapping[str, Any]]:
        return self._client.fetch_recent_activity(page=1, limit=self.limit)

    def normalise(self, row: Mapping[str, Any]) -> LeadPatch:
        dto = RecentActivityRow.from_payload(row)
        changes: Dict[str, Any] = {"status": status_from_raw_stage(dto.pipeline_stage)}
        set_if_present(changes, "name", dto.lead_name)
        set_if_present(changes, "phone", dto.lead_number)
        set_if_present(changes, "email", dto.email)
        set_if_present(changes, "location", dto.location_preference)
        set_if_present(changes, "source", dto.source)
        set_if_present(changes, "appointment_date", dto.appointment_date)
        set_if_present(changes, "sale_amount", dto.sale_amount)
        set_if_present(changes, "notes", dto.notes or dto.ai_summary)
        set_if_present(changes, "call_summary", dto.call_summary)
        set_if_present(changes, "dob", dto.dob)
        set_if_present(changes, "insurance", dto.insurance)
        set_if_present(changes, "date_captured", dto.activity_at)

        changes["call_attempts"] = (
            (
                CallAttempt(
                    id=f"{dto.id}-ai-1",
                    ts=dto.activity_at,
                    outcome=CallOutcome.ANSWERED,
                    summary=dto.ai_summary,
                ),
            )
            if dto.ai_summary
            else ()
        )
        changes["messages"] = (
            (Message(id=f"{dto.id}-msg-1", sender="lead", text=dto.latest_reply, ts=dto.activity_at),)
            if dto.latest_reply
            else ()
        )
        return LeadPatch(lead_id=dto.id, changes=changes)
