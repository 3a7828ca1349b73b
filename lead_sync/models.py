"""Unified data models for the lead store, feed ingestors, and coordinator."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple


# --- Status vocabularies ---

class LeadStatus(str, Enum):
    """UI-facing handling state of a lead."""

    NEW = "New"
    AI_CALLED_NO_ANSWER = "AI Called – No Answer"
    AI_SPOKE_TO_LEAD = "AI Spoke to Lead"
    NEEDS_FOLLOW_UP = "Needs VA Follow-Up"
    APPOINTMENT_BOOKED = "Appointment Booked"
    APPOINTMENT_COMPLETED = "Appointment Completed"
    NO_SHOW = "No Show"
    NOT_INTERESTED = "Not Interested"

    def __str__(self) -> str:
        return self.value


class PipelineStage(str, Enum):
    """Coarse sales-funnel bucket tracked by the backend pipeline."""

    NEW_LEAD = "NEW_LEAD"
    AI_ENGAGING = "AI_ENGAGING"
    NEEDS_ACTION = "NEEDS_ACTION"
    BOOKED = "BOOKED"
    COMPLETED_PAID = "COMPLETED_PAID"

    def __str__(self) -> str:
        return self.value


class AppointmentStatus(str, Enum):
    """Status values accepted by the backend appointments endpoint."""

    AI_CALLED_NO_ANSWER = "AI CALLED - NO ANSWER"
    AI_SPOKE_TO_LEAD = "AI SPOKE TO LEAD"
    SCHEDULED = "SCHEDULED"
    NEEDS_FOLLOW_UP = "NEEDS VA TO FOLLOW UP"
    APPOINTMENT_BOOKED = "APPOINTMENT BOOKED"
    APPOINTMENT_COMPLETED = "APPOINTMENT COMPLETED"
    NO_SHOW = "NO SHOW"
    NOT_INTERESTED = "NOT INTERESTED"

    def __str__(self) -> str:
        return self.value


class CallOutcome(str, Enum):
    ANSWERED = "answered"
    VOICEMAIL = "voicemail"
    NO_RESPONSE = "no_response"
    BOOKED = "booked"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "CallOutcome":
        text = str(value or "").strip().lower().replace(" ", "_")
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN


# --- Lead records ---

@dataclass(frozen=True, slots=True)
class CallAttempt:
    """A single AI or human call made to a lead."""

    id: str
    ts: Optional[datetime] = None
    outcome: CallOutcome = CallOutcome.UNKNOWN
    summary: str = ""
    recording_url: Optional[str] = None
    duration_sec: Optional[int] = None
    kind: str = "ai"


@dataclass(frozen=True, slots=True)
class Message:
    """One chat message exchanged between the bot and a lead."""

    id: str
    sender: str
    text: str
    ts: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class Lead:
    """Canonical lead record held by :class:`~lead_sync.store.LeadStore`."""

    id: str
    name: str = "Unknown"
    phone: str = ""
    email: Optional[str] = None
    location: Optional[str] = None
    source: Optional[str] = None
    status: LeadStatus = LeadStatus.NEW
    pipeline_stage: Optional[PipelineStage] = None
    appointment_date: Optional[datetime] = None
    service: Optional[str] = None
    sale_amount: Optional[float] = None
    notes: Optional[str] = None
    call_summary: Optional[str] = None
    dob: Optional[str] = None
    insurance: Optional[str] = None
    date_captured: Optional[datetime] = None
    call_attempts: Tuple[CallAttempt, ...] = ()
    messages: Tuple[Message, ...] = ()

    @property
    def last_call(self) -> Optional[CallAttempt]:
        return self.call_attempts[-1] if self.call_attempts else None

    @property
    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None


LEAD_FIELDS: FrozenSet[str] = frozenset(f.name for f in fields(Lead)) - {"id"}
SEQUENCE_FIELDS: FrozenSet[str] = frozenset({"call_attempts", "messages"})


@dataclass(frozen=True, slots=True)
class LeadPatch:
    """Partial lead: the id plus only the fields a writer actually supplies."""

    lead_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.lead_id:
            raise ValueError("Lead patches require a non-empty id")
        unknown = set(self.changes) - LEAD_FIELDS
        if unknown:
            raise ValueError(f"Unknown lead field(s): {sorted(unknown)}")
        cleaned: Dict[str, Any] = {}
        for key, value in self.changes.items():
            if key in SEQUENCE_FIELDS:
                value = tuple(value or ())
            cleaned[key] = value
        object.__setattr__(self, "lead_id", str(self.lead_id))
        object.__setattr__(self, "changes", cleaned)

    @classmethod
    def of(cls, lead_id: str, **changes: Any) -> "LeadPatch":
        return cls(lead_id=lead_id, changes=changes)


# --- Feed bookkeeping ---

class FeedStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    OK = "ok"
    ERROR = "error"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class FeedOutcome:
    """Result of one feed load; ``leads`` is empty unless ``status`` is OK."""

    feed: str
    status: FeedStatus
    leads: Tuple[LeadPatch, ...] = ()
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.status is FeedStatus.OK

    @classmethod
    def succeeded(cls, feed: str, leads) -> "FeedOutcome":
        return cls(feed=feed, status=FeedStatus.OK, leads=tuple(leads))

    @classmethod
    def failed(cls, feed: str, error: BaseException) -> "FeedOutcome":
        return cls(feed=feed, status=FeedStatus.ERROR, error=error)

    @classmethod
    def timed_out(cls, feed: str, error: BaseException) -> "FeedOutcome":
        return cls(feed=feed, status=FeedStatus.TIMEOUT, error=error)


@dataclass(frozen=True, slots=True)
class FeedState:
    """User-visible loading/error flag for one feed."""

    name: str
    status: FeedStatus = FeedStatus.IDLE
    error: Optional[str] = None
    generation: int = 0
    lead_count: int = 0
    updated_at: Optional[datetime] = None

    @property
    def loading(self) -> bool:
        return self.status is FeedStatus.LOADING


__all__ = [
    "AppointmentStatus",
    "CallAttempt",
    "CallOutcome",
    "FeedOutcome",
    "FeedState",
    "FeedStatus",
    "LEAD_FIELDS",
    "Lead",
    "LeadPatch",
    "LeadStatus",
    "Message",
    "PipelineStage",
    "SEQUENCE_FIELDS",
]
