"""Translation tables between UI statuses, pipeline stages, and appointment statuses.

The tables are fixed. ``status -> stage`` is many-to-one and the reverse
table picks one representative status per stage, so a round trip through
the pipeline vocabulary does not always return the original status.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping, Optional

from .models import AppointmentStatus, LeadStatus, PipelineStage

_STATUS_TO_STAGE: Mapping[LeadStatus, Optional[PipelineStage]] = MappingProxyType(
    {
        LeadStatus.NEW: PipelineStage.NEW_LEAD,
        LeadStatus.AI_CALLED_NO_ANSWER: PipelineStage.AI_ENGAGING,
        LeadStatus.AI_SPOKE_TO_LEAD: PipelineStage.AI_ENGAGING,
        LeadStatus.NEEDS_FOLLOW_UP: PipelineStage.NEEDS_ACTION,
        LeadStatus.NO_SHOW: PipelineStage.NEEDS_ACTION,
        LeadStatus.APPOINTMENT_BOOKED: PipelineStage.BOOKED,
        LeadStatus.APPOINTMENT_COMPLETED: PipelineStage.COMPLETED_PAID,
        # Not tracked by the pipeline.
        LeadStatus.NOT_INTERESTED: None,
    }
)

_STAGE_TO_STATUS: Mapping[PipelineStage, LeadStatus] = MappingProxyType(
    {
        PipelineStage.NEW_LEAD: LeadStatus.NEW,
        PipelineStage.AI_ENGAGING: LeadStatus.AI_SPOKE_TO_LEAD,
        PipelineStage.NEEDS_ACTION: LeadStatus.NEEDS_FOLLOW_UP,
        PipelineStage.BOOKED: LeadStatus.APPOINTMENT_BOOKED,
        PipelineStage.COMPLETED_PAID: LeadStatus.APPOINTMENT_COMPLETED,
    }
)

_STATUS_TO_APPOINTMENT: Mapping[LeadStatus, Optional[AppointmentStatus]] = MappingProxyType(
    {
        # "New" sends no status override.
        LeadStatus.NEW: None,
        LeadStatus.AI_CALLED_NO_ANSWER: AppointmentStatus.AI_CALLED_NO_ANSWER,
        LeadStatus.AI_SPOKE_TO_LEAD: AppointmentStatus.AI_SPOKE_TO_LEAD,
        LeadStatus.NEEDS_FOLLOW_UP: AppointmentStatus.NEEDS_FOLLOW_UP,
        LeadStatus.APPOINTMENT_BOOKED: AppointmentStatus.APPOINTMENT_BOOKED,
        LeadStatus.APPOINTMENT_COMPLETED: AppointmentStatus.APPOINTMENT_COMPLETED,
        LeadStatus.NO_SHOW: AppointmentStatus.NO_SHOW,
        LeadStatus.NOT_INTERESTED: AppointmentStatus.NOT_INTERESTED,
    }
)

_APPOINTMENT_TO_STATUS: Mapping[AppointmentStatus, LeadStatus] = MappingProxyType(
    {
        AppointmentStatus.AI_CALLED_NO_ANSWER: LeadStatus.AI_CALLED_NO_ANSWER,
        AppointmentStatus.AI_SPOKE_TO_LEAD: LeadStatus.AI_SPOKE_TO_LEAD,
        AppointmentStatus.SCHEDULED: LeadStatus.APPOINTMENT_BOOKED,
        AppointmentStatus.NEEDS_FOLLOW_UP: LeadStatus.NEEDS_FOLLOW_UP,
        AppointmentStatus.APPOINTMENT_BOOKED: LeadStatus.APPOINTMENT_BOOKED,
        AppointmentStatus.APPOINTMENT_COMPLETED: LeadStatus.APPOINTMENT_COMPLETED,
        AppointmentStatus.NO_SHOW: LeadStatus.NO_SHOW,
        AppointmentStatus.NOT_INTERESTED: LeadStatus.NOT_INTERESTED,
    }
)


def coerce_status(value: Any) -> LeadStatus:
    """Return ``value`` as a :class:`LeadStatus`, accepting the enum or its label."""

    if isinstance(value, LeadStatus):
        return value
    try:
        return LeadStatus(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Unknown lead status {value!r}") from exc


def status_to_stage(status: LeadStatus | str) -> Optional[PipelineStage]:
    """Return the pipeline bucket owning ``status``, or ``None`` if untracked."""

    return _STATUS_TO_STAGE[coerce_status(status)]


def stage_to_status(stage: PipelineStage | str) -> LeadStatus:
    """Return the representative UI status for a pipeline stage."""

    return _STAGE_TO_STATUS[PipelineStage(stage)]


def status_to_appointment_status(status: LeadStatus | str) -> Optional[AppointmentStatus]:
    return _STATUS_TO_APPOINTMENT[coerce_status(status)]


def appointment_status_to_status(value: AppointmentStatus | str) -> LeadStatus:
    if not isinstance(value, AppointmentStatus):
        value = AppointmentStatus(str(value).strip().upper())
    return _APPOINTMENT_TO_STATUS[value]


def parse_stage(raw: Any) -> Optional[PipelineStage]:
    """Best-effort parse of a raw backend stage string."""

    if raw is None:
        return None
    if isinstance(raw, PipelineStage):
        return raw
    text = str(raw).strip().upper().replace(" ", "_").replace("-", "_")
    try:
        return PipelineStage(text)
    except ValueError:
        return None


def status_from_raw_stage(raw: Any, default: LeadStatus = LeadStatus.NEW) -> LeadStatus:
    stage = parse_stage(raw)
    if stage is None:
        return default
    return stage_to_status(stage)


def is_consistent(status: LeadStatus | str, stage: Optional[PipelineStage | str]) -> bool:
    """True when ``stage`` is exactly what ``status`` maps to."""

    expected = status_to_stage(status)
    if stage is None:
        return expected is None
    return expected is PipelineStage(stage)


__all__ = [
    "appointment_status_to_status",
    "coerce_status",
    "is_consistent",
    "parse_stage",
    "stage_to_status",
    "status_from_raw_stage",
    "status_to_appointment_status",
    "status_to_stage",
]
