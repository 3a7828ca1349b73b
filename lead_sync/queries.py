"""Read-side helpers that slice a lead snapshot for board and list views."""
from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Dict, Iterable, List, Optional

from .models import Lead, LeadStatus, PipelineStage
from .vocabulary import coerce_status, status_to_stage


def group_by_stage(leads: Iterable[Lead]) -> Dict[PipelineStage, List[Lead]]:
    """Bucket leads into board columns; statuses without a stage are left out."""

    columns: Dict[PipelineStage, List[Lead]] = {stage: [] for stage in PipelineStage}
    for lead in leads:
        stage = status_to_stage(lead.status)
        if stage is not None:
            columns[stage].append(lead)
    return columns


def _timestamp(value: Optional[datetime]) -> float:
    if value is None:
        return float("-inf")
    return value.timestamp()


def order_by_recency(leads: Iterable[Lead]) -> List[Lead]:
    """Newest ``date_captured`` first; leads without one sink to the end."""

    return sorted(leads, key=lambda lead: _timestamp(lead.date_captured), reverse=True)


def filter_leads(
    leads: Iterable[Lead],
    query: str = "",
    *,
    status: LeadStatus | str | None = None,
    source: Optional[str] = None,
) -> List[Lead]:
    needle = query.strip().lower()
    wanted_status = coerce_status(status) if status is not None else None
    matches: List[Lead] = []
    for lead in leads:
        if needle and not (
            needle in lead.name.lower()
            or needle in lead.phone
            or (lead.email is not None and needle in lead.email.lower())
        ):
            continue
        if wanted_status is not None and lead.status is not wanted_status:
            continue
        if source is not None and (lead.source or "Unknown") != source:
            continue
        matches.append(lead)
    return matches


def upcoming_appointments(leads: Iterable[Lead], now: Optional[datetime] = None, days: int = 7) -> List[Lead]:
    """Leads with an appointment between the start of today and the end of day ``today + days``."""

    current = (now or datetime.now()).astimezone()
    start = datetime.combine(current.date(), time.min, tzinfo=current.tzinfo)
    end = datetime.combine(current.date() + timedelta(days=days), time.max, tzinfo=current.tzinfo)

    upcoming = []
    for lead in leads:
        when = lead.appointment_date
        if when is None:
            continue
        if when.tzinfo is None:
            when = when.astimezone()
        if start <= when <= end:
            upcoming.append((when, lead))
    upcoming.sort(key=lambda item: item[0])
    return [lead for _, lead in upcoming]


__all__ = ["filter_leads", "group_by_stage", "order_by_recency", "upcoming_appointments"]
