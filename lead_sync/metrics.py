"""Pure aggregations over a lead snapshot for the dashboard header and reports."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Optional

from .models import CallOutcome, Lead, LeadStatus

_NOT_ENGAGED = frozenset({LeadStatus.NEW, LeadStatus.AI_CALLED_NO_ANSWER})
_ANSWERED_FOR_REPORTS = frozenset({CallOutcome.ANSWERED, CallOutcome.BOOKED})


@dataclass(frozen=True)
class DashboardMetrics:
    """Headline numbers shown above the lead views."""

    total: int = 0
    new_today: int = 0
    booked: int = 0
    completed: int = 0
    revenue: float = 0.0
    calls_made: int = 0
    calls_answered: int = 0
    messages_total: int = 0
    by_status: Dict[LeadStatus, int] = field(default_factory=lambda: {status: 0 for status in LeadStatus})

    @property
    def answer_rate(self) -> float:
        return self.calls_answered / self.calls_made if self.calls_made else 0.0


@dataclass(frozen=True)
class ReportStats:
    """Funnel statistics for the performance report."""

    total: int = 0
    engaged: int = 0
    booked: int = 0
    completed: int = 0
    no_shows: int = 0
    revenue: float = 0.0
    total_calls: int = 0
    answered_calls: int = 0
    sources: Dict[str, int] = field(default_factory=dict)
    service_revenue: Dict[str, float] = field(default_factory=dict)

    @property
    def conversion_rate(self) -> float:
        """Booked or completed leads as a percentage of all leads."""
        return self.booked / self.total * 100 if self.total else 0.0

    @property
    def show_rate(self) -> float:
        return (self.booked - self.no_shows) / self.booked * 100 if self.booked else 0.0

    @property
    def average_deal(self) -> float:
        return self.revenue / self.completed if self.completed else 0.0


def _local_now(now: Optional[datetime]) -> datetime:
    # ``astimezone`` on a naive value interprets it as local time.
    return (now or datetime.now()).astimezone()


def is_same_local_day(value: Optional[datetime], now: datetime) -> bool:
    if value is None:
        return False
    if value.tzinfo is None:
        return value.date() == now.date()
    return value.astimezone(now.tzinfo).date() == now.date()


def compute_metrics(leads: Iterable[Lead], now: Optional[datetime] = None) -> DashboardMetrics:
    """Aggregate ``leads``; an empty snapshot yields all zeros."""

    today = _local_now(now)
    by_status = {status: 0 for status in LeadStatus}
    total = new_today = calls_made = calls_answered = messages_total = 0
    revenue = 0.0

    for lead in leads:
        total += 1
        by_status[lead.status] += 1
        if is_same_local_day(lead.date_captured, today):
            new_today += 1
        revenue += lead.sale_amount or 0
        calls_made += len(lead.call_attempts)
        calls_answered += sum(1 for call in lead.call_attempts if call.outcome is CallOutcome.ANSWERED)
        messages_total += len(lead.messages)

    return DashboardMetrics(
        total=total,
        new_today=new_today,
        booked=by_status[LeadStatus.APPOINTMENT_BOOKED],
        completed=by_status[LeadStatus.APPOINTMENT_COMPLETED],
        revenue=revenue,
        calls_made=calls_made,
        calls_answered=calls_answered,
        messages_total=messages_total,
        by_status=by_status,
    )


def compute_report(leads: Iterable[Lead]) -> ReportStats:
    total = engaged = booked = completed = no_shows = total_calls = answered_calls = 0
    revenue = 0.0
    sources: Dict[str, int] = {}
    service_revenue: Dict[str, float] = {}

    for lead in leads:
        total += 1
        if lead.status not in _NOT_ENGAGED:
            engaged += 1
        if lead.status in (LeadStatus.APPOINTMENT_BOOKED, LeadStatus.APPOINTMENT_COMPLETED):
            booked += 1
        if lead.status is LeadStatus.APPOINTMENT_COMPLETED:
            completed += 1
        if lead.status is LeadStatus.NO_SHOW:
            no_shows += 1
        revenue += lead.sale_amount or 0
        total_calls += len(lead.call_attempts)
        answered_calls += sum(1 for call in lead.call_attempts if call.outcome in _ANSWERED_FOR_REPORTS)

        source = lead.source or "Unknown"
        sources[source] = sources.get(source, 0) + 1
        if lead.sale_amount and lead.service:
            service_revenue[lead.service] = service_revenue.get(lead.service, 0.0) + lead.sale_amount

    return ReportStats(
        total=total,
        engaged=engaged,
        booked=booked,
        completed=completed,
        no_shows=no_shows,
        revenue=revenue,
        total_calls=total_calls,
        answered_calls=answered_calls,
        sources=sources,
        service_revenue=service_revenue,
    )


__all__ = ["DashboardMetrics", "ReportStats", "compute_metrics", "compute_report", "is_same_local_day"]
