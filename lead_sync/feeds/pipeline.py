"""Sales-pipeline feed: every lead with its backend pipeline stage."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..models import LeadPatch, PipelineStage
from ..vocabulary import parse_stage, stage_to_status
from .base import FeedIngestor, clean_text, require_id, set_if_present


@dataclass(slots=True)
class PipelineRow:
    id: str
    pipeline_stage: PipelineStage = PipelineStage.NEW_LEAD
    lead_name: Optional[str] = None
    lead_number: Optional[str] = None
    email: Optional[str] = None
    location_preference: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "PipelineRow":
        return cls(
            id=require_id(payload),
            pipeline_stage=parse_stage(payload.get("pipeline_stage")) or PipelineStage.NEW_LEAD,
            lead_name=clean_text(payload.get("lead_name")),
            lead_number=clean_text(payload.get("lead_number")),
            email=clean_text(payload.get("email")),
            location_preference=clean_text(payload.get("location_preference")),
            source=clean_text(payload.get("source")),
        )


def flatten_pipeline_payload(data: Any) -> List[Mapping[str, Any]]:
    """Accept either a flat row list or ``{stage: {"leads": [...]}}`` buckets."""

    if isinstance(data, list):
        return [row for row in data if isinstance(row, Mapping)]
    rows: List[Mapping[str, Any]] = []
    if isinstance(data, Mapping):
        for bucket in data.values():
            leads = bucket.get("leads") if isinstance(bucket, Mapping) else None
            if isinstance(leads, list):
                rows.extend(row for row in leads if isinstance(row, Mapping))
    return rows


class PipelineFeed(FeedIngestor):
    name = "pipeline"

    def fetch_rows(self) -> Iterable[Mapping[str, Any]]:
        return flatten_pipeline_payload(self._client.fetch_sales_pipeline())

    def _rows(self) -> Iterable[Mapping[str, Any]]:
        if self._fetch is not None:
            return flatten_pipeline_payload(self._fetch())
        return self.fetch_rows()

    def normalise(self, row: Mapping[str, Any]) -> LeadPatch:
        dto = PipelineRow.from_payload(row)
        changes: Dict[str, Any] = {
            "status": stage_to_status(dto.pipeline_stage),
            "pipeline_stage": dto.pipeline_stage,
        }
        set_if_present(changes, "name", dto.lead_name)
        set_if_present(changes, "phone", dto.lead_number)
        set_if_present(changes, "email", dto.email)
        set_if_present(changes, "location", dto.location_preference)
        set_if_present(changes, "source", dto.source)
        return LeadPatch(lead_id=dto.id, changes=changes)
