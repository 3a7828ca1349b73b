"""Utility helpers for applying partial lead records to canonical leads."""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from .models import Lead, LeadPatch, PipelineStage
from .vocabulary import coerce_status, is_consistent


def _normalise_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    normalised = dict(changes)
    if "status" in normalised:
        normalised["status"] = coerce_status(normalised["status"])
    stage = normalised.get("pipeline_stage")
    if stage is not None and not isinstance(stage, PipelineStage):
        normalised["pipeline_stage"] = PipelineStage(stage)
    return normalised


def validate_patch(patch: LeadPatch) -> dict[str, Any]:
    """Return the patch's changes with enums coerced, enforcing status/stage consistency."""

    changes = _normalise_changes(patch.changes)
    if "status" in changes and "pipeline_stage" in changes:
        if not is_consistent(changes["status"], changes["pipeline_stage"]):
            raise ValueError(
                f"Lead {patch.lead_id}: status {changes['status']!s} does not map to "
                f"pipeline stage {changes['pipeline_stage']}"
            )
    return changes


def new_lead(patch: LeadPatch) -> Lead:
    """Create a lead by applying ``patch`` to a blank record."""

    return apply_patch(Lead(id=patch.lead_id), patch)


def apply_patch(lead: Lead, patch: LeadPatch) -> Lead:
    """Overwrite exactly the fields named by ``patch``; every other field is kept."""

    if patch.lead_id != lead.id:
        raise ValueError(f"Patch for lead {patch.lead_id} applied to lead {lead.id}")
    changes = validate_patch(patch)
    if not changes:
        return lead
    return replace(lead, **changes)
