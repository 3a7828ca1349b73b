"""Export utilities for lead snapshots."""
from __future__ import annotations

from pathlib import Path
from typing import MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import Lead

PathLike = Union[str, Path]


def export_snapshot(
    leads: Sequence[Lead],
    path: PathLike,
    *,
    sheet_name: str = "Leads",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write a lead snapshot to a CSV or Excel file."""

    dataframe = snapshot_to_dataframe(leads)
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def snapshot_to_dataframe(leads: Sequence[Lead]) -> pd.DataFrame:
    """Flatten leads into one row each; calls and messages are summarised."""

    return pd.DataFrame([_lead_to_row(lead) for lead in leads], columns=_COLUMNS)


_COLUMNS = [
    "id",
    "name",
    "phone",
    "email",
    "location",
    "source",
    "status",
    "pipeline_stage",
    "appointment_date",
    "service",
    "sale_amount",
    "notes",
    "dob",
    "insurance",
    "date_captured",
    "call_count",
    "last_call_summary",
    "message_count",
    "last_message",
]


def _lead_to_row(lead: Lead) -> MutableMapping[str, object]:
    last_call = lead.last_call
    last_message = lead.last_message
    return {
        "id": lead.id,
        "name": lead.name,
        "phone": lead.phone,
        "email": lead.email,
        "location": lead.location,
        "source": lead.source,
        "status": lead.status.value,
        "pipeline_stage": lead.pipeline_stage.value if lead.pipeline_stage else None,
        "appointment_date": _isoformat(lead.appointment_date),
        "service": lead.service,
        "sale_amount": lead.sale_amount,
        "notes": lead.notes,
        "dob": lead.dob,
        "insurance": lead.insurance,
        "date_captured": _isoformat(lead.date_captured),
        "call_count": len(lead.call_attempts),
        "last_call_summary": last_call.summary if last_call else None,
        "message_count": len(lead.messages),
        "last_message": last_message.text if last_message else None,
    }


def _isoformat(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = ["export_snapshot", "snapshot_to_dataframe"]
