"""Utilities for loading a known-good lead dataset from spreadsheets or JSON."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..feeds.base import parse_amount, parse_timestamp
from ..models import LeadPatch
from ..vocabulary import coerce_status, parse_stage, stage_to_status, status_to_stage

PathLike = Union[str, Path]

_FIELD_SYNONYMS: Mapping[str, Sequence[str]] = {
    "id": ("id", "lead_id", "record_id"),
    "name": ("name", "lead_name", "full_name"),
    "phone": ("phone", "lead_number", "phone_number"),
    "email": ("email", "email_address"),
    "location": ("location", "location_preference"),
    "source": ("source",),
    "status": ("status",),
    "pipeline_stage": ("pipeline_stage", "stage"),
    "appointment_date": ("appointment_date", "appointmentdate", "scheduled_at"),
    "service": ("service", "service_type"),
    "sale_amount": ("sale_amount", "saleamount", "expected_value"),
    "notes": ("notes",),
    "dob": ("dob", "date_of_birth"),
    "insurance": ("insurance",),
    "date_captured": ("date_captured", "datecaptured", "created_at"),
}

_TIMESTAMP_FIELDS = {"appointment_date", "date_captured"}


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


def load_lead_patches(
    path: PathLike,
    *,
    column_mapping: Optional[Mapping[str, str]] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[LeadPatch]:
    """Load lead records as patches ready for :meth:`LeadStore.merge_all`.

    Parameters
    ----------
    path:
        Path to the CSV/TSV/XLSX/JSON file to be loaded.
    column_mapping:
        Optional mapping of :class:`~lead_sync.models.Lead` field names to
        column names, overriding the built-in synonyms.
    sheet_name:
        Sheet selector passed to :func:`pandas.read_excel` when loading an Excel
        file. Ignored for other formats.
    loader_kwargs:
        Extra keyword arguments forwarded to the pandas reader.
    """

    dataframe = _read_dataframe(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    mapping = dict(column_mapping or {})
    resolved = {field: _resolve_column(field, dataframe.columns, mapping) for field in _FIELD_SYNONYMS}
    if resolved["id"] is None:
        raise ValueError(f"{path}: no id column found")

    patches: List[LeadPatch] = []
    for _, row in dataframe.iterrows():
        if _row_is_empty(row):
            continue
        patch = _row_to_patch(row, resolved)
        if patch is not None:
            patches.append(patch)
    return patches


def _read_dataframe(
    path: PathLike,
    *,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    loader_kwargs = dict(loader_kwargs or {})
    path_obj = Path(path)
    suffix = path_obj.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            loader_kwargs.setdefault("sep", "\t")
        loader_kwargs.setdefault("dtype", str)
        return pd.read_csv(path_obj, **loader_kwargs)

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        loader_kwargs.setdefault("dtype", str)
        return pd.read_excel(path_obj, sheet_name=sheet_name, engine=loader_kwargs.pop("engine", None) or "openpyxl", **loader_kwargs)

    if suffix == ".json":
        records = json.loads(path_obj.read_text(encoding="utf-8"))
        if isinstance(records, Mapping):
            records = records.get("leads", [])
        return pd.DataFrame(records, dtype=object)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path_obj.suffix}")


def _row_is_empty(row: pd.Series) -> bool:
    return all(_is_missing(value) or (isinstance(value, str) and not value.strip()) for value in row.values)


def _is_missing(value: Any) -> bool:
    if isinstance(value, (list, tuple, dict)):
        return False
    return bool(pd.isna(value))


def _resolve_column(field: str, columns: Iterable[str], mapping: Mapping[str, str]) -> Optional[str]:
    if field in mapping:
        return mapping[field]
    synonyms = _FIELD_SYNONYMS[field]
    by_key = {str(column).strip().lower().replace(" ", "_"): column for column in columns}
    for synonym in synonyms:
        if synonym in by_key:
            return by_key[synonym]
    return None


def _clean_text(value: Any) -> Optional[str]:
    if _is_missing(value):
        return None
    text = str(value).strip()
    return text or None


def _row_to_patch(row: pd.Series, resolved: Mapping[str, Optional[str]]) -> Optional[LeadPatch]:
    values: Dict[str, Any] = {}
    for field, column in resolved.items():
        if column is None or column not in row:
            continue
        text = _clean_text(row[column])
        if text is not None:
            values[field] = text

    lead_id = values.pop("id", None)
    if lead_id is None:
        return None

    for field in _TIMESTAMP_FIELDS & values.keys():
        values[field] = parse_timestamp(values[field])
    if "sale_amount" in values:
        values["sale_amount"] = parse_amount(values["sale_amount"])

    # The status column wins; the stage is always derived through the vocabulary.
    raw_stage = values.pop("pipeline_stage", None)
    if "status" in values:
        status = coerce_status(values["status"])
        values["status"] = status
        values["pipeline_stage"] = status_to_stage(status)
    else:
        stage = parse_stage(raw_stage)
        if stage is not None:
            values["status"] = stage_to_status(stage)
            values["pipeline_stage"] = stage

    return LeadPatch(lead_id=lead_id, changes=values)


__all__ = ["load_lead_patches", "UnsupportedFileTypeError"]
