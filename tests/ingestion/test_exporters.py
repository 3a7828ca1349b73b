from datetime import datetime, timezone

import pandas as pd
import pytest

from lead_sync.ingestion.exporters import export_snapshot, snapshot_to_dataframe
from lead_sync.models import CallAttempt, Lead, LeadStatus, Message, PipelineStage


def _build_sample_lead() -> Lead:
    return Lead(
        id="1",
        name="Ada Lovelace",
        phone="555-1111",
        status=LeadStatus.APPOINTMENT_BOOKED,
        pipeline_stage=PipelineStage.BOOKED,
        appointment_date=datetime(2024, 1, 1, 10, tzinfo=timezone.utc),
        sale_amount=250.0,
        call_attempts=(CallAttempt(id="c1", summary="Booked for Monday"),),
        messages=(Message("m1", "lead", "See you then"),),
    )


def test_snapshot_to_dataframe_flattens_leads():
    dataframe = snapshot_to_dataframe([_build_sample_lead(), Lead(id="2")])

    row = dataframe.iloc[0]
    assert row["status"] == "Appointment Booked"
    assert row["pipeline_stage"] == "BOOKED"
    assert row["appointment_date"] == "2024-01-01T10:00:00+00:00"
    assert row["call_count"] == 1
    assert row["last_call_summary"] == "Booked for Monday"
    assert row["last_message"] == "See you then"
    assert dataframe.iloc[1]["name"] == "Unknown"
    assert dataframe.iloc[1]["call_count"] == 0


def test_empty_snapshot_keeps_columns():
    dataframe = snapshot_to_dataframe([])

    assert dataframe.empty
    assert {"id", "status", "pipeline_stage", "sale_amount"}.issubset(dataframe.columns)


def test_export_snapshot_to_csv_and_excel(tmp_path):
    leads = [_build_sample_lead()]

    csv_path = export_snapshot(leads, tmp_path / "out" / "leads.csv")
    excel_path = export_snapshot(leads, tmp_path / "leads.xlsx")

    csv_frame = pd.read_csv(csv_path)
    excel_frame = pd.read_excel(excel_path)

    assert csv_frame.loc[0, "name"] == "Ada Lovelace"
    assert csv_frame.loc[0, "sale_amount"] == 250.0
    assert excel_frame.loc[0, "status"] == "Appointment Booked"


def test_export_snapshot_rejects_unknown_extension(tmp_path):
    with pytest.raises(ValueError):
        export_snapshot([_build_sample_lead()], tmp_path / "leads.parquet")
