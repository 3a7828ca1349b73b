"""Tests for :mod:`lead_sync.store` and :mod:`lead_sync.merge`."""
from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from lead_sync.merge import apply_patch, new_lead
from lead_sync.models import CallAttempt, Lead, LeadPatch, LeadStatus, Message, PipelineStage
from lead_sync.store import LeadStore


def _patches() -> list[LeadPatch]:
    return [
        LeadPatch.of("1", name="Ada Lovelace", phone="555-0100", status=LeadStatus.NEEDS_FOLLOW_UP),
        LeadPatch.of("2", name="Grace Hopper", sale_amount=350.0),
        LeadPatch.of("1", email="ada@example.com"),
    ]


def test_merge_creates_one_record_per_id() -> None:
    store = LeadStore()

    created = store.merge_all(_patches())

    assert created == 2
    assert [lead.id for lead in store.snapshot()] == ["1", "2"]
    ada = store.get("1")
    assert ada.name == "Ada Lovelace"
    assert ada.email == "ada@example.com"
    assert ada.status is LeadStatus.NEEDS_FOLLOW_UP


def test_new_lead_starts_from_blank_defaults() -> None:
    lead = new_lead(LeadPatch.of("9", email="x@example.com"))

    assert lead == Lead(id="9", email="x@example.com")
    assert lead.name == "Unknown"
    assert lead.status is LeadStatus.NEW
    assert lead.call_attempts == ()


def test_merge_is_idempotent() -> None:
    once = LeadStore()
    once.merge_all(_patches())
    twice = LeadStore()
    twice.merge_all(_patches())
    twice.merge_all(_patches())

    assert once.snapshot() == twice.snapshot()


def test_non_overlapping_patches_commute() -> None:
    first = LeadPatch.of("1", sale_amount=200.0)
    second = LeadPatch.of("1", appointment_date=datetime(2024, 1, 1, 10, tzinfo=timezone.utc))

    forward = LeadStore()
    forward.merge_all([first])
    forward.merge_all([second])
    backward = LeadStore()
    backward.merge_all([second])
    backward.merge_all([first])

    assert forward.snapshot() == backward.snapshot()


def test_patch_preserves_unmentioned_fields() -> None:
    store = LeadStore([LeadPatch.of("1", name="Ada", sale_amount=500.0)])

    assert store.patch("1", {"status": LeadStatus.NO_SHOW}) is True

    lead = store.get("1")
    assert lead.status is LeadStatus.NO_SHOW
    assert lead.sale_amount == 500.0
    assert lead.name == "Ada"


def test_sequences_are_replaced_wholesale() -> None:
    store = LeadStore(
        [
            LeadPatch.of(
                "1",
                call_attempts=[CallAttempt(id="a"), CallAttempt(id="b")],
                messages=[Message(id="m1", sender="lead", text="hi")],
            )
        ]
    )

    store.merge_all([LeadPatch.of("1", call_attempts=[CallAttempt(id="c")])])

    lead = store.get("1")
    assert [call.id for call in lead.call_attempts] == ["c"]
    assert [message.id for message in lead.messages] == ["m1"]


def test_patch_for_unknown_id_is_a_no_op() -> None:
    store = LeadStore()

    assert store.patch("nonexistent-id", {"status": "No Show"}) is False
    assert len(store) == 0
    assert "nonexistent-id" not in store


def test_inconsistent_status_and_stage_are_rejected() -> None:
    store = LeadStore([LeadPatch.of("1", name="Ada")])

    with pytest.raises(ValueError):
        store.patch("1", {"status": LeadStatus.NEW, "pipeline_stage": PipelineStage.BOOKED})
    with pytest.raises(ValueError):
        store.merge_all(
            [
                LeadPatch.of("2", name="Grace"),
                LeadPatch.of("1", status="Appointment Booked", pipeline_stage="NEW_LEAD"),
            ]
        )

    # A rejected batch leaves the store untouched.
    assert "2" not in store
    assert store.get("1").status is LeadStatus.NEW


def test_patch_rejects_unknown_fields() -> None:
    with pytest.raises(ValueError):
        LeadPatch.of("1", favourite_colour="blue")
    with pytest.raises(ValueError):
        LeadPatch.of("", name="No id")


def test_status_labels_are_coerced_to_enums() -> None:
    store = LeadStore([LeadPatch.of("1", status="Appointment Booked", pipeline_stage="BOOKED")])

    lead = store.get("1")
    assert lead.status is LeadStatus.APPOINTMENT_BOOKED
    assert lead.pipeline_stage is PipelineStage.BOOKED


def test_snapshot_cannot_mutate_store() -> None:
    store = LeadStore([LeadPatch.of("1", name="Ada")])
    snapshot = store.snapshot()

    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot[0].name = "Mallory"  # type: ignore[misc]
    assert isinstance(snapshot, tuple)

    store.merge_all([LeadPatch.of("2", name="Grace")])
    assert len(snapshot) == 1
    assert store.get("1").name == "Ada"


def test_reset_replaces_the_collection() -> None:
    store = LeadStore(_patches())

    store.reset([LeadPatch.of("seed-1", name="Seed"), LeadPatch.of("seed-1", phone="555")])

    assert [lead.id for lead in store.snapshot()] == ["seed-1"]
    assert store.get("seed-1").phone == "555"


def test_apply_patch_rejects_mismatched_id() -> None:
    with pytest.raises(ValueError):
        apply_patch(Lead(id="1"), LeadPatch.of("2", name="Other"))
