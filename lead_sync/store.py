"""Canonical in-memory lead collection shared by every feed."""
from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

from .merge import apply_patch, new_lead, validate_patch
from .models import Lead, LeadPatch

LOGGER = logging.getLogger(__name__)


def _merge_into(target: Dict[str, Lead], patches: Iterable[LeadPatch]) -> int:
    created = 0
    for patch in patches:
        existing = target.get(patch.lead_id)
        if existing is None:
            target[patch.lead_id] = new_lead(patch)
            created += 1
        else:
            target[patch.lead_id] = apply_patch(existing, patch)
    return created


class LeadStore:
    """Single source of truth keyed by lead id.

    All writes go through :meth:`merge_all` and :meth:`patch`, serialised by
    one lock. Records are immutable, so :meth:`snapshot` can hand them out
    without copying.
    """

    def __init__(self, leads: Iterable[LeadPatch] = ()) -> None:
        self._lock = threading.Lock()
        self._leads: Dict[str, Lead] = {}
        if leads:
            self.merge_all(leads)

    def merge_all(self, patches: Iterable[LeadPatch]) -> int:
        """Insert or patch every incoming lead; return how many were created."""

        incoming = list(patches)
        for patch in incoming:
            validate_patch(patch)

        with self._lock:
            created = _merge_into(self._leads, incoming)
        LOGGER.debug("Merged %s lead patches (%s new)", len(incoming), created)
        return created

    def patch(self, lead_id: str, changes: Mapping[str, Any]) -> bool:
        """Apply ``changes`` to an existing lead. Unknown ids are ignored."""

        update = LeadPatch(lead_id=lead_id, changes=changes)
        validate_patch(update)
        with self._lock:
            existing = self._leads.get(update.lead_id)
            if existing is None:
                LOGGER.debug("Ignoring patch for unknown lead %s", lead_id)
                return False
            self._leads[update.lead_id] = apply_patch(existing, update)
        return True

    def reset(self, leads: Iterable[LeadPatch] = ()) -> None:
        """Drop every record, optionally reseeding the store."""

        seeded: Dict[str, Lead] = {}
        _merge_into(seeded, leads)
        with self._lock:
            self._leads = seeded

    def snapshot(self) -> Tuple[Lead, ...]:
        with self._lock:
            return tuple(self._leads.values())

    def get(self, lead_id: str) -> Optional[Lead]:
        with self._lock:
            return self._leads.get(str(lead_id))

    def __len__(self) -> int:
        with self._lock:
            return len(self._leads)

    def __contains__(self, lead_id: object) -> bool:
        with self._lock:
            return str(lead_id) in self._leads
