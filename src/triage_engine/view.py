"""Queue view model — display-order and summary data derived from a QueueState.

Everything here is a pure function of the snapshot passed in.  Build a new
``QueueView`` whenever the queue changes; never hold on to one across
mutations.
"""

from __future__ import annotations

import math
from typing import Callable

from pydantic import BaseModel

from triage_engine.constants import CRITICAL_ESI_MAX
from triage_engine.models.patient import Patient, QueueState


class QueueEntry(BaseModel):
    """A patient at a 1-based position in urgency order."""

    position: int
    label: str
    patient: Patient


class QueueStats(BaseModel):
    total: int
    critical: int
    avg_wait: int


class QueueView:
    """Read-only projections over one queue snapshot.

    Args:
        state: the snapshot to project
        esi_label: maps an ESI level to its display label
    """

    def __init__(
        self,
        state: QueueState,
        esi_label: Callable[[int], str] | None = None,
    ) -> None:
        self._patients: tuple[Patient, ...] = tuple(state.patients)
        self._esi_label = esi_label or (lambda level: f"ESI {level}")

    def sorted_by_urgency(self) -> list[Patient]:
        """Patients ordered by ESI ascending; equal ESI keeps append order."""
        # sorted() is stable, so append order survives among ties
        return sorted(self._patients, key=lambda p: p.esi)

    def ranked(self) -> list[QueueEntry]:
        """Urgency-ordered patients with their queue position and ESI label."""
        return [
            QueueEntry(position=i, label=self._esi_label(p.esi), patient=p)
            for i, p in enumerate(self.sorted_by_urgency(), start=1)
        ]

    def stats(self) -> QueueStats:
        """Total, critical (ESI <= 2) and mean wait in whole minutes (half up)."""
        total = len(self._patients)
        critical = sum(1 for p in self._patients if p.esi <= CRITICAL_ESI_MAX)
        mean = sum(p.wait_time for p in self._patients) / total if total else 0.0
        avg_wait = math.floor(mean + 0.5)
        return QueueStats(total=total, critical=critical, avg_wait=avg_wait)
