"""
Progress aggregation for one (patient, protocol) pair.

The completed count is a plain tally of ledger rows; it is not reconciled
against calendar slots, so the percentage is clamped at 100.
"""
from dataclasses import dataclass
from datetime import date

from .definitions import ProtocolDefinition
from .scheduling import full_calendar


@dataclass(frozen=True)
class ProtocolProgress:
    total_injections: int
    completed_injections: int
    progress_percent: float


def progress_percent(completed: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return max(0.0, min(100.0, completed / total * 100))


def compute_progress(definition: ProtocolDefinition, start_date: date, completed_count: int) -> ProtocolProgress:
    total = len(full_calendar(definition, start_date))
    return ProtocolProgress(
        total_injections=total,
        completed_injections=completed_count,
        progress_percent=progress_percent(completed_count, total),
    )
