"""
Schedule projection: protocol definition + start date -> concrete dated doses.

Everything here is pure. "Today" is always passed in; nothing reads the
clock or the database. The calendar is recomputed on demand and never stored.

Day numbering is 1-indexed from the start date:

    day_number = (reference_date - start_date).days + 1

Phases occupy contiguous day ranges. Phase i covers
(cumulative_i, cumulative_i + duration_i], so every day in
[1, total_days] belongs to exactly one phase.
"""
from dataclasses import dataclass
from datetime import date, time, timedelta
from enum import Enum
from typing import List, Optional

from .definitions import InjectionSpec, ProtocolDefinition


class ScheduleState(str, Enum):
    NOT_STARTED = 'not_started'
    ACTIVE = 'active'
    COMPLETED = 'completed'


@dataclass(frozen=True)
class PhaseLocation:
    """
    Where a day number falls. `phase_index` and `day_of_phase` are set only
    when `state` is ACTIVE.
    """
    state: ScheduleState
    day_number: int
    phase_index: Optional[int] = None
    day_of_phase: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.state == ScheduleState.ACTIVE


@dataclass(frozen=True)
class ScheduledInjection:
    """One injection spec placed on a calendar date."""
    calendar_date: date
    day_number: int
    phase_index: int
    phase_name: str
    day_of_phase: int
    spec: InjectionSpec

    @property
    def time(self) -> time:
        return self.spec.time

    @property
    def dosage(self) -> str:
        return self.spec.dosage

    @property
    def medication_id(self) -> Optional[str]:
        return self.spec.medication_id


@dataclass(frozen=True)
class ScheduleStatus:
    """Dashboard summary of an assignment as of a reference date."""
    state: ScheduleState
    day_number: int
    total_days: int
    end_date: Optional[date]
    phase_index: Optional[int] = None
    phase_name: Optional[str] = None
    day_of_phase: Optional[int] = None


def resolve_day_number(start_date: date, reference_date: date) -> int:
    """1 on the start date, < 1 before it."""
    return (reference_date - start_date).days + 1


def total_days(definition: ProtocolDefinition) -> int:
    return definition.total_days


def locate_phase(definition: ProtocolDefinition, day_number: int) -> PhaseLocation:
    if day_number < 1:
        return PhaseLocation(state=ScheduleState.NOT_STARTED, day_number=day_number)

    cumulative = 0
    for index, phase in enumerate(definition.phases):
        if cumulative < day_number <= cumulative + phase.duration:
            return PhaseLocation(
                state=ScheduleState.ACTIVE,
                day_number=day_number,
                phase_index=index,
                day_of_phase=day_number - cumulative,
            )
        cumulative += phase.duration

    # Past the last phase, or a protocol with no phases at all
    return PhaseLocation(state=ScheduleState.COMPLETED, day_number=day_number)


def injections_on_day(definition: ProtocolDefinition, start_date: date, day_number: int) -> List[ScheduledInjection]:
    """
    Doses due on `day_number`, ordered by time then definition order.

    Empty when the day is outside the protocol or has no doses.
    """
    location = locate_phase(definition, day_number)
    if not location.is_active:
        return []

    phase = definition.phases[location.phase_index]
    calendar_date = start_date + timedelta(days=day_number - 1)
    due = [spec for spec in phase.injections if spec.day_of_phase == location.day_of_phase]

    # sorted() is stable, so equal times keep definition order
    return [
        ScheduledInjection(
            calendar_date=calendar_date,
            day_number=day_number,
            phase_index=location.phase_index,
            phase_name=phase.name,
            day_of_phase=location.day_of_phase,
            spec=spec,
        )
        for spec in sorted(due, key=lambda s: s.time)
    ]


def injections_on_date(definition: ProtocolDefinition, start_date: date, reference_date: date) -> List[ScheduledInjection]:
    return injections_on_day(definition, start_date, resolve_day_number(start_date, reference_date))


def full_calendar(definition: ProtocolDefinition, start_date: date) -> List[ScheduledInjection]:
    """
    Every reachable spec exactly once, on its own date.

    Ordered by phase, day of phase, time, then definition order. Specs whose
    day_of_phase lies outside 1..duration are never emitted.
    """
    entries = []
    cumulative = 0

    for phase_index, phase in enumerate(definition.phases):
        for order, spec in enumerate(phase.injections):
            if not 1 <= spec.day_of_phase <= phase.duration:
                continue
            day_number = cumulative + spec.day_of_phase
            entries.append((
                (phase_index, spec.day_of_phase, spec.time, order),
                ScheduledInjection(
                    calendar_date=start_date + timedelta(days=day_number - 1),
                    day_number=day_number,
                    phase_index=phase_index,
                    phase_name=phase.name,
                    day_of_phase=spec.day_of_phase,
                    spec=spec,
                ),
            ))
        cumulative += phase.duration

    entries.sort(key=lambda entry: entry[0])
    return [scheduled for _, scheduled in entries]


def schedule_status(definition: ProtocolDefinition, start_date: date, reference_date: date) -> ScheduleStatus:
    day_number = resolve_day_number(start_date, reference_date)
    location = locate_phase(definition, day_number)
    days = total_days(definition)
    end_date = start_date + timedelta(days=days - 1) if days > 0 else None

    phase_name = None
    if location.is_active:
        phase_name = definition.phases[location.phase_index].name

    return ScheduleStatus(
        state=location.state,
        day_number=day_number,
        total_days=days,
        end_date=end_date,
        phase_index=location.phase_index,
        phase_name=phase_name,
        day_of_phase=location.day_of_phase,
    )
