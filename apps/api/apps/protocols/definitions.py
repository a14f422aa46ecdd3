"""
Protocol definitions: the in-memory shape of a treatment protocol.

A protocol is an ordered tuple of phases; each phase lasts `duration` days
and lists the injections due on specific days of that phase. These objects
are immutable and carry no database state; `apps.protocols.models.Protocol`
stores them as JSON and rebuilds them with `parse_phases`.

Wire shape of the stored JSON:

    [
        {
            "name": "Stimulation",
            "duration": 10,
            "injections": [
                {"day_of_phase": 1, "medication_id": "<uuid>|null",
                 "dosage": "150 IU", "time": "20:00"}
            ]
        }
    ]
"""
import re
from dataclasses import dataclass, field
from datetime import time
from typing import Any, Dict, List, Optional, Tuple

from apps.core.exceptions import ValidationError

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')


def parse_time_of_day(value) -> time:
    """
    'HH:MM' (24h) -> datetime.time. `time` instances pass through.

    Raises ValidationError for anything else.
    """
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    match = TIME_PATTERN.match(value) if isinstance(value, str) else None
    if match is None:
        raise ValidationError('Time must use the HH:MM 24-hour format', details={'time': value})
    return time(int(match.group(1)), int(match.group(2)))


def format_time_of_day(value: time) -> str:
    return value.strftime('%H:%M')


@dataclass(frozen=True)
class InjectionSpec:
    """One dose due on `day_of_phase` (1-indexed) at local `time`."""
    day_of_phase: int
    dosage: str
    time: time
    medication_id: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return {
            'day_of_phase': self.day_of_phase,
            'medication_id': self.medication_id,
            'dosage': self.dosage,
            'time': format_time_of_day(self.time),
        }


@dataclass(frozen=True)
class Phase:
    name: str
    duration: int
    injections: Tuple[InjectionSpec, ...] = ()

    def to_json(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'duration': self.duration,
            'injections': [spec.to_json() for spec in self.injections],
        }


@dataclass(frozen=True)
class ProtocolDefinition:
    """Immutable protocol template, detached from persistence."""
    phases: Tuple[Phase, ...] = ()
    name: str = ''
    description: Optional[str] = None
    id: Optional[str] = field(default=None, compare=False)

    @property
    def total_days(self) -> int:
        return sum(phase.duration for phase in self.phases)

    def medication_ids(self) -> List[str]:
        """Distinct medication ids referenced by any spec, in definition order."""
        seen = []
        for phase in self.phases:
            for spec in phase.injections:
                if spec.medication_id and spec.medication_id not in seen:
                    seen.append(spec.medication_id)
        return seen

    def phases_to_json(self) -> List[Dict[str, Any]]:
        return [phase.to_json() for phase in self.phases]


def _require_int(value, path, errors):
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        errors[path] = 'Must be an integer'
        return None
    return value


def parse_phases(raw, strict: bool = True) -> Tuple[Phase, ...]:
    """
    Build `Phase` tuples from the JSON wire shape.

    strict=True is used when a clinic admin authors a protocol: at least one
    phase, every phase named with duration >= 1, every injection day within
    its phase. strict=False is used when loading stored rows: shape and types
    are still checked, but empty protocols and out-of-range days are kept
    (the projector never emits unreachable days).

    Raises ValidationError with one entry per offending path.
    """
    if raw is None:
        raw = []
    if not isinstance(raw, list):
        raise ValidationError('Phases must be a list', details={'phases': 'Must be a list'})
    if strict and not raw:
        raise ValidationError('A protocol needs at least one phase', details={'phases': 'Empty'})

    errors: Dict[str, str] = {}
    phases = []

    for phase_index, raw_phase in enumerate(raw):
        path = f'phases[{phase_index}]'
        if not isinstance(raw_phase, dict):
            errors[path] = 'Must be an object'
            continue

        name = raw_phase.get('name') or ''
        if strict and not str(name).strip():
            errors[f'{path}.name'] = 'Required'

        duration = _require_int(raw_phase.get('duration'), f'{path}.duration', errors)
        if duration is not None and duration < 1:
            errors[f'{path}.duration'] = 'Must be at least 1'
            duration = None

        specs = []
        raw_injections = raw_phase.get('injections') or []
        if not isinstance(raw_injections, list):
            errors[f'{path}.injections'] = 'Must be a list'
            raw_injections = []

        for spec_index, raw_spec in enumerate(raw_injections):
            spec_path = f'{path}.injections[{spec_index}]'
            if not isinstance(raw_spec, dict):
                errors[spec_path] = 'Must be an object'
                continue

            day = _require_int(raw_spec.get('day_of_phase'), f'{spec_path}.day_of_phase', errors)
            if strict and day is not None and duration is not None and not 1 <= day <= duration:
                errors[f'{spec_path}.day_of_phase'] = f'Must be between 1 and {duration}'

            try:
                at = parse_time_of_day(raw_spec.get('time'))
            except ValidationError:
                errors[f'{spec_path}.time'] = 'Must use HH:MM'
                at = None

            medication_id = raw_spec.get('medication_id')
            if day is not None and at is not None:
                specs.append(InjectionSpec(
                    day_of_phase=day,
                    dosage=str(raw_spec.get('dosage') or ''),
                    time=at,
                    medication_id=str(medication_id) if medication_id else None,
                ))

        if duration is not None:
            phases.append(Phase(name=str(name).strip(), duration=duration, injections=tuple(specs)))

    if errors:
        raise ValidationError('Invalid protocol phases', details=errors)

    return tuple(phases)


def build_definition(phases, name='', description=None, protocol_id=None, strict=False) -> ProtocolDefinition:
    """Convenience constructor from raw JSON phases."""
    return ProtocolDefinition(
        phases=parse_phases(phases, strict=strict),
        name=name,
        description=description,
        id=str(protocol_id) if protocol_id else None,
    )
