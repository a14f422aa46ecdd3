"""
Tests for protocol definitions and schedule projection.

Pure functions: no database access.
"""
from datetime import date, time, timedelta

import pytest

from apps.core.exceptions import ValidationError
from apps.protocols.definitions import (
    InjectionSpec,
    Phase,
    ProtocolDefinition,
    build_definition,
    format_time_of_day,
    parse_phases,
    parse_time_of_day,
)
from apps.protocols.scheduling import (
    ScheduleState,
    full_calendar,
    injections_on_date,
    injections_on_day,
    locate_phase,
    resolve_day_number,
    schedule_status,
)

START = date(2024, 1, 1)

STIM = [
    {
        'name': 'Stim',
        'duration': 10,
        'injections': [
            {'day_of_phase': 1, 'medication_id': 'gonal-f', 'dosage': '150 IU', 'time': '20:00'},
            {'day_of_phase': 2, 'medication_id': 'gonal-f', 'dosage': '150 IU', 'time': '20:00'},
        ],
    },
    {
        'name': 'Trigger',
        'duration': 1,
        'injections': [
            {'day_of_phase': 1, 'medication_id': None, 'dosage': '250 mcg', 'time': '22:00'},
        ],
    },
]


@pytest.fixture
def stim():
    return build_definition(STIM, name='Stim Protocol', strict=True)


class TestTimeOfDay:
    """Test HH:MM parsing."""

    def test_parses_24h_time(self):
        assert parse_time_of_day('08:05') == time(8, 5)
        assert parse_time_of_day('23:59') == time(23, 59)

    def test_time_instances_drop_seconds(self):
        assert parse_time_of_day(time(7, 30, 15)) == time(7, 30)

    @pytest.mark.parametrize('value', ['24:00', '8:00', '08:60', '', None, 800, '08:00:00'])
    def test_rejects_malformed_time(self, value):
        with pytest.raises(ValidationError):
            parse_time_of_day(value)

    def test_formats_with_leading_zero(self):
        assert format_time_of_day(time(8, 0)) == '08:00'


class TestParsePhases:
    """Test structural validation of authored phases."""

    def test_parses_stim_protocol(self, stim):
        assert len(stim.phases) == 2
        assert stim.total_days == 11
        assert stim.phases[0].injections[0] == InjectionSpec(
            day_of_phase=1, dosage='150 IU', time=time(20, 0), medication_id='gonal-f'
        )
        assert stim.medication_ids() == ['gonal-f']

    def test_round_trips_wire_shape(self, stim):
        assert stim.phases_to_json() == STIM

    def test_strict_requires_at_least_one_phase(self):
        with pytest.raises(ValidationError):
            parse_phases([], strict=True)

    def test_non_strict_allows_empty_protocol(self):
        assert parse_phases([], strict=False) == ()
        assert parse_phases(None, strict=False) == ()

    def test_rejects_non_positive_duration(self):
        with pytest.raises(ValidationError) as exc:
            parse_phases([{'name': 'Stim', 'duration': 0, 'injections': []}])
        assert 'phases[0].duration' in exc.value.details

    def test_rejects_boolean_duration(self):
        with pytest.raises(ValidationError) as exc:
            parse_phases([{'name': 'Stim', 'duration': True, 'injections': []}])
        assert 'phases[0].duration' in exc.value.details

    def test_reports_every_offending_path(self):
        raw = [
            {
                'name': '',
                'duration': 3,
                'injections': [
                    {'day_of_phase': 4, 'dosage': '1', 'time': '08:00'},
                    {'day_of_phase': 1, 'dosage': '1', 'time': '8am'},
                ],
            },
        ]

        with pytest.raises(ValidationError) as exc:
            parse_phases(raw, strict=True)

        assert set(exc.value.details) == {
            'phases[0].name',
            'phases[0].injections[0].day_of_phase',
            'phases[0].injections[1].time',
        }

    def test_non_strict_keeps_out_of_range_days(self):
        raw = [{'name': 'Stim', 'duration': 2, 'injections': [
            {'day_of_phase': 5, 'dosage': '1', 'time': '08:00'},
        ]}]

        phases = parse_phases(raw, strict=False)

        assert phases[0].injections[0].day_of_phase == 5

    def test_rejects_non_list(self):
        with pytest.raises(ValidationError):
            parse_phases({'name': 'Stim'})


class TestDayNumbering:
    """Test day number and phase location."""

    def test_start_date_is_day_one(self):
        assert resolve_day_number(START, START) == 1
        assert resolve_day_number(START, date(2024, 1, 11)) == 11
        assert resolve_day_number(START, date(2023, 12, 31)) == 0

    def test_locates_phases_by_cumulative_duration(self, stim):
        first = locate_phase(stim, 1)
        last_stim = locate_phase(stim, 10)
        trigger = locate_phase(stim, 11)

        assert (first.phase_index, first.day_of_phase) == (0, 1)
        assert (last_stim.phase_index, last_stim.day_of_phase) == (0, 10)
        assert (trigger.phase_index, trigger.day_of_phase) == (1, 1)

    def test_before_start_is_not_started(self, stim):
        location = locate_phase(stim, 0)
        assert location.state == ScheduleState.NOT_STARTED
        assert location.phase_index is None

    def test_after_last_phase_is_completed(self, stim):
        assert locate_phase(stim, 12).state == ScheduleState.COMPLETED

    def test_empty_protocol_is_completed(self):
        assert locate_phase(ProtocolDefinition(), 1).state == ScheduleState.COMPLETED

    def test_every_day_of_span_maps_to_one_contiguous_slot(self):
        definition = build_definition([
            {'name': 'Downreg', 'duration': 3, 'injections': []},
            {'name': 'Stim', 'duration': 1, 'injections': []},
            {'name': 'Support', 'duration': 4, 'injections': []},
        ])
        expected = [(0, 1), (0, 2), (0, 3), (1, 1), (2, 1), (2, 2), (2, 3), (2, 4)]
        span = [START + timedelta(days=offset) for offset in range(len(expected))]

        located = [locate_phase(definition, resolve_day_number(START, day)) for day in span]

        assert all(location.is_active for location in located)
        assert [(loc.phase_index, loc.day_of_phase) for loc in located] == expected

        before = locate_phase(definition, resolve_day_number(START, START - timedelta(days=1)))
        after = locate_phase(definition, resolve_day_number(START, span[-1] + timedelta(days=1)))
        assert before.state == ScheduleState.NOT_STARTED
        assert after.state == ScheduleState.COMPLETED


class TestDailyInjections:
    """Test doses due on a given date (Stim scenario)."""

    def test_day_one_gonal_f(self, stim):
        doses = injections_on_date(stim, START, date(2024, 1, 1))

        assert len(doses) == 1
        assert doses[0].dosage == '150 IU'
        assert doses[0].time == time(20, 0)
        assert doses[0].medication_id == 'gonal-f'
        assert doses[0].phase_name == 'Stim'
        assert doses[0].calendar_date == date(2024, 1, 1)

    def test_day_without_doses_is_empty(self, stim):
        assert injections_on_date(stim, START, date(2024, 1, 5)) == []

    def test_trigger_day(self, stim):
        doses = injections_on_date(stim, START, date(2024, 1, 11))

        assert len(doses) == 1
        assert doses[0].phase_name == 'Trigger'
        assert doses[0].medication_id is None
        assert doses[0].time == time(22, 0)

    def test_outside_protocol_is_empty(self, stim):
        assert injections_on_date(stim, START, date(2023, 12, 31)) == []
        assert injections_on_date(stim, START, date(2024, 1, 12)) == []

    def test_same_inputs_give_same_doses(self, stim):
        first = injections_on_day(stim, START, 1)
        second = injections_on_day(stim, START, 1)

        assert first == second
        assert len(first) == 1

    def test_orders_by_time_then_definition_order(self):
        definition = ProtocolDefinition(phases=(
            Phase(name='Stim', duration=1, injections=(
                InjectionSpec(day_of_phase=1, dosage='evening', time=time(20, 0)),
                InjectionSpec(day_of_phase=1, dosage='morning-a', time=time(8, 0)),
                InjectionSpec(day_of_phase=1, dosage='morning-b', time=time(8, 0)),
            )),
        ))

        doses = injections_on_day(definition, START, 1)

        assert [d.dosage for d in doses] == ['morning-a', 'morning-b', 'evening']


class TestFullCalendar:
    """Test the projected calendar."""

    def test_stim_calendar(self, stim):
        calendar = full_calendar(stim, START)

        assert [(c.calendar_date, c.dosage) for c in calendar] == [
            (date(2024, 1, 1), '150 IU'),
            (date(2024, 1, 2), '150 IU'),
            (date(2024, 1, 11), '250 mcg'),
        ]

    def test_unreachable_days_are_not_emitted(self):
        definition = build_definition([
            {'name': 'Stim', 'duration': 2, 'injections': [
                {'day_of_phase': 3, 'dosage': 'late', 'time': '08:00'},
                {'day_of_phase': 2, 'dosage': 'ok', 'time': '08:00'},
            ]},
        ])

        calendar = full_calendar(definition, START)

        assert [c.dosage for c in calendar] == ['ok']

    def test_calendar_matches_daily_projection(self, stim):
        calendar = full_calendar(stim, START)
        by_day = []
        for day_number in range(1, stim.total_days + 1):
            by_day.extend(injections_on_day(stim, START, day_number))

        assert calendar == by_day

    def test_empty_protocol_has_empty_calendar(self):
        assert full_calendar(ProtocolDefinition(), START) == []


class TestScheduleStatus:
    """Test the dashboard status summary."""

    def test_active_status(self, stim):
        status = schedule_status(stim, START, date(2024, 1, 3))

        assert status.state == ScheduleState.ACTIVE
        assert status.day_number == 3
        assert status.total_days == 11
        assert status.end_date == date(2024, 1, 11)
        assert status.phase_name == 'Stim'
        assert status.day_of_phase == 3

    def test_not_started_status(self, stim):
        status = schedule_status(stim, START, date(2023, 12, 30))

        assert status.state == ScheduleState.NOT_STARTED
        assert status.day_number == -1
        assert status.phase_name is None

    def test_completed_status(self, stim):
        status = schedule_status(stim, START, date(2024, 2, 1))

        assert status.state == ScheduleState.COMPLETED
        assert status.phase_index is None

    def test_zero_phase_protocol_has_no_end_date(self):
        status = schedule_status(ProtocolDefinition(), START, START)

        assert status.state == ScheduleState.COMPLETED
        assert status.total_days == 0
        assert status.end_date is None
