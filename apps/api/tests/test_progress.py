"""
Tests for progress aggregation.
"""
from datetime import date

import pytest

from apps.protocols import services
from apps.protocols.definitions import ProtocolDefinition, build_definition
from apps.protocols.progress import compute_progress, progress_percent
from apps.protocols.scheduling import full_calendar

START = date(2024, 1, 1)


@pytest.fixture
def four_dose_protocol():
    return build_definition([
        {'name': 'Stim', 'duration': 4, 'injections': [
            {'day_of_phase': day, 'dosage': '150 IU', 'time': '20:00'} for day in range(1, 5)
        ]},
    ])


class TestProgressPercent:

    def test_zero_total_is_zero_percent(self):
        assert progress_percent(0, 0) == 0.0
        assert progress_percent(3, 0) == 0.0

    def test_clamped_to_hundred(self):
        assert progress_percent(5, 4) == 100.0

    def test_partial(self):
        assert progress_percent(1, 4) == 25.0


class TestComputeProgress:

    def test_counts_calendar_doses(self, four_dose_protocol):
        progress = compute_progress(four_dose_protocol, START, completed_count=2)

        assert progress.total_injections == 4
        assert progress.completed_injections == 2
        assert progress.progress_percent == 50.0

    def test_empty_protocol(self):
        progress = compute_progress(ProtocolDefinition(), START, completed_count=0)

        assert progress.total_injections == 0
        assert progress.progress_percent == 0.0

    def test_more_completions_than_doses(self, four_dose_protocol):
        progress = compute_progress(four_dose_protocol, START, completed_count=6)

        assert progress.completed_injections == 6
        assert progress.progress_percent == 100.0


STIM_THREE_DAYS = [
    {'name': 'Stim', 'duration': 3, 'injections': [
        {'day_of_phase': 1, 'medication_id': None, 'dosage': '150 IU', 'time': '09:00'},
        {'day_of_phase': 3, 'medication_id': None, 'dosage': '150 IU', 'time': '09:00'},
    ]},
]


@pytest.mark.django_db
class TestAssignmentProgress:
    """Progress of a stored assignment as completions are recorded."""

    @pytest.fixture
    def assignment(self, clinic, patient, clinic_admin):
        protocol = services.create_protocol(clinic, 'Stim', phases=STIM_THREE_DAYS)
        return services.assign_protocol(patient.id, protocol.id, '2024-01-01', assigned_by=clinic_admin)

    def test_three_day_stim_scenario(self, patient, assignment):
        today = date(2024, 1, 3)
        overview = services.assignment_overview(assignment, today)

        calendar = full_calendar(overview.definition, assignment.start_date)
        assert [item.calendar_date for item in calendar] == [date(2024, 1, 1), date(2024, 1, 3)]
        assert [item.day_of_phase for item in calendar] == [1, 3]
        assert overview.progress.total_injections == 2

        services.record_completion(patient, assignment.protocol_id, '2024-01-01', '09:00')

        progress = services.assignment_overview(assignment, today).progress
        assert progress.completed_injections == 1
        assert progress.progress_percent == 50.0

    def test_progress_never_decreases(self, patient, assignment):
        today = date(2024, 1, 10)
        slots = [('2024-01-01', '09:00'), ('2024-01-03', '09:00'), ('2024-01-02', '09:00')]
        seen = [services.assignment_overview(assignment, today).progress.progress_percent]

        for injection_date, injection_time in slots:
            services.record_completion(patient, assignment.protocol_id, injection_date, injection_time)
            seen.append(services.assignment_overview(assignment, today).progress.progress_percent)

        assert seen == sorted(seen)
        assert seen == [0.0, 50.0, 100.0, 100.0]
