"""
Общие фикстуры для тестов модуля прогнозирования неявок
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from clinic_noshow.services.no_show_prediction import (
    AppointmentRecord, InMemoryAppointmentSource
)
from clinic_noshow.services.no_show_prediction_service import NoShowPredictionService

# Понедельник
TODAY = date(2026, 11, 2)
NOW = datetime(2026, 11, 2, 12, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_appointment():
    """Фабрика записей на прием"""
    def factory(appointment_id, patient_id="patient-1", day=TODAY, at=time(10, 0),
                appointment_type="follow_up", created_at="auto", outcome=None,
                therapist_id="therapist-1", duration=60):
        if created_at == "auto":
            created_at = datetime.combine(day, time(9, 0), tzinfo=timezone.utc) - timedelta(days=7)
        return AppointmentRecord(
            appointment_id=appointment_id,
            patient_id=patient_id,
            therapist_id=therapist_id,
            scheduled_date=day,
            scheduled_time=at,
            duration=duration,
            appointment_type=appointment_type,
            created_at=created_at,
            outcome=outcome,
        )
    return factory


@pytest.fixture
def chronic_history(make_appointment):
    """
    10 приемов по пятницам в 14:00, 4 неявки (все в октябре),
    последняя неявка 30.10.2026 - за 3 дня до TODAY
    """
    no_show_days = [date(2026, 10, 30), date(2026, 10, 23), date(2026, 10, 16), date(2026, 10, 9)]
    completed_days = [
        date(2026, 8, 28), date(2026, 9, 4), date(2026, 9, 11),
        date(2026, 9, 18), date(2026, 9, 25), date(2026, 10, 2),
    ]
    records = [
        make_appointment(f"h-ns-{i}", patient_id="patient-chronic", day=day,
                         at=time(14, 0), appointment_type="treatment", outcome="no_show")
        for i, day in enumerate(no_show_days)
    ]
    records += [
        make_appointment(f"h-ok-{i}", patient_id="patient-chronic", day=day,
                         at=time(14, 0), appointment_type="treatment", outcome="completed")
        for i, day in enumerate(completed_days)
    ]
    return records


@pytest.fixture
def source(chronic_history):
    return InMemoryAppointmentSource(chronic_history)


@pytest.fixture
def service(source):
    return NoShowPredictionService(source, clock=fixed_clock, max_workers=4)
