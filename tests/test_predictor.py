"""
Тесты предиктора неявок: одиночный и пакетный прогноз
"""

import threading
from datetime import date, datetime, time, timezone
from unittest.mock import Mock

import pytest

from clinic_noshow.exceptions.base_exception import PredictionException, ValidationException
from clinic_noshow.services.no_show_prediction import (
    HistoryAggregator, InMemoryAppointmentSource, NoShowPredictor, RiskFactorType, RiskLevel
)
from clinic_noshow.services.no_show_prediction.risk import (
    ALTERNATIVE_SLOT, CALL_TO_CONFIRM, CHRONIC_NO_SHOW_FLAG, CONSIDER_RESCHEDULING,
    HIGH_TOUCH_REMINDER, LAST_MINUTE_FLAG, STANDARD_REMINDER
)

NOW = datetime(2026, 11, 2, 12, 0, tzinfo=timezone.utc)


def build_predictor(records, known_patient_ids=None, max_workers=4):
    source = InMemoryAppointmentSource(records, known_patient_ids=known_patient_ids)
    return NoShowPredictor(HistoryAggregator(source), clock=lambda: NOW, max_workers=max_workers)


class TestSinglePrediction:
    """Прогноз для одной записи"""

    def test_chronic_patient_last_minute_booking(self, chronic_history, make_appointment):
        """Хронические неявки + запись в тот же день: критический риск"""
        predictor = build_predictor(chronic_history)
        candidate = make_appointment(
            "candidate-1", patient_id="patient-chronic", at=time(9, 30),
            appointment_type="consultation", created_at=datetime(2026, 11, 2, 8, 0)
        )

        prediction = predictor.predict(candidate)

        impacts = {f.factor: f.impact for f in prediction.factors}
        assert impacts == {
            RiskFactorType.HISTORICAL_PATTERN: 6,
            RiskFactorType.RECENT_NO_SHOW: 8,
            RiskFactorType.ADVANCE_BOOKING: 8,
            RiskFactorType.TIME_SLOT: 3,
            RiskFactorType.APPOINTMENT_TYPE: 2,
        }
        assert prediction.risk_score == 100.0
        assert prediction.risk_level == RiskLevel.CRITICAL
        assert prediction.confidence == 85.0
        assert prediction.recommendations == [
            HIGH_TOUCH_REMINDER, CALL_TO_CONFIRM, CONSIDER_RESCHEDULING,
            CHRONIC_NO_SHOW_FLAG, LAST_MINUTE_FLAG, ALTERNATIVE_SLOT,
        ]
        assert prediction.predicted_at == NOW

    def test_new_patient_gets_low_risk(self, make_appointment):
        """Пациент без истории, плановая повторная запись за 10 дней"""
        predictor = build_predictor([])
        candidate = make_appointment(
            "candidate-2", patient_id="newcomer", at=time(10, 0),
            appointment_type="follow_up", created_at=datetime(2026, 10, 23, 15, 0)
        )

        prediction = predictor.predict(candidate)

        assert [f.impact for f in prediction.factors] == [-5, -2, -1, -2, -1]
        assert prediction.risk_score == 28.0
        assert prediction.risk_level == RiskLevel.LOW
        assert prediction.confidence == 65.0
        assert prediction.recommendations == [STANDARD_REMINDER]

    def test_prediction_is_idempotent(self, chronic_history, make_appointment):
        predictor = build_predictor(chronic_history)
        candidate = make_appointment("candidate-1", patient_id="patient-chronic")

        first = predictor.predict(candidate)
        second = predictor.predict(candidate)

        assert first == second

    def test_day_and_season_factors_use_history(self, chronic_history, make_appointment):
        """Пятница в октябре: оба фактора присутствуют"""
        predictor = build_predictor(chronic_history)
        candidate = make_appointment(
            "candidate-3", patient_id="patient-chronic", day=date(2026, 10, 30), at=time(14, 0)
        )

        prediction = predictor.predict(candidate)

        # Пятница: 40% неявок, октябрь: 80%
        assert prediction.factor(RiskFactorType.DAY_OF_WEEK).impact == 4
        assert prediction.factor(RiskFactorType.SEASONAL_PATTERN).impact == 3
        assert prediction.factor(RiskFactorType.TIME_SLOT).impact == -2

    def test_result_ranges(self, chronic_history, make_appointment):
        predictor = build_predictor(chronic_history)
        prediction = predictor.predict(make_appointment("x", patient_id="patient-chronic"))

        assert 0 <= prediction.risk_score <= 100
        assert 0 <= prediction.confidence <= 95
        assert prediction.recommendations


class TestBatchPrediction:
    """Пакетный прогноз"""

    def test_sorted_by_descending_score(self, chronic_history, make_appointment):
        predictor = build_predictor(chronic_history)
        appointments = [
            make_appointment("low", patient_id="newcomer"),
            make_appointment("high", patient_id="patient-chronic",
                             created_at=datetime(2026, 11, 2, 7, 0)),
            make_appointment("mid", patient_id="patient-chronic"),
        ]

        result = predictor.predict_batch(appointments)

        assert [p.appointment_id for p in result.predictions] == ["high", "mid", "low"]
        scores = [p.risk_score for p in result.predictions]
        assert scores == sorted(scores, reverse=True)
        assert result.total_processed == 3
        assert result.successful_predictions == 3
        assert result.failed_predictions == 0

    def test_equal_scores_keep_input_order(self, make_appointment):
        predictor = build_predictor([])
        appointments = [
            make_appointment(f"a{i}", patient_id=f"new-{i}") for i in range(6)
        ]

        result = predictor.predict_batch(appointments)

        assert [p.appointment_id for p in result.predictions] == [f"a{i}" for i in range(6)]

    def test_failures_are_reported_per_item(self, chronic_history, make_appointment):
        predictor = build_predictor(chronic_history, known_patient_ids=["patient-chronic"])
        appointments = [
            make_appointment("ok-1", patient_id="patient-chronic"),
            make_appointment("bad", patient_id="ghost"),
            {"appointment_id": "broken", "patient_id": "patient-chronic"},
        ]

        result = predictor.predict_batch(appointments)

        assert result.total_processed == 3
        assert result.successful_predictions == 1
        assert result.failed_predictions == 2
        assert [p.appointment_id for p in result.predictions] == ["ok-1"]

        failures = {item.appointment_id: item for item in result.items if not item.success}
        assert set(failures) == {"bad", "broken"}
        assert failures["bad"].error == "Пациент ghost не найден"
        assert failures["broken"].prediction is None

    def test_empty_batch(self):
        result = build_predictor([]).predict_batch([])

        assert result.predictions == []
        assert result.total_processed == 0

    def test_non_list_input_rejected(self, make_appointment):
        predictor = build_predictor([])

        with pytest.raises(ValidationException):
            predictor.predict_batch(make_appointment("a1"))
        with pytest.raises(ValidationException):
            predictor.predict_batch("a1")

    def test_batch_matches_single_predictions(self, chronic_history, make_appointment):
        predictor = build_predictor(chronic_history, max_workers=2)
        appointments = [
            make_appointment(f"c{i}", patient_id="patient-chronic", at=time(8 + i, 0))
            for i in range(8)
        ]

        batch = predictor.predict_batch(appointments)
        singles = {a.appointment_id: predictor.predict(a) for a in appointments}

        for prediction in batch.predictions:
            assert prediction == singles[prediction.appointment_id]


class RecordingSource(InMemoryAppointmentSource):
    """Источник, запоминающий поток и число обращений по каждому пациенту"""

    def __init__(self, records, known_patient_ids=None):
        super().__init__(records, known_patient_ids=known_patient_ids)
        self.calls = {}
        self.threads = set()

    def get_patient_appointments(self, patient_id):
        self.calls[patient_id] = self.calls.get(patient_id, 0) + 1
        self.threads.add(threading.get_ident())
        return super().get_patient_appointments(patient_id)


class TestBatchHistoryReads:
    """Чтение истории в пакете: источник не используется из рабочих потоков"""

    def test_histories_read_in_calling_thread(self, chronic_history, make_appointment):
        source = RecordingSource(chronic_history)
        predictor = NoShowPredictor(HistoryAggregator(source), clock=lambda: NOW, max_workers=4)
        appointments = [
            make_appointment(f"a{i}", patient_id=f"patient-{i % 3}", at=time(8 + i, 0))
            for i in range(9)
        ] + [make_appointment("c1", patient_id="patient-chronic")]

        result = predictor.predict_batch(appointments)

        assert result.successful_predictions == 10
        assert source.threads == {threading.get_ident()}
        assert source.calls == {"patient-0": 1, "patient-1": 1, "patient-2": 1, "patient-chronic": 1}

    def test_unknown_patient_looked_up_once(self, chronic_history, make_appointment):
        source = RecordingSource(chronic_history, known_patient_ids=["patient-chronic"])
        predictor = NoShowPredictor(HistoryAggregator(source), clock=lambda: NOW, max_workers=4)
        appointments = [
            make_appointment("g1", patient_id="ghost"),
            make_appointment("ok", patient_id="patient-chronic"),
            make_appointment("g2", patient_id="ghost"),
        ]

        result = predictor.predict_batch(appointments)

        assert source.calls["ghost"] == 1
        failures = [item for item in result.items if not item.success]
        assert [item.appointment_id for item in failures] == ["g1", "g2"]
        assert all(item.error == "Пациент ghost не найден" for item in failures)


class TestScoringFailure:
    """Сбой расчета по готовому профилю"""

    def failing_predictor(self):
        evaluator = Mock()
        evaluator.evaluate.side_effect = ValueError("impact out of range")
        return NoShowPredictor(
            HistoryAggregator(InMemoryAppointmentSource()), evaluator=evaluator, clock=lambda: NOW
        )

    def test_predict_raises_prediction_exception(self, make_appointment):
        predictor = self.failing_predictor()

        with pytest.raises(PredictionException) as exc_info:
            predictor.predict(make_appointment("a1"))

        assert exc_info.value.status_code == 500
        assert exc_info.value.details["appointment_id"] == "a1"
        assert exc_info.value.details["error"] == "impact out of range"
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_batch_reports_failed_item(self, make_appointment):
        predictor = self.failing_predictor()

        result = predictor.predict_batch([make_appointment("a1")])

        assert result.failed_predictions == 1
        assert result.predictions == []
        assert result.items[0].error == "Не удалось рассчитать прогноз для записи a1"


class TestHighRiskFilter:

    def test_threshold_is_inclusive(self, chronic_history, make_appointment):
        predictor = build_predictor(chronic_history)
        batch = predictor.predict_batch([
            make_appointment("chronic", patient_id="patient-chronic"),
            make_appointment("newcomer", patient_id="newcomer"),
        ])
        chronic_score = batch.predictions[0].risk_score

        selected = predictor.filter_high_risk(batch.predictions, chronic_score)

        assert [p.appointment_id for p in selected] == ["chronic"]
