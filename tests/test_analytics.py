"""
Тесты сводной аналитики неявок
"""

from datetime import date, datetime, time, timezone

import pytest

from clinic_noshow.services.no_show_prediction import (
    AnalyticsAggregator, HistoryAggregator, InMemoryAppointmentSource, NoShowPredictor,
    RiskFactorType, TimeSlot
)

NOW = datetime(2026, 11, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def aggregator():
    predictor = NoShowPredictor(HistoryAggregator(InMemoryAppointmentSource()), clock=lambda: NOW)
    return AnalyticsAggregator(predictor)


@pytest.fixture
def corpus(make_appointment):
    """7 приемов с исходом, 3 неявки, плюс одна будущая запись"""
    return [
        make_appointment("a1", patient_id="p1", day=date(2026, 9, 7), at=time(10, 0), outcome="no_show"),
        make_appointment("a2", patient_id="p1", day=date(2026, 9, 14), at=time(10, 0), outcome="completed"),
        make_appointment("a3", patient_id="p1", day=date(2026, 10, 5), at=time(14, 0), outcome="completed"),
        make_appointment("a4", patient_id="p2", day=date(2026, 10, 6), at=time(14, 0), outcome="no_show"),
        make_appointment("a5", patient_id="p2", day=date(2026, 10, 7), at=time(18, 0), outcome="completed"),
        make_appointment("a6", patient_id="p2", day=date(2026, 10, 13), at=time(14, 0), outcome="no_show"),
        make_appointment("a7", patient_id="p3", day=date(2026, 8, 20), at=time(8, 0), outcome="cancelled"),
        make_appointment("future", patient_id="p3", day=date(2026, 11, 20)),
    ]


class TestAnalyticsAggregator:
    """Тесты пересчета аналитики"""

    def test_overall_rate(self, aggregator, corpus):
        analytics = aggregator.compute(corpus, NOW)

        assert analytics.total_appointments == 7
        assert analytics.overall_no_show_rate == 3 / 7

    def test_monthly_trends_sorted(self, aggregator, corpus):
        analytics = aggregator.compute(corpus, NOW)

        assert [(t.month, t.total_appointments) for t in analytics.monthly_trends] == [
            ("2026-08", 1), ("2026-09", 2), ("2026-10", 4),
        ]
        assert [t.no_show_rate for t in analytics.monthly_trends] == [0.0, 0.5, 0.5]

    def test_month_order_across_year_boundary(self, aggregator, make_appointment):
        records = [
            make_appointment("b1", day=date(2026, 1, 12), outcome="completed"),
            make_appointment("b2", day=date(2025, 12, 15), outcome="no_show"),
        ]
        analytics = aggregator.compute(records, NOW)

        assert [t.month for t in analytics.monthly_trends] == ["2025-12", "2026-01"]

    def test_time_slot_analysis(self, aggregator, corpus):
        analytics = aggregator.compute(corpus, NOW)
        stats = {s.time_slot: (s.total_appointments, s.no_show_rate) for s in analytics.time_slot_analysis}

        assert [s.time_slot for s in analytics.time_slot_analysis] == [
            TimeSlot.EARLY_MORNING, TimeSlot.MORNING, TimeSlot.AFTERNOON, TimeSlot.EVENING,
        ]
        assert stats[TimeSlot.MORNING] == (2, 0.5)
        assert stats[TimeSlot.AFTERNOON][0] == 3
        assert stats[TimeSlot.AFTERNOON][1] == pytest.approx(2 / 3)
        assert stats[TimeSlot.EVENING] == (1, 0.0)

    def test_day_of_week_analysis(self, aggregator, corpus):
        analytics = aggregator.compute(corpus, NOW)

        assert [(d.day_of_week, d.total_appointments) for d in analytics.day_of_week_analysis] == [
            ("Понедельник", 3), ("Вторник", 2), ("Среда", 1), ("Четверг", 1),
        ]
        assert analytics.day_of_week_analysis[1].no_show_rate == 1.0

    def test_risk_distribution_covers_every_record(self, aggregator, corpus):
        distribution = aggregator.compute(corpus, NOW).risk_distribution

        total = distribution.low + distribution.medium + distribution.high + distribution.critical
        assert total == 7

    def test_top_factors_ranked_by_weight(self, aggregator, corpus):
        top = aggregator.compute(corpus, NOW).top_risk_factors

        assert 0 < len(top) <= 5
        weights = [f.weight for f in top]
        assert weights == sorted(weights, reverse=True)
        for item in top:
            assert item.weight == pytest.approx(item.frequency * item.average_impact)
        assert all(isinstance(item.factor, RiskFactorType) for item in top)

    def test_top_factors_limit(self, corpus):
        predictor = NoShowPredictor(HistoryAggregator(InMemoryAppointmentSource()), clock=lambda: NOW)
        top = AnalyticsAggregator(predictor, top_factors=2).compute(corpus, NOW).top_risk_factors

        assert len(top) == 2

    def test_empty_corpus(self, aggregator, make_appointment):
        analytics = aggregator.compute([make_appointment("future")], NOW)

        assert analytics.total_appointments == 0
        assert analytics.overall_no_show_rate == 0.0
        assert analytics.monthly_trends == []
        assert analytics.time_slot_analysis == []
        assert analytics.day_of_week_analysis == []
        assert analytics.top_risk_factors == []
        assert analytics.risk_distribution.low == 0
