"""
Сводная аналитика неявок по всей истории приемов
Используется для мониторинга и калибровки, не для решений по отдельным записям
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Sequence

import pandas as pd

from clinic_noshow.services.no_show_prediction import policy
from clinic_noshow.services.no_show_prediction.history import HistoryAggregator
from clinic_noshow.services.no_show_prediction.predictor import NoShowPredictor
from clinic_noshow.services.no_show_prediction.schemas import (
    AppointmentRecord, DayOfWeekStat, MonthlyTrend, NoShowAnalytics, RiskDistribution,
    RiskFactorType, TimeSlot, TimeSlotStat, TopRiskFactor, Weekday
)


class AnalyticsAggregator:
    """Пересчитывает аналитику по запросу, собственного состояния не хранит"""

    DEFAULT_TOP_FACTORS = 5

    def __init__(self, predictor: NoShowPredictor, top_factors: int = DEFAULT_TOP_FACTORS):
        self.predictor = predictor
        self.top_factors = top_factors
        self.logger = logging.getLogger(__name__)

    def compute(self, records: Sequence[AppointmentRecord], now: datetime) -> NoShowAnalytics:
        records = [r for r in records if r.outcome is not None]
        if not records:
            self.logger.info("История приемов пуста, аналитика нулевая")
            return NoShowAnalytics(overall_no_show_rate=0.0, total_appointments=0)

        df = self._to_frame(records)
        total = len(df)
        no_shows = int(df["no_show"].sum())

        distribution, top_factors = self._rescore(records, now)

        analytics = NoShowAnalytics(
            overall_no_show_rate=policy.safe_rate(no_shows, total),
            total_appointments=total,
            monthly_trends=self._monthly_trends(df),
            time_slot_analysis=self._time_slot_analysis(df),
            day_of_week_analysis=self._day_of_week_analysis(df),
            risk_distribution=distribution,
            top_risk_factors=top_factors,
        )
        self.logger.info(
            f"Аналитика рассчитана: {total} приемов, доля неявок {analytics.overall_no_show_rate:.3f}"
        )
        return analytics

    @staticmethod
    def _to_frame(records: Sequence[AppointmentRecord]) -> pd.DataFrame:
        return pd.DataFrame([
            {
                "month_key": r.scheduled_date.strftime("%Y-%m"),
                "time_slot": r.time_slot.value,
                "weekday": int(r.weekday),
                "no_show": int(r.is_no_show),
            }
            for r in records
        ])

    @staticmethod
    def _rates(df: pd.DataFrame, column: str) -> pd.DataFrame:
        grouped = df.groupby(column)["no_show"].agg(["sum", "count"])
        return grouped.sort_index()

    def _monthly_trends(self, df: pd.DataFrame) -> List[MonthlyTrend]:
        grouped = self._rates(df, "month_key")
        return [
            MonthlyTrend(
                month=month_key,
                no_show_rate=policy.safe_rate(int(row["sum"]), int(row["count"])),
                total_appointments=int(row["count"])
            )
            for month_key, row in grouped.iterrows()
        ]

    def _time_slot_analysis(self, df: pd.DataFrame) -> List[TimeSlotStat]:
        grouped = self._rates(df, "time_slot")
        stats = []
        # Порядок слотов - по времени суток
        for slot in TimeSlot:
            if slot.value not in grouped.index:
                continue
            row = grouped.loc[slot.value]
            stats.append(TimeSlotStat(
                time_slot=slot,
                no_show_rate=policy.safe_rate(int(row["sum"]), int(row["count"])),
                total_appointments=int(row["count"])
            ))
        return stats

    def _day_of_week_analysis(self, df: pd.DataFrame) -> List[DayOfWeekStat]:
        grouped = self._rates(df, "weekday")
        return [
            DayOfWeekStat(
                day_of_week=Weekday(int(day)).display_name,
                no_show_rate=policy.safe_rate(int(row["sum"]), int(row["count"])),
                total_appointments=int(row["count"])
            )
            for day, row in grouped.iterrows()
        ]

    def _rescore(self, records: Sequence[AppointmentRecord], now: datetime):
        """Повторный прогноз по историческим записям для распределения рисков"""
        by_patient: Dict[str, List[AppointmentRecord]] = defaultdict(list)
        for record in records:
            by_patient[record.patient_id].append(record)
        histories = {
            patient_id: HistoryAggregator.build_history(patient_id, patient_records)
            for patient_id, patient_records in by_patient.items()
        }

        distribution = RiskDistribution()
        factor_rows = []
        for record in records:
            prediction = self.predictor.predict_with_history(
                record, histories[record.patient_id], now
            )
            level = prediction.risk_level.value
            setattr(distribution, level, getattr(distribution, level) + 1)
            factor_rows.extend(
                {"factor": factor.factor.value, "impact": factor.impact}
                for factor in prediction.factors
            )

        return distribution, self._top_factors(factor_rows)

    def _top_factors(self, factor_rows: List[dict]) -> List[TopRiskFactor]:
        if not factor_rows:
            return []
        factors_df = pd.DataFrame(factor_rows)
        grouped = factors_df.groupby("factor", sort=False)["impact"].agg(["count", "mean"])
        grouped["weight"] = grouped["count"] * grouped["mean"]
        grouped = grouped.sort_values("weight", ascending=False, kind="stable")

        return [
            TopRiskFactor(
                factor=RiskFactorType(name),
                frequency=int(row["count"]),
                average_impact=float(row["mean"]),
                weight=float(row["weight"])
            )
            for name, row in grouped.head(self.top_factors).iterrows()
        ]
