"""
Агрегация истории приемов пациента в поведенческий профиль
"""

import logging
from collections import Counter
from typing import Dict, List, Optional, Sequence

import numpy as np

from clinic_noshow.services.monitoring.metrics import record_cache_event
from clinic_noshow.services.no_show_prediction import policy
from clinic_noshow.services.no_show_prediction.database_connector import AppointmentSource
from clinic_noshow.services.no_show_prediction.schemas import (
    AppointmentRecord, PatientNoShowHistory, SeasonalPattern, DayOfWeekPattern,
    Month, Weekday
)


class PatientHistoryCache:
    """
    Кэш профилей пациентов по ID.

    Блокировок нет: профиль - детерминированная функция истории,
    при гонке двух пересчетов побеждает последняя запись.
    """

    def __init__(self):
        self._entries: Dict[str, PatientNoShowHistory] = {}

    def get(self, patient_id: str) -> Optional[PatientNoShowHistory]:
        return self._entries.get(patient_id)

    def put(self, history: PatientNoShowHistory) -> None:
        self._entries[history.patient_id] = history

    def invalidate(self, patient_id: str) -> bool:
        """Удаляет запись; True, если она была в кэше"""
        return self._entries.pop(patient_id, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, patient_id: str) -> bool:
        return patient_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class HistoryAggregator:
    """
    Построение PatientNoShowHistory из записей с известным исходом.
    Сам кэш не сбрасывает: после изменения истории пациента
    вызывающая сторона обязана вызвать invalidate().
    """

    def __init__(self, source: AppointmentSource,
                 cache: Optional[PatientHistoryCache] = None):
        self.source = source
        self.cache = cache if cache is not None else PatientHistoryCache()
        self.logger = logging.getLogger(__name__)

    def get_history(self, patient_id: str) -> PatientNoShowHistory:
        """
        Профиль пациента из кэша либо пересчитанный по источнику

        Raises:
            PatientNotFoundException: источник не знает пациента
        """
        cached = self.cache.get(patient_id)
        if cached is not None:
            record_cache_event("hit")
            return cached

        record_cache_event("miss")
        records = self.source.get_patient_appointments(patient_id)
        history = self.build_history(patient_id, records)
        self.cache.put(history)
        self.logger.debug(f"Профиль пациента {patient_id} пересчитан: {len(records)} приемов")
        return history

    def invalidate(self, patient_id: str) -> None:
        if self.cache.invalidate(patient_id):
            record_cache_event("invalidate")
            self.logger.debug(f"Кэш профиля пациента {patient_id} сброшен")

    @staticmethod
    def build_history(patient_id: str,
                      records: Sequence[AppointmentRecord]) -> PatientNoShowHistory:
        """Чистое вычисление профиля по записям одного пациента"""
        records = [r for r in records if r.patient_id == patient_id and r.outcome is not None]
        total = len(records)
        no_shows = [r for r in records if r.is_no_show]

        last_no_show = max((r.scheduled_date for r in no_shows), default=None)

        return PatientNoShowHistory(
            patient_id=patient_id,
            total_appointments=total,
            no_show_count=len(no_shows),
            no_show_rate=policy.safe_rate(len(no_shows), total),
            last_no_show=last_no_show,
            average_advance_booking=HistoryAggregator._average_lead_time(records),
            preferred_time_slots=HistoryAggregator._preferred_slots(records),
            seasonal_patterns=[
                SeasonalPattern(month=Month(key), no_show_rate=rate)
                for key, rate in HistoryAggregator._group_rates(records, lambda r: r.month).items()
            ],
            day_of_week_patterns=[
                DayOfWeekPattern(day_of_week=Weekday(key), no_show_rate=rate)
                for key, rate in HistoryAggregator._group_rates(records, lambda r: r.weekday).items()
            ],
        )

    @staticmethod
    def _average_lead_time(records: Sequence[AppointmentRecord]) -> float:
        if not records:
            return float(policy.NEUTRAL_LEAD_TIME_DAYS)
        lead_times = np.array([
            policy.lead_time_days(r.scheduled_date, r.created_at) for r in records
        ])
        return float(np.mean(lead_times))

    @staticmethod
    def _preferred_slots(records: Sequence[AppointmentRecord]) -> List:
        # Counter сохраняет порядок первого появления, most_common устойчив
        counts = Counter(r.time_slot for r in records)
        return [slot for slot, _ in counts.most_common(policy.PREFERRED_SLOTS_LIMIT)]

    @staticmethod
    def _group_rates(records: Sequence[AppointmentRecord], key) -> Dict[int, float]:
        """Доля неявок по группам; группы с нулевой долей отбрасываются"""
        totals: Dict[int, int] = {}
        misses: Dict[int, int] = {}
        for record in records:
            group = int(key(record))
            totals[group] = totals.get(group, 0) + 1
            if record.is_no_show:
                misses[group] = misses.get(group, 0) + 1

        rates = {}
        for group, total in totals.items():
            rate = policy.safe_rate(misses.get(group, 0), total)
            if rate > 0:
                rates[group] = rate
        return rates
