"""
Сервис прогнозирования неявок пациентов
Точка входа для внешних потребителей: HTTP-слоя, фоновых задач, интерфейса
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from clinic_noshow.database.config import get_settings
from clinic_noshow.services.no_show_prediction import (
    AnalyticsAggregator, AppointmentOutcome, AppointmentRecord, AppointmentSource,
    BatchPredictionResponse, HistoryAggregator, NoShowAnalytics, NoShowPrediction,
    NoShowPredictor, PatientHistoryCache, PatientNoShowHistory, RiskScorer, RiskThresholds
)
from clinic_noshow.services.no_show_prediction.predictor import utc_now


class NoShowPredictionService:
    """
    Фасад модуля прогнозирования неявок.
    Кэш профилей создается один раз на экземпляр сервиса и передается в конвейер.
    """

    def __init__(self, source: AppointmentSource,
                 cache: Optional[PatientHistoryCache] = None,
                 thresholds: Optional[RiskThresholds] = None,
                 clock: Callable[[], datetime] = utc_now,
                 max_workers: Optional[int] = None,
                 top_factors: Optional[int] = None):
        """
        Инициализация сервиса

        Args:
            source: Источник записей на прием
            cache: Кэш профилей пациентов
            thresholds: Пороги уровней риска
            clock: Текущее время
            max_workers: Размер пула для пакетного прогноза
            top_factors: Сколько факторов возвращать в аналитике
        """
        settings = get_settings()
        self.source = source
        self.cache = cache if cache is not None else PatientHistoryCache()
        self.clock = clock
        self.aggregator = HistoryAggregator(source, self.cache)
        self.predictor = NoShowPredictor(
            self.aggregator,
            scorer=RiskScorer(thresholds),
            clock=clock,
            max_workers=max_workers or settings.BATCH_MAX_WORKERS,
        )
        self.analytics = AnalyticsAggregator(
            self.predictor,
            top_factors=top_factors or settings.TOP_RISK_FACTORS_LIMIT,
        )
        self.high_risk_threshold = settings.HIGH_RISK_THRESHOLD
        self.logger = logging.getLogger(__name__)

    def predict(self, appointment: AppointmentRecord) -> NoShowPrediction:
        """
        Прогноз неявки для записи

        Raises:
            PatientNotFoundException: пациент неизвестен источнику
        """
        return self.predictor.predict(appointment)

    def predict_by_id(self, appointment_id: str) -> NoShowPrediction:
        """
        Прогноз неявки для записи из источника

        Raises:
            AppointmentNotFoundException: запись не найдена
        """
        appointment = self.source.get_appointment(appointment_id)
        return self.predict(appointment)

    def batch_predict(self, appointments: Sequence[AppointmentRecord]) -> BatchPredictionResponse:
        """Пакетный прогноз, результаты по убыванию риска"""
        return self.predictor.predict_batch(appointments)

    def get_patient_history(self, patient_id: str) -> PatientNoShowHistory:
        return self.aggregator.get_history(patient_id)

    def get_analytics(self) -> NoShowAnalytics:
        """Аналитика по всей истории, пересчитывается при каждом вызове"""
        records = self.source.get_all_appointments()
        return self.analytics.compute(records, self.clock())

    def update_outcome(self, appointment_id: str,
                       outcome: AppointmentOutcome) -> AppointmentRecord:
        """
        Обратная связь по исходу приема.
        Обновляет источник и сбрасывает кэш профиля пациента.
        """
        record = self.source.update_outcome(appointment_id, outcome)
        self.aggregator.invalidate(record.patient_id)
        self.logger.info(
            f"Исход записи {appointment_id} сохранен ({outcome.value}), "
            f"профиль пациента {record.patient_id} будет пересчитан"
        )
        return record

    def get_high_risk(self, predictions: Sequence[NoShowPrediction],
                      threshold: Optional[float] = None) -> List[NoShowPrediction]:
        """Прогнозы с оценкой не ниже порога (по умолчанию из настроек)"""
        if threshold is None:
            threshold = self.high_risk_threshold
        return self.predictor.filter_high_risk(predictions, threshold)
