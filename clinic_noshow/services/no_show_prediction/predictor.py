"""
Предиктор неявок пациентов
Конвейер: профиль пациента -> факторы -> оценка -> рекомендации
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError

from clinic_noshow.exceptions.base_exception import (
    BaseAppException, PredictionException, ValidationException
)
from clinic_noshow.services.monitoring.metrics import (
    record_batch_failure, record_prediction, track_prediction_duration
)
from clinic_noshow.services.no_show_prediction import policy
from clinic_noshow.services.no_show_prediction.factors import FactorEvaluator
from clinic_noshow.services.no_show_prediction.history import HistoryAggregator
from clinic_noshow.services.no_show_prediction.risk import RecommendationGenerator, RiskScorer
from clinic_noshow.services.no_show_prediction.schemas import (
    AppointmentRecord, BatchPredictionItem, BatchPredictionResponse,
    NoShowPrediction, PatientNoShowHistory
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NoShowPredictor:
    """
    Правиловый предиктор неявок.
    Для каждой записи вычисление чистое; общий изменяемый ресурс
    только кэш профилей внутри HistoryAggregator.
    """

    def __init__(self, aggregator: HistoryAggregator,
                 evaluator: Optional[FactorEvaluator] = None,
                 scorer: Optional[RiskScorer] = None,
                 recommender: Optional[RecommendationGenerator] = None,
                 clock: Callable[[], datetime] = utc_now,
                 max_workers: int = 4):
        """
        Инициализация предиктора

        Args:
            aggregator: Источник профилей пациентов
            evaluator: Правила факторов риска
            scorer: Нормализация оценки и уровни риска
            recommender: Генератор рекомендаций
            clock: Текущее время (подменяется в тестах)
            max_workers: Размер пула потоков для пакетного прогноза
        """
        self.aggregator = aggregator
        self.evaluator = evaluator or FactorEvaluator()
        self.scorer = scorer or RiskScorer()
        self.recommender = recommender or RecommendationGenerator()
        self.clock = clock
        self.max_workers = max(1, max_workers)
        self.logger = logging.getLogger(__name__)

    def predict(self, appointment: AppointmentRecord) -> NoShowPrediction:
        """
        Прогноз неявки для одной записи

        Raises:
            PatientNotFoundException: история пациента недоступна
            PredictionException: сбой расчета по готовому профилю
        """
        history = self.aggregator.get_history(appointment.patient_id)
        return self._score(appointment, history)

    @track_prediction_duration
    def _score(self, appointment: AppointmentRecord,
               history: PatientNoShowHistory) -> NoShowPrediction:
        try:
            prediction = self.predict_with_history(appointment, history)
        except (ValueError, ArithmeticError) as e:
            # ValidationError pydantic - тоже ValueError
            raise PredictionException(
                f"Не удалось рассчитать прогноз для записи {appointment.appointment_id}",
                {"appointment_id": appointment.appointment_id, "error": str(e)}
            ) from e

        record_prediction(prediction.risk_level.value)
        self.logger.info(
            f"Прогноз для записи {appointment.appointment_id}: "
            f"{prediction.risk_score:.1f} ({prediction.risk_level.value})"
        )
        return prediction

    def predict_with_history(self, appointment: AppointmentRecord,
                             history: PatientNoShowHistory,
                             now: Optional[datetime] = None) -> NoShowPrediction:
        """Прогноз по готовому профилю пациента без обращения к кэшу"""
        now = now or self.clock()
        factors = self.evaluator.evaluate(appointment, history, now.date())

        risk_score = self.scorer.score(factors)
        risk_level = self.scorer.assess_risk(risk_score)
        recommendations = self.recommender.generate(factors, risk_level)
        confidence = self.scorer.confidence(history.total_appointments, len(factors))

        return NoShowPrediction(
            appointment_id=appointment.appointment_id,
            patient_id=appointment.patient_id,
            risk_score=policy.clamp(risk_score, policy.SCORE_MIN, policy.SCORE_MAX),
            risk_level=risk_level,
            factors=factors,
            recommendations=recommendations,
            confidence=policy.clamp(confidence, 0.0, policy.CONFIDENCE_MAX),
            predicted_at=now
        )

    def predict_batch(self, appointments: Sequence[Union[AppointmentRecord, Any]]) -> BatchPredictionResponse:
        """
        Пакетный прогноз. Ошибка по одной записи не прерывает пакет.
        Успешные прогнозы отсортированы по убыванию оценки
        (устойчиво: при равных оценках сохраняется входной порядок).

        Источник истории (сессия SQLAlchemy) не потокобезопасен, поэтому
        записи разбираются и профили пациентов читаются в вызывающем потоке;
        в пул уходит только расчет по готовым профилям.

        Raises:
            ValidationException: вход не является списком
        """
        if not isinstance(appointments, (list, tuple)):
            raise ValidationException(
                "Пакет должен быть списком записей на прием",
                {"received_type": type(appointments).__name__}
            )

        start_time = time.time()
        self.logger.info(f"Начало batch-прогнозирования для {len(appointments)} записей")

        parsed = [self._parse_item(raw) for raw in appointments]
        histories = self._resolve_histories(
            item for item in parsed if isinstance(item, AppointmentRecord)
        )

        if parsed:
            workers = min(self.max_workers, len(parsed))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                items = list(executor.map(lambda item: self._predict_item(item, histories), parsed))
        else:
            items = []

        successes = [item for item in items if item.success]
        failures = [item for item in items if not item.success]
        successes.sort(key=lambda item: item.prediction.risk_score, reverse=True)

        processing_time = time.time() - start_time
        self.logger.info(
            f"Batch-прогнозирование завершено за {processing_time:.3f} сек: "
            f"успешно {len(successes)}, ошибок {len(failures)}"
        )

        return BatchPredictionResponse(
            predictions=[item.prediction for item in successes],
            items=successes + failures,
            total_processed=len(items),
            successful_predictions=len(successes),
            failed_predictions=len(failures),
            processing_time=processing_time
        )

    def _parse_item(self, raw: Any) -> Union[AppointmentRecord, BatchPredictionItem]:
        if isinstance(raw, AppointmentRecord):
            return raw
        try:
            return AppointmentRecord.model_validate(raw)
        except ValidationError as e:
            return self._failure(self._extract_id(raw), e)

    def _resolve_histories(self, appointments: Iterable[AppointmentRecord]
                           ) -> Dict[str, Union[PatientNoShowHistory, Exception]]:
        """Профиль каждого пациента пакета, по одному обращению к источнику"""
        histories: Dict[str, Union[PatientNoShowHistory, Exception]] = {}
        for appointment in appointments:
            patient_id = appointment.patient_id
            if patient_id in histories:
                continue
            try:
                histories[patient_id] = self.aggregator.get_history(patient_id)
            except Exception as e:
                # Ошибка попадет в результат каждой записи этого пациента
                histories[patient_id] = e
        return histories

    def _predict_item(self, item: Union[AppointmentRecord, BatchPredictionItem],
                      histories: Dict[str, Union[PatientNoShowHistory, Exception]]) -> BatchPredictionItem:
        if isinstance(item, BatchPredictionItem):
            return item

        history = histories[item.patient_id]
        if isinstance(history, Exception):
            return self._failure(item.appointment_id, history)

        try:
            prediction = self._score(item, history)
        except Exception as e:
            return self._failure(item.appointment_id, e)
        return BatchPredictionItem(
            appointment_id=item.appointment_id,
            success=True,
            prediction=prediction
        )

    def _failure(self, appointment_id: Optional[str], error: Exception) -> BatchPredictionItem:
        record_batch_failure()
        if isinstance(error, ValidationError) or (
                isinstance(error, BaseAppException) and error.status_code < 500):
            self.logger.warning(f"Ошибка прогнозирования для записи {appointment_id}: {error}")
        else:
            self.logger.error(
                f"Непредвиденная ошибка прогнозирования для записи {appointment_id}: {error}",
                exc_info=error
            )

        if isinstance(error, BaseAppException):
            message = error.message
        elif isinstance(error, ValidationError):
            message = str(error)
        else:
            message = f"{type(error).__name__}: {error}"
        return BatchPredictionItem(appointment_id=appointment_id, success=False, error=message)

    @staticmethod
    def _extract_id(raw: Any) -> Optional[str]:
        if isinstance(raw, AppointmentRecord):
            return raw.appointment_id
        if isinstance(raw, dict) and raw.get("appointment_id") is not None:
            return str(raw["appointment_id"])
        return None

    def filter_high_risk(self, predictions: Sequence[NoShowPrediction],
                         threshold: float) -> List[NoShowPrediction]:
        """Прогнозы с оценкой не ниже порога, по убыванию оценки"""
        selected = [p for p in predictions if p.risk_score >= threshold]
        return sorted(selected, key=lambda p: p.risk_score, reverse=True)
