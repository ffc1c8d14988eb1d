from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest
import time
from functools import wraps
from typing import Callable, Any

# Создание реестра метрик
REGISTRY = CollectorRegistry()

# Метрики прогнозов неявок
PREDICTIONS_TOTAL = Counter(
    'noshow_predictions_total',
    'Количество выполненных прогнозов неявки',
    ['risk_level'],
    registry=REGISTRY
)

PREDICTION_DURATION = Histogram(
    'noshow_prediction_duration_seconds',
    'Время расчета одного прогноза',
    registry=REGISTRY
)

BATCH_FAILURES = Counter(
    'noshow_batch_failures_total',
    'Количество неудачных прогнозов в пакетах',
    registry=REGISTRY
)

HISTORY_CACHE_EVENTS = Counter(
    'noshow_history_cache_events_total',
    'События кэша истории пациентов',
    ['event'],
    registry=REGISTRY
)


def track_prediction_duration(func: Callable) -> Callable:
    """Декоратор для измерения времени прогноза"""
    @wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        start_time = time.time()
        try:
            return func(*args, **kwargs)
        finally:
            PREDICTION_DURATION.observe(time.time() - start_time)
    return wrapper


def record_prediction(risk_level: str) -> None:
    PREDICTIONS_TOTAL.labels(risk_level=risk_level).inc()


def record_batch_failure() -> None:
    BATCH_FAILURES.inc()


def record_cache_event(event: str) -> None:
    """event: hit, miss или invalidate"""
    HISTORY_CACHE_EVENTS.labels(event=event).inc()


def get_metrics() -> bytes:
    """Получение метрик в формате Prometheus"""
    return generate_latest(REGISTRY)
