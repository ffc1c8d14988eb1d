"""
Модуль прогнозирования неявок пациентов
Правиловая модель с разложением риска на интерпретируемые факторы
"""

from .schemas import (
    AppointmentType, AppointmentOutcome, RiskLevel, RiskFactorType, TimeSlot, Weekday, Month,
    AppointmentRecord, PatientNoShowHistory, RiskFactor, NoShowPrediction, NoShowAnalytics,
    BatchPredictionItem, BatchPredictionRequest, BatchPredictionResponse
)
from .database_connector import AppointmentSource, InMemoryAppointmentSource
from .history import HistoryAggregator, PatientHistoryCache
from .factors import FactorEvaluator
from .risk import RiskScorer, RiskThresholds, RecommendationGenerator
from .predictor import NoShowPredictor
from .analytics import AnalyticsAggregator

__all__ = [
    # Схемы
    'AppointmentType', 'AppointmentOutcome', 'RiskLevel', 'RiskFactorType',
    'TimeSlot', 'Weekday', 'Month',
    'AppointmentRecord', 'PatientNoShowHistory', 'RiskFactor', 'NoShowPrediction',
    'NoShowAnalytics', 'BatchPredictionItem', 'BatchPredictionRequest',
    'BatchPredictionResponse',

    # Источники данных
    'AppointmentSource', 'InMemoryAppointmentSource',

    # История
    'HistoryAggregator', 'PatientHistoryCache',

    # Факторы
    'FactorEvaluator',

    # Риски
    'RiskScorer', 'RiskThresholds', 'RecommendationGenerator',

    # Прогноз и аналитика
    'NoShowPredictor', 'AnalyticsAggregator',
]
