"""
Модуль оценки рисков неявки пациентов
Нормализация оценки, уровни риска, уверенность и рекомендации
"""

from typing import Dict, List, Optional, Sequence

from clinic_noshow.services.no_show_prediction import policy
from clinic_noshow.services.no_show_prediction.schemas import (
    RiskFactor, RiskFactorType, RiskLevel
)


class RiskThresholds:
    """Настраиваемые пороги уровней риска (нижняя граница включительно)"""

    # Пороги по умолчанию
    DEFAULT_MEDIUM_RISK = 40.0
    DEFAULT_HIGH_RISK = 60.0
    DEFAULT_CRITICAL_RISK = 80.0

    def __init__(self, medium_risk: float = DEFAULT_MEDIUM_RISK,
                 high_risk: float = DEFAULT_HIGH_RISK,
                 critical_risk: float = DEFAULT_CRITICAL_RISK):
        """
        Инициализация порогов риска

        Args:
            medium_risk: Нижняя граница среднего риска (0-100)
            high_risk: Нижняя граница высокого риска (0-100)
            critical_risk: Нижняя граница критического риска (0-100)
        """
        if not (0 <= medium_risk <= high_risk <= critical_risk <= 100):
            raise ValueError(
                "Пороги должны лежать в [0, 100] и удовлетворять medium <= high <= critical"
            )

        self.medium_risk = medium_risk
        self.high_risk = high_risk
        self.critical_risk = critical_risk


class RiskScorer:
    """Свертка факторов в оценку 0-100, уровень риска и уверенность"""

    def __init__(self, thresholds: Optional[RiskThresholds] = None):
        self.thresholds = thresholds or RiskThresholds()

    @staticmethod
    def raw_score(factors: Sequence[RiskFactor]) -> float:
        return sum(factor.impact for factor in factors)

    def score(self, factors: Sequence[RiskFactor]) -> float:
        """Нормализованная оценка: clamp(50 + raw * 2, 0, 100)"""
        normalized = policy.SCORE_BASELINE + self.raw_score(factors) * policy.SCORE_MULTIPLIER
        return policy.clamp(normalized, policy.SCORE_MIN, policy.SCORE_MAX)

    def assess_risk(self, risk_score: float) -> RiskLevel:
        """
        Определение уровня риска по нормализованной оценке

        Args:
            risk_score: Оценка риска (0-100)

        Returns:
            Уровень риска
        """
        risk_score = policy.clamp(risk_score, policy.SCORE_MIN, policy.SCORE_MAX)
        if risk_score >= self.thresholds.critical_risk:
            return RiskLevel.CRITICAL
        elif risk_score >= self.thresholds.high_risk:
            return RiskLevel.HIGH
        elif risk_score >= self.thresholds.medium_risk:
            return RiskLevel.MEDIUM
        else:
            return RiskLevel.LOW

    @staticmethod
    def confidence(total_appointments: int, factor_count: int) -> float:
        """Уверенность прогноза: объем истории плюс число факторов, не выше 95"""
        value = policy.CONFIDENCE_BASE
        value += policy.history_tier_bonus(total_appointments)
        value += min(factor_count * policy.CONFIDENCE_PER_FACTOR, policy.CONFIDENCE_FACTOR_CAP)
        return policy.clamp(value, 0.0, policy.CONFIDENCE_MAX)


# Тексты рекомендаций
HIGH_TOUCH_REMINDER = "send reminder via high-touch channel 24h prior"
CALL_TO_CONFIRM = "call to confirm attendance"
CONSIDER_RESCHEDULING = "consider rescheduling to a preferred slot"
SMS_REMINDER = "send SMS reminder"
PHONE_CONFIRMATION = "confirm by phone if needed"
CHRONIC_NO_SHOW_FLAG = "patient has a chronic no-show pattern - requires special attention"
LAST_MINUTE_FLAG = "last-minute booking - confirm the patient's interest"
ALTERNATIVE_SLOT = "offer an alternative time slot if available"
STANDARD_REMINDER = "send standard reminder"


class RecommendationGenerator:
    """
    Рекомендации по снижению риска неявки.
    Результат всегда непустой и без повторов.
    """

    def generate(self, factors: Sequence[RiskFactor], risk_level: RiskLevel) -> List[str]:
        recommendations: List[str] = []
        impacts = self._impacts(factors)

        if risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL):
            recommendations.extend([HIGH_TOUCH_REMINDER, CALL_TO_CONFIRM, CONSIDER_RESCHEDULING])

        if risk_level in (RiskLevel.MEDIUM, RiskLevel.HIGH):
            recommendations.extend([SMS_REMINDER, PHONE_CONFIRMATION])

        if impacts.get(RiskFactorType.HISTORICAL_PATTERN, 0) > policy.CHRONIC_PATTERN_IMPACT:
            recommendations.append(CHRONIC_NO_SHOW_FLAG)

        if impacts.get(RiskFactorType.ADVANCE_BOOKING, 0) > policy.LAST_MINUTE_IMPACT:
            recommendations.append(LAST_MINUTE_FLAG)

        if impacts.get(RiskFactorType.TIME_SLOT, 0) > policy.ALTERNATIVE_SLOT_IMPACT:
            recommendations.append(ALTERNATIVE_SLOT)

        if not recommendations:
            recommendations.append(STANDARD_REMINDER)

        # dict сохраняет порядок вставки
        return list(dict.fromkeys(recommendations))

    @staticmethod
    def _impacts(factors: Sequence[RiskFactor]) -> Dict[RiskFactorType, float]:
        """Вклад первого фактора каждого типа"""
        impacts: Dict[RiskFactorType, float] = {}
        for factor in factors:
            impacts.setdefault(factor.factor, factor.impact)
        return impacts
