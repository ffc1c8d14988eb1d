"""
Калибровочные константы модели неявок

Все значения эвристические и не получены обучением на размеченных данных.
Менять их можно только вместе с новой калибровкой.
"""

from typing import Sequence, Tuple

from clinic_noshow.services.no_show_prediction.schemas import AppointmentType

# Нейтральные значения по умолчанию
NEUTRAL_LEAD_TIME_DAYS = 7
NEUTRAL_NO_SHOW_RATE = 0.0

# Пустой набор предпочтительных слотов означает "предпочтений нет":
# любое время считается подходящим
EMPTY_PREFERENCE_MATCHES_ANY_SLOT = True

PREFERRED_SLOTS_LIMIT = 2

# Нормализация оценки: 50 + raw * 2, затем [0, 100]
SCORE_BASELINE = 50.0
SCORE_MULTIPLIER = 2.0
SCORE_MIN = 0.0
SCORE_MAX = 100.0

# Уверенность
CONFIDENCE_BASE = 50.0
CONFIDENCE_HISTORY_TIERS: Tuple[Tuple[int, float], ...] = (
    (10, 20.0),
    (5, 10.0),
    (2, 5.0),
)
CONFIDENCE_PER_FACTOR = 3.0
CONFIDENCE_FACTOR_CAP = 15.0
CONFIDENCE_MAX = 95.0

# Ступенчатые таблицы (порог, вклад): первый подходящий порог побеждает
HISTORY_RATE_STEPS: Tuple[Tuple[float, int], ...] = (
    (0.1, -2),
    (0.2, 0),
    (0.3, 3),
    (0.5, 6),
)
HISTORY_ZERO_RATE_IMPACT = -5
HISTORY_MAX_IMPACT = 10

RECENT_NO_SHOW_STEPS: Tuple[Tuple[int, int], ...] = (
    (7, 8),
    (30, 5),
    (90, 2),
)
NO_PRIOR_NO_SHOW_IMPACT = -2
OLD_NO_SHOW_IMPACT = 0

SAME_DAY_BOOKING_IMPACT = 8
SHORT_NOTICE_DAYS = 3
SHORT_NOTICE_IMPACT = 4
FAR_BOOKING_DAYS = 30
FAR_BOOKING_IMPACT = 3
OPTIMAL_BOOKING_IMPACT = -1

# (порог "больше чем", вклад) и нижний порог
DAY_OF_WEEK_STEPS: Tuple[Tuple[float, int], ...] = ((0.3, 4), (0.2, 2))
DAY_OF_WEEK_LOW_RATE = 0.1
DAY_OF_WEEK_LOW_IMPACT = -2

SEASONAL_STEPS: Tuple[Tuple[float, int], ...] = ((0.3, 3), (0.2, 1))
SEASONAL_LOW_RATE = 0.1
SEASONAL_LOW_IMPACT = -1

PREFERRED_SLOT_IMPACT = -2
NON_PREFERRED_SLOT_IMPACT = 3

APPOINTMENT_TYPE_IMPACT = {
    AppointmentType.CONSULTATION: 2,
    AppointmentType.FOLLOW_UP: -1,
    AppointmentType.EVALUATION: 1,
    AppointmentType.TREATMENT: 0,
}

# Пороги рекомендаций
CHRONIC_PATTERN_IMPACT = 5
LAST_MINUTE_IMPACT = 5
ALTERNATIVE_SLOT_IMPACT = 2


def lead_time_days(scheduled, created_at) -> int:
    """
    Заблаговременность записи в целых днях.
    Отсутствующее или более позднее время создания дает нейтральные 7 дней.
    """
    if created_at is None:
        return NEUTRAL_LEAD_TIME_DAYS
    days = (scheduled - created_at.date()).days
    if days < 0:
        return NEUTRAL_LEAD_TIME_DAYS
    return days


def safe_rate(part: int, total: int) -> float:
    """Доля с защитой от пустого знаменателя"""
    if total <= 0:
        return NEUTRAL_NO_SHOW_RATE
    return min(1.0, max(0.0, part / total))


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def step_below(value: float, steps: Sequence[Tuple[float, int]], default: int) -> int:
    """Вклад для первого порога, который строго больше значения"""
    for threshold, impact in steps:
        if value < threshold:
            return impact
    return default


def step_above(value: float, steps: Sequence[Tuple[float, int]],
               low_threshold: float, low_impact: int) -> int:
    """Вклад для первого порога, который значение строго превышает"""
    for threshold, impact in steps:
        if value > threshold:
            return impact
    if value < low_threshold:
        return low_impact
    return 0


def history_tier_bonus(total_appointments: int) -> float:
    for minimum, bonus in CONFIDENCE_HISTORY_TIERS:
        if total_appointments >= minimum:
            return bonus
    return 0.0
