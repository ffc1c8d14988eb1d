"""
Схемы данных для модуля прогнозирования неявок пациентов
"""

from datetime import date, datetime, time
from enum import Enum, IntEnum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AppointmentType(str, Enum):
    """Типы приема"""
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow_up"
    EVALUATION = "evaluation"
    TREATMENT = "treatment"

    @property
    def display_name(self) -> str:
        return _APPOINTMENT_TYPE_NAMES[self]


_APPOINTMENT_TYPE_NAMES = {
    AppointmentType.CONSULTATION: "Консультация",
    AppointmentType.FOLLOW_UP: "Повторный прием",
    AppointmentType.EVALUATION: "Обследование",
    AppointmentType.TREATMENT: "Лечение",
}


class AppointmentOutcome(str, Enum):
    """Фактический исход приема"""
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"


class RiskLevel(str, Enum):
    """Уровни риска неявки"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskFactorType(str, Enum):
    """Закрытый словарь факторов риска (в порядке вычисления)"""
    HISTORICAL_PATTERN = "historical_pattern"
    RECENT_NO_SHOW = "recent_no_show"
    ADVANCE_BOOKING = "advance_booking"
    DAY_OF_WEEK = "day_of_week"
    TIME_SLOT = "time_slot"
    SEASONAL_PATTERN = "seasonal_pattern"
    APPOINTMENT_TYPE = "appointment_type"


class TimeSlot(str, Enum):
    """Категории времени суток"""
    EARLY_MORNING = "early_morning"
    MORNING = "morning"
    LUNCH_TIME = "lunch_time"
    AFTERNOON = "afternoon"
    EVENING = "evening"

    @classmethod
    def from_time(cls, value: time) -> "TimeSlot":
        """Категория по часу приема"""
        hour = value.hour
        if hour < 9:
            return cls.EARLY_MORNING
        elif hour < 12:
            return cls.MORNING
        elif hour < 14:
            return cls.LUNCH_TIME
        elif hour < 17:
            return cls.AFTERNOON
        return cls.EVENING


class Weekday(IntEnum):
    """День недели, 0 = воскресенье"""
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_date(cls, value: date) -> "Weekday":
        # date.weekday() считает от понедельника
        return cls((value.weekday() + 1) % 7)

    @property
    def display_name(self) -> str:
        return _WEEKDAY_NAMES[self]


class Month(IntEnum):
    """Календарный месяц, 0 = январь"""
    JANUARY = 0
    FEBRUARY = 1
    MARCH = 2
    APRIL = 3
    MAY = 4
    JUNE = 5
    JULY = 6
    AUGUST = 7
    SEPTEMBER = 8
    OCTOBER = 9
    NOVEMBER = 10
    DECEMBER = 11

    @classmethod
    def from_date(cls, value: date) -> "Month":
        return cls(value.month - 1)

    @property
    def display_name(self) -> str:
        return _MONTH_NAMES[self]


_WEEKDAY_NAMES = {
    Weekday.SUNDAY: "Воскресенье",
    Weekday.MONDAY: "Понедельник",
    Weekday.TUESDAY: "Вторник",
    Weekday.WEDNESDAY: "Среда",
    Weekday.THURSDAY: "Четверг",
    Weekday.FRIDAY: "Пятница",
    Weekday.SATURDAY: "Суббота",
}

_MONTH_NAMES = {
    Month.JANUARY: "Январь",
    Month.FEBRUARY: "Февраль",
    Month.MARCH: "Март",
    Month.APRIL: "Апрель",
    Month.MAY: "Май",
    Month.JUNE: "Июнь",
    Month.JULY: "Июль",
    Month.AUGUST: "Август",
    Month.SEPTEMBER: "Сентябрь",
    Month.OCTOBER: "Октябрь",
    Month.NOVEMBER: "Ноябрь",
    Month.DECEMBER: "Декабрь",
}


class AppointmentRecord(BaseModel):
    """Запись на прием (неизменяемая)"""
    model_config = ConfigDict(frozen=True)

    appointment_id: str = Field(..., description="ID записи")
    patient_id: str = Field(..., description="ID пациента")
    therapist_id: str = Field(..., description="ID специалиста")
    scheduled_date: date = Field(..., description="Дата приема")
    scheduled_time: time = Field(..., description="Время приема")
    duration: int = Field(default=60, ge=0, description="Длительность, минуты")
    appointment_type: AppointmentType = Field(..., description="Тип приема")
    created_at: Optional[datetime] = Field(default=None, description="Время создания записи")
    outcome: Optional[AppointmentOutcome] = Field(default=None, description="Фактический исход")

    @property
    def time_slot(self) -> TimeSlot:
        return TimeSlot.from_time(self.scheduled_time)

    @property
    def weekday(self) -> Weekday:
        return Weekday.from_date(self.scheduled_date)

    @property
    def month(self) -> Month:
        return Month.from_date(self.scheduled_date)

    @property
    def is_no_show(self) -> bool:
        return self.outcome == AppointmentOutcome.NO_SHOW


class SeasonalPattern(BaseModel):
    """Доля неявок по месяцу"""
    month: Month
    no_show_rate: float = Field(..., gt=0, le=1)


class DayOfWeekPattern(BaseModel):
    """Доля неявок по дню недели"""
    day_of_week: Weekday
    no_show_rate: float = Field(..., gt=0, le=1)


class PatientNoShowHistory(BaseModel):
    """Поведенческий профиль пациента"""
    patient_id: str = Field(..., description="ID пациента")
    total_appointments: int = Field(..., ge=0, description="Всего приемов")
    no_show_count: int = Field(..., ge=0, description="Количество неявок")
    no_show_rate: float = Field(..., ge=0, le=1, description="Доля неявок")
    last_no_show: Optional[date] = Field(default=None, description="Дата последней неявки")
    average_advance_booking: float = Field(..., description="Средняя заблаговременность записи (дни)")
    preferred_time_slots: List[TimeSlot] = Field(default_factory=list, max_length=2)
    seasonal_patterns: List[SeasonalPattern] = Field(default_factory=list)
    day_of_week_patterns: List[DayOfWeekPattern] = Field(default_factory=list)

    def rate_for_month(self, month: Month) -> Optional[float]:
        """Доля неявок за месяц; None - неявок в этом месяце не наблюдалось"""
        for pattern in self.seasonal_patterns:
            if pattern.month == month:
                return pattern.no_show_rate
        return None

    def rate_for_weekday(self, day: Weekday) -> Optional[float]:
        """Доля неявок по дню недели; None - неявок в этот день не наблюдалось"""
        for pattern in self.day_of_week_patterns:
            if pattern.day_of_week == day:
                return pattern.no_show_rate
        return None


class RiskFactor(BaseModel):
    """Один фактор, влияющий на прогноз"""
    model_config = ConfigDict(frozen=True)

    factor: RiskFactorType = Field(..., description="Идентификатор фактора")
    impact: float = Field(..., ge=-10, le=10, description="Вклад в риск")
    description: str = Field(..., description="Обоснование")


class NoShowPrediction(BaseModel):
    """Результат прогнозирования неявки"""
    appointment_id: str = Field(..., description="ID записи")
    patient_id: str = Field(..., description="ID пациента")
    risk_score: float = Field(..., ge=0, le=100, description="Оценка риска 0-100")
    risk_level: RiskLevel = Field(..., description="Уровень риска")
    factors: List[RiskFactor] = Field(default_factory=list)
    recommendations: List[str] = Field(..., min_length=1)
    confidence: float = Field(..., ge=0, le=95, description="Уверенность 0-95")
    predicted_at: datetime = Field(..., description="Время прогноза")

    def factor(self, factor_type: RiskFactorType) -> Optional[RiskFactor]:
        for item in self.factors:
            if item.factor == factor_type:
                return item
        return None


class BatchPredictionItem(BaseModel):
    """Результат прогноза по одной записи в пакете"""
    appointment_id: Optional[str] = None
    success: bool
    prediction: Optional[NoShowPrediction] = None
    error: Optional[str] = None


class BatchPredictionRequest(BaseModel):
    """Запрос на массовое прогнозирование"""
    appointments: List[AppointmentRecord] = Field(..., description="Записи для прогноза")

    @field_validator('appointments')
    @classmethod
    def validate_appointments(cls, v):
        if len(v) > 500:
            raise ValueError('Максимум 500 записей за раз')
        return v


class BatchPredictionResponse(BaseModel):
    """Ответ на массовое прогнозирование"""
    predictions: List[NoShowPrediction] = Field(..., description="Успешные прогнозы по убыванию риска")
    items: List[BatchPredictionItem] = Field(..., description="Результаты по каждой записи")
    total_processed: int = Field(..., ge=0)
    successful_predictions: int = Field(..., ge=0)
    failed_predictions: int = Field(..., ge=0)
    processing_time: float = Field(..., ge=0, description="Время обработки в секундах")


class OutcomeUpdateRequest(BaseModel):
    """Обратная связь по исходу приема"""
    outcome: AppointmentOutcome


class MonthlyTrend(BaseModel):
    month: str = Field(..., description="Ключ месяца YYYY-MM")
    no_show_rate: float = Field(..., ge=0, le=1)
    total_appointments: int = Field(..., ge=0)


class TimeSlotStat(BaseModel):
    time_slot: TimeSlot
    no_show_rate: float = Field(..., ge=0, le=1)
    total_appointments: int = Field(..., ge=0)


class DayOfWeekStat(BaseModel):
    day_of_week: str
    no_show_rate: float = Field(..., ge=0, le=1)
    total_appointments: int = Field(..., ge=0)


class RiskDistribution(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0


class TopRiskFactor(BaseModel):
    factor: RiskFactorType
    frequency: int = Field(..., ge=0)
    average_impact: float
    weight: float = Field(..., description="frequency * average_impact")


class NoShowAnalytics(BaseModel):
    """Сводная статистика неявок по всей базе"""
    overall_no_show_rate: float = Field(..., ge=0, le=1)
    total_appointments: int = Field(default=0, ge=0)
    monthly_trends: List[MonthlyTrend] = Field(default_factory=list)
    time_slot_analysis: List[TimeSlotStat] = Field(default_factory=list)
    day_of_week_analysis: List[DayOfWeekStat] = Field(default_factory=list)
    risk_distribution: RiskDistribution = Field(default_factory=RiskDistribution)
    top_risk_factors: List[TopRiskFactor] = Field(default_factory=list)
