"""
Вычисление факторов риска неявки для записи на прием
"""

from datetime import date
from typing import List, Optional

from clinic_noshow.services.no_show_prediction import policy
from clinic_noshow.services.no_show_prediction.schemas import (
    AppointmentRecord, PatientNoShowHistory, RiskFactor, RiskFactorType
)


def _percent(rate: float) -> str:
    return f"{rate * 100:.1f}%"


class FactorEvaluator:
    """
    Набор независимых правил. Порядок факторов в результате фиксирован:
    historical_pattern, recent_no_show, advance_booking, day_of_week,
    time_slot, seasonal_pattern, appointment_type.
    Правила без данных (день недели, месяц) в результат не попадают.
    """

    def evaluate(self, appointment: AppointmentRecord, history: PatientNoShowHistory,
                 today: date) -> List[RiskFactor]:
        candidates = [
            self.historical_pattern(history),
            self.recent_no_show(history, today),
            self.advance_booking(appointment),
            self.day_of_week(appointment, history),
            self.time_slot(appointment, history),
            self.seasonal_pattern(appointment, history),
            self.appointment_type(appointment),
        ]
        return [factor for factor in candidates if factor is not None]

    @staticmethod
    def historical_pattern(history: PatientNoShowHistory) -> RiskFactor:
        rate = history.no_show_rate
        if rate == 0:
            impact = policy.HISTORY_ZERO_RATE_IMPACT
        else:
            impact = policy.step_below(rate, policy.HISTORY_RATE_STEPS, policy.HISTORY_MAX_IMPACT)
        return RiskFactor(
            factor=RiskFactorType.HISTORICAL_PATTERN,
            impact=impact,
            description=f"Доля неявок в истории: {_percent(rate)}"
        )

    @staticmethod
    def recent_no_show(history: PatientNoShowHistory, today: date) -> RiskFactor:
        if history.last_no_show is None:
            return RiskFactor(
                factor=RiskFactorType.RECENT_NO_SHOW,
                impact=policy.NO_PRIOR_NO_SHOW_IMPACT,
                description="Ранее неявок не было"
            )

        days_since = (today - history.last_no_show).days
        impact = policy.step_below(days_since, policy.RECENT_NO_SHOW_STEPS, policy.OLD_NO_SHOW_IMPACT)
        return RiskFactor(
            factor=RiskFactorType.RECENT_NO_SHOW,
            impact=impact,
            description=f"Последняя неявка: {history.last_no_show.isoformat()} (дней назад: {days_since})"
        )

    @staticmethod
    def advance_booking(appointment: AppointmentRecord) -> RiskFactor:
        days = policy.lead_time_days(appointment.scheduled_date, appointment.created_at)
        if days < 1:
            impact = policy.SAME_DAY_BOOKING_IMPACT
        elif days < policy.SHORT_NOTICE_DAYS:
            impact = policy.SHORT_NOTICE_IMPACT
        elif days > policy.FAR_BOOKING_DAYS:
            impact = policy.FAR_BOOKING_IMPACT
        else:
            impact = policy.OPTIMAL_BOOKING_IMPACT
        return RiskFactor(
            factor=RiskFactorType.ADVANCE_BOOKING,
            impact=impact,
            description=f"Запись сделана за {days} дн. до приема"
        )

    @staticmethod
    def day_of_week(appointment: AppointmentRecord,
                    history: PatientNoShowHistory) -> Optional[RiskFactor]:
        day = appointment.weekday
        rate = history.rate_for_weekday(day)
        if rate is None:
            return None
        impact = policy.step_above(
            rate, policy.DAY_OF_WEEK_STEPS,
            policy.DAY_OF_WEEK_LOW_RATE, policy.DAY_OF_WEEK_LOW_IMPACT
        )
        return RiskFactor(
            factor=RiskFactorType.DAY_OF_WEEK,
            impact=impact,
            description=f"{day.display_name}: неявок {_percent(rate)}"
        )

    @staticmethod
    def time_slot(appointment: AppointmentRecord, history: PatientNoShowHistory) -> RiskFactor:
        slot = appointment.time_slot
        preferred = history.preferred_time_slots
        if not preferred and policy.EMPTY_PREFERENCE_MATCHES_ANY_SLOT:
            in_preference = True
        else:
            in_preference = slot in preferred

        if in_preference:
            return RiskFactor(
                factor=RiskFactorType.TIME_SLOT,
                impact=policy.PREFERRED_SLOT_IMPACT,
                description=f"Предпочтительное время пациента ({slot.value})"
            )
        return RiskFactor(
            factor=RiskFactorType.TIME_SLOT,
            impact=policy.NON_PREFERRED_SLOT_IMPACT,
            description=f"Вне предпочтительного времени пациента ({slot.value})"
        )

    @staticmethod
    def seasonal_pattern(appointment: AppointmentRecord,
                         history: PatientNoShowHistory) -> Optional[RiskFactor]:
        month = appointment.month
        rate = history.rate_for_month(month)
        if rate is None:
            return None
        impact = policy.step_above(
            rate, policy.SEASONAL_STEPS,
            policy.SEASONAL_LOW_RATE, policy.SEASONAL_LOW_IMPACT
        )
        return RiskFactor(
            factor=RiskFactorType.SEASONAL_PATTERN,
            impact=impact,
            description=f"{month.display_name}: неявок {_percent(rate)}"
        )

    @staticmethod
    def appointment_type(appointment: AppointmentRecord) -> RiskFactor:
        appointment_type = appointment.appointment_type
        return RiskFactor(
            factor=RiskFactorType.APPOINTMENT_TYPE,
            impact=policy.APPOINTMENT_TYPE_IMPACT.get(appointment_type, 0),
            description=f"Тип приема: {appointment_type.display_name}"
        )
