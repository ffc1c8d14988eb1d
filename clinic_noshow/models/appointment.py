from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from clinic_noshow.services.no_show_prediction.schemas import (
    AppointmentRecord, AppointmentType, AppointmentOutcome
)


class AppointmentRecordTable(SQLModel, table=True):
    """
    Запись на прием с фактическим исходом.
    Используется как источник истории для прогнозирования неявок.
    """
    __tablename__ = "appointment_records"

    appointment_id: str = Field(primary_key=True, description="ID записи")
    patient_id: str = Field(index=True, description="ID пациента")
    therapist_id: str = Field(description="ID специалиста")
    scheduled_date: date = Field(description="Дата приема")
    scheduled_time: time = Field(description="Время приема")
    duration: int = Field(default=60, description="Длительность, минуты")
    appointment_type: str = Field(description="Тип приема")
    created_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True), description="Время создания записи (UTC)"
    )
    outcome: Optional[str] = Field(default=None, index=True, description="Фактический исход")
    updated_at: Optional[datetime] = Field(
        default=None, sa_type=DateTime(timezone=True), description="Время обновления исхода (UTC)"
    )

    def to_record(self) -> AppointmentRecord:
        return AppointmentRecord(
            appointment_id=self.appointment_id,
            patient_id=self.patient_id,
            therapist_id=self.therapist_id,
            scheduled_date=self.scheduled_date,
            scheduled_time=self.scheduled_time,
            duration=self.duration,
            appointment_type=AppointmentType(self.appointment_type),
            created_at=as_utc(self.created_at),
            outcome=AppointmentOutcome(self.outcome) if self.outcome else None,
        )

    @classmethod
    def from_record(cls, record: AppointmentRecord) -> "AppointmentRecordTable":
        return cls(
            appointment_id=record.appointment_id,
            patient_id=record.patient_id,
            therapist_id=record.therapist_id,
            scheduled_date=record.scheduled_date,
            scheduled_time=record.scheduled_time,
            duration=record.duration,
            appointment_type=record.appointment_type.value,
            created_at=as_utc(record.created_at),
            outcome=record.outcome.value if record.outcome else None,
        )


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Время без часового пояса считается UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
