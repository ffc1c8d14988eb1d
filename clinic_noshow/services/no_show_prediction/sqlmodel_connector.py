"""
Коннектор к таблице appointment_records через SQLModel
"""

import logging
from datetime import datetime, timezone
from typing import List

from sqlmodel import Session, col, select

from clinic_noshow.exceptions.base_exception import AppointmentNotFoundException
from clinic_noshow.models.appointment import AppointmentRecordTable
from clinic_noshow.services.no_show_prediction.database_connector import AppointmentSource
from clinic_noshow.services.no_show_prediction.schemas import (
    AppointmentRecord, AppointmentOutcome
)


class SQLModelAppointmentSource(AppointmentSource):
    """Источник записей на прием в реляционной базе"""

    def __init__(self, session: Session):
        self.session = session
        self.logger = logging.getLogger(__name__)

    def get_patient_appointments(self, patient_id: str) -> List[AppointmentRecord]:
        stmt = (
            select(AppointmentRecordTable)
            .where(AppointmentRecordTable.patient_id == patient_id)
            .where(col(AppointmentRecordTable.outcome).is_not(None))
            .order_by(AppointmentRecordTable.scheduled_date, AppointmentRecordTable.scheduled_time)
        )
        return [row.to_record() for row in self.session.exec(stmt).all()]

    def get_all_appointments(self) -> List[AppointmentRecord]:
        stmt = (
            select(AppointmentRecordTable)
            .where(col(AppointmentRecordTable.outcome).is_not(None))
            .order_by(AppointmentRecordTable.scheduled_date, AppointmentRecordTable.scheduled_time)
        )
        return [row.to_record() for row in self.session.exec(stmt).all()]

    def get_appointment(self, appointment_id: str) -> AppointmentRecord:
        row = self.session.get(AppointmentRecordTable, appointment_id)
        if row is None:
            raise AppointmentNotFoundException(appointment_id)
        return row.to_record()

    def save(self, record: AppointmentRecord) -> None:
        """Добавление или замена записи"""
        self.session.merge(AppointmentRecordTable.from_record(record))
        self.session.commit()

    def update_outcome(self, appointment_id: str,
                       outcome: AppointmentOutcome) -> AppointmentRecord:
        row = self.session.get(AppointmentRecordTable, appointment_id)
        if row is None:
            raise AppointmentNotFoundException(appointment_id)

        try:
            row.outcome = outcome.value
            row.updated_at = datetime.now(timezone.utc)
            self.session.add(row)
            self.session.commit()
            self.session.refresh(row)
        except Exception as e:
            self.logger.error(f"Ошибка сохранения исхода записи {appointment_id}: {e}")
            self.session.rollback()
            raise

        self.logger.info(f"Исход записи {appointment_id} обновлен: {outcome.value}")
        return row.to_record()
