"""
Источники данных о приемах для модуля прогнозирования неявок
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from clinic_noshow.exceptions.base_exception import (
    AppointmentNotFoundException, PatientNotFoundException
)
from clinic_noshow.services.no_show_prediction.schemas import (
    AppointmentRecord, AppointmentOutcome
)


class AppointmentSource(ABC):
    """Абстрактный источник записей на прием"""

    @abstractmethod
    def get_patient_appointments(self, patient_id: str) -> List[AppointmentRecord]:
        """
        История пациента (записи с известным исходом).

        Raises:
            PatientNotFoundException: пациент неизвестен источнику
        """
        pass

    @abstractmethod
    def get_all_appointments(self) -> List[AppointmentRecord]:
        """Вся история с известными исходами (для аналитики)"""
        pass

    @abstractmethod
    def get_appointment(self, appointment_id: str) -> AppointmentRecord:
        """
        Получение записи по ID.

        Raises:
            AppointmentNotFoundException: запись не найдена
        """
        pass

    @abstractmethod
    def update_outcome(self, appointment_id: str,
                       outcome: AppointmentOutcome) -> AppointmentRecord:
        """Сохранение фактического исхода; возвращает обновленную запись"""
        pass


class InMemoryAppointmentSource(AppointmentSource):
    """
    Источник записей в памяти.

    Если передан known_patient_ids, запросы по другим пациентам
    завершаются PatientNotFoundException; иначе неизвестный пациент
    считается пациентом без истории.
    """

    def __init__(self, records: Iterable[AppointmentRecord] = (),
                 known_patient_ids: Optional[Iterable[str]] = None):
        self._records: Dict[str, AppointmentRecord] = {}
        for record in records:
            self._records[record.appointment_id] = record
        self._known_patients = set(known_patient_ids) if known_patient_ids is not None else None
        self.logger = logging.getLogger(__name__)

    def add(self, record: AppointmentRecord) -> None:
        self._records[record.appointment_id] = record
        if self._known_patients is not None:
            self._known_patients.add(record.patient_id)

    def get_patient_appointments(self, patient_id: str) -> List[AppointmentRecord]:
        if self._known_patients is not None and patient_id not in self._known_patients:
            raise PatientNotFoundException(patient_id)
        return [
            record for record in self._records.values()
            if record.patient_id == patient_id and record.outcome is not None
        ]

    def get_all_appointments(self) -> List[AppointmentRecord]:
        return [record for record in self._records.values() if record.outcome is not None]

    def get_appointment(self, appointment_id: str) -> AppointmentRecord:
        record = self._records.get(appointment_id)
        if record is None:
            raise AppointmentNotFoundException(appointment_id)
        return record

    def update_outcome(self, appointment_id: str,
                       outcome: AppointmentOutcome) -> AppointmentRecord:
        record = self.get_appointment(appointment_id)
        updated = record.model_copy(update={"outcome": outcome})
        self._records[appointment_id] = updated
        self.logger.info(f"Исход записи {appointment_id} обновлен: {outcome.value}")
        return updated
