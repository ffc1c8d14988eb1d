"""
Роутер для прогнозирования неявок пациентов
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlmodel import Session

from clinic_noshow.database.database import get_session, health_check as database_health_check
from clinic_noshow.models.base import BaseResponse
from clinic_noshow.services.monitoring.metrics import get_metrics
from clinic_noshow.services.no_show_prediction.schemas import (
    AppointmentRecord, BatchPredictionRequest, BatchPredictionResponse,
    NoShowAnalytics, NoShowPrediction, OutcomeUpdateRequest, PatientNoShowHistory
)
from clinic_noshow.services.no_show_prediction.sqlmodel_connector import SQLModelAppointmentSource
from clinic_noshow.services.no_show_prediction_service import NoShowPredictionService

router = APIRouter(prefix="/no-show-prediction", tags=["no-show-prediction"])


def get_prediction_service(request: Request,
                           session: Session = Depends(get_session)) -> NoShowPredictionService:
    """Сервис прогнозирования с общим для приложения кэшем профилей"""
    return NoShowPredictionService(
        SQLModelAppointmentSource(session),
        cache=request.app.state.history_cache
    )


@router.post("/predict", response_model=NoShowPrediction)
async def predict_no_show(
    appointment: AppointmentRecord,
    prediction_service: NoShowPredictionService = Depends(get_prediction_service)
) -> NoShowPrediction:
    """
    Прогноз неявки для переданной записи

    Args:
        appointment: Запись на прием (исход неизвестен)
        prediction_service: Сервис прогнозирования

    Returns:
        Прогноз с факторами и рекомендациями
    """
    return prediction_service.predict(appointment)


@router.post("/predict/{appointment_id}", response_model=NoShowPrediction)
async def predict_no_show_by_id(
    appointment_id: str,
    prediction_service: NoShowPredictionService = Depends(get_prediction_service)
) -> NoShowPrediction:
    """Прогноз неявки для записи, сохраненной в базе"""
    return prediction_service.predict_by_id(appointment_id)


@router.post("/batch-predict", response_model=BatchPredictionResponse)
async def batch_predict_no_show(
    request: BatchPredictionRequest,
    prediction_service: NoShowPredictionService = Depends(get_prediction_service)
) -> BatchPredictionResponse:
    """Массовое прогнозирование неявок, результаты по убыванию риска"""
    return prediction_service.batch_predict(request.appointments)


@router.post("/high-risk", response_model=BaseResponse)
async def get_high_risk_appointments(
    request: BatchPredictionRequest,
    threshold: Optional[float] = Query(default=None, ge=0, le=100, description="Порог оценки риска"),
    prediction_service: NoShowPredictionService = Depends(get_prediction_service)
) -> BaseResponse:
    """Прогноз для пакета и отбор записей с оценкой не ниже порога"""
    batch = prediction_service.batch_predict(request.appointments)
    selected = prediction_service.get_high_risk(batch.predictions, threshold)
    return BaseResponse(
        success=True,
        message=f"Найдено записей с высоким риском: {len(selected)}",
        data=[prediction.model_dump(mode="json") for prediction in selected]
    )


@router.get("/patients/{patient_id}/history", response_model=PatientNoShowHistory)
async def get_patient_history(
    patient_id: str,
    prediction_service: NoShowPredictionService = Depends(get_prediction_service)
) -> PatientNoShowHistory:
    """Поведенческий профиль пациента"""
    return prediction_service.get_patient_history(patient_id)


@router.get("/analytics", response_model=NoShowAnalytics)
async def get_no_show_analytics(
    prediction_service: NoShowPredictionService = Depends(get_prediction_service)
) -> NoShowAnalytics:
    """Сводная аналитика неявок по всей истории"""
    return prediction_service.get_analytics()


@router.put("/appointments/{appointment_id}/outcome", response_model=BaseResponse)
async def update_appointment_outcome(
    appointment_id: str,
    update: OutcomeUpdateRequest,
    prediction_service: NoShowPredictionService = Depends(get_prediction_service)
) -> BaseResponse:
    """
    Сохранение фактического исхода приема

    Args:
        appointment_id: ID записи
        update: Новый исход
        prediction_service: Сервис прогнозирования

    Returns:
        Обновленная запись
    """
    record = prediction_service.update_outcome(appointment_id, update.outcome)
    return BaseResponse(
        success=True,
        message=f"Исход записи {appointment_id} сохранен",
        data=record.model_dump(mode="json")
    )


@router.get("/health", response_model=BaseResponse)
async def health_check() -> BaseResponse:
    """Проверка состояния сервиса прогнозирования"""
    database_ok = database_health_check()
    return BaseResponse(
        success=database_ok,
        message="Сервис прогнозирования неявок работает" if database_ok else "База данных недоступна",
        data={
            "service_status": "healthy" if database_ok else "degraded",
            "database": database_ok
        }
    )


@router.get("/metrics")
async def metrics() -> Response:
    """Метрики в формате Prometheus"""
    return Response(content=get_metrics(), media_type="text/plain; version=0.0.4")
