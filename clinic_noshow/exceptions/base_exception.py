from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError
import logging

logger = logging.getLogger(__name__)

# Кастомные исключения
class BaseAppException(Exception):
    """Базовое исключение приложения"""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class ValidationException(BaseAppException):
    """Исключение валидации"""
    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status.HTTP_400_BAD_REQUEST, details)

class NotFoundException(BaseAppException):
    """Исключение "не найдено" """
    def __init__(self, message: str = "Ресурс не найден", details: dict = None):
        super().__init__(message, status.HTTP_404_NOT_FOUND, details)

class AppointmentNotFoundException(NotFoundException):
    """Запись на прием не найдена"""
    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__(
            f"Запись на прием {appointment_id} не найдена",
            {"appointment_id": appointment_id}
        )

class PatientNotFoundException(NotFoundException):
    """Пациент не найден в источнике данных"""
    def __init__(self, patient_id: str):
        self.patient_id = patient_id
        super().__init__(
            f"Пациент {patient_id} не найден",
            {"patient_id": patient_id}
        )

class PredictionException(BaseAppException):
    """Ошибка расчета прогноза"""
    def __init__(self, message: str = "Ошибка расчета прогноза", details: dict = None):
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR, details)

# Обработчики исключений
async def base_app_exception_handler(request: Request, exc: BaseAppException):
    """Обработчик базовых исключений приложения"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"Application error: {exc.message}", extra={
        "status_code": exc.status_code,
        "details": exc.details,
        "path": request.url.path
    })

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.message,
            "details": exc.details,
            "path": request.url.path
        }
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    """Обработчик HTTP исключений"""
    logger.warning(f"HTTP error: {exc.detail}", extra={
        "status_code": exc.status_code,
        "path": request.url.path
    })

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail,
            "path": request.url.path
        }
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Обработчик ошибок валидации"""
    logger.warning(f"Validation error: {exc.errors()}", extra={
        "path": request.url.path
    })

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": "Ошибка валидации данных",
            "details": jsonable_encoder(exc.errors()),
            "path": request.url.path
        }
    )

async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Обработчик ошибок SQLAlchemy"""
    logger.error(f"Database error: {str(exc)}", extra={
        "path": request.url.path
    })

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "message": "Ошибка базы данных",
            "path": request.url.path
        }
    )

def register_exception_handlers(app):
    """Регистрация обработчиков исключений"""
    app.add_exception_handler(BaseAppException, base_app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
