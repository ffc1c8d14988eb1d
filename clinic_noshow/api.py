from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinic_noshow.database.config import get_settings
from clinic_noshow.database.database import init_database, close_database
from clinic_noshow.exceptions.base_exception import register_exception_handlers
from clinic_noshow.routes.no_show_prediction import router as no_show_prediction_router
from clinic_noshow.services.logging.logging import configure_logging, get_logger
from clinic_noshow.services.no_show_prediction.history import PatientHistoryCache

logger = get_logger(logger_name=__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Создание таблиц при старте и закрытие соединений при остановке"""
    init_database()
    logger.info("No-show prediction service started")
    yield
    close_database()
    logger.info("No-show prediction service stopped")


def create_application(init_db: bool = True) -> FastAPI:
    """
    Создание и конфигурация FastAPI приложения.

    Возвращает:
        FastAPI: Настроенный экземпляр приложения
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Clinic No-Show API",
        description="No-show risk prediction for clinic appointments",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan if init_db else None
    )

    # Настройка CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Кэш профилей пациентов живет столько же, сколько приложение
    app.state.history_cache = PatientHistoryCache()

    register_exception_handlers(app)
    app.include_router(no_show_prediction_router, prefix="/api")

    return app
