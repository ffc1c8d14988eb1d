"""
Подключение к базе данных с историей приемов
"""

from typing import Generator, Optional
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session

from .config import get_settings

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Создание движка базы данных

    Для SQLite в памяти используется StaticPool, чтобы все сессии
    видели одно и то же соединение.
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=300,
        echo=echo
    )


def get_engine() -> Engine:
    """Ленивое создание движка по настройкам"""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.DATABASE_URL, settings.DATABASE_ECHO)
    return _engine


def get_session() -> Generator[Session, None, None]:
    """
    Создание сессии базы данных для dependency injection

    Yields:
        Session: Сессия SQLModel
    """
    session = Session(get_engine())
    try:
        yield session
    except Exception as e:
        logger.error(f"Database session error: {e}")
        session.rollback()
        raise
    finally:
        session.close()


def init_database(engine: Optional[Engine] = None) -> None:
    """Создание таблиц"""
    # Регистрация моделей в метаданных SQLModel
    from clinic_noshow.models import appointment  # noqa: F401

    engine = engine or get_engine()
    SQLModel.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def close_database() -> None:
    """Закрытие соединения с базой данных"""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("Database connection closed")


def health_check(engine: Optional[Engine] = None) -> bool:
    """Проверка состояния подключения к базе данных"""
    try:
        with (engine or get_engine()).connect() as connection:
            connection.execute(text("SELECT 1")).fetchone()
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
