"""
Настройки сервиса прогнозирования неявок
"""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class NoShowSettings(BaseSettings):
    """Настройки подключения к базе данных и параметры движка"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="allow",
    )

    # База данных с историей приемов
    DATABASE_URL: str = "sqlite:///./noshow.db"
    DATABASE_ECHO: bool = False

    # Логирование
    LOG_LEVEL: str = "INFO"

    # Пакетное прогнозирование
    BATCH_MAX_WORKERS: int = 4

    # Порог для выборки записей высокого риска (оценка 0-100)
    HIGH_RISK_THRESHOLD: float = 60.0

    # Сколько факторов показывать в аналитике
    TOP_RISK_FACTORS_LIMIT: int = 5


# Глобальный экземпляр настроек
_settings: Optional[NoShowSettings] = None


def get_settings() -> NoShowSettings:
    """Получение настроек сервиса"""
    global _settings
    if _settings is None:
        _settings = NoShowSettings()
    return _settings


def reset_settings() -> None:
    """Сброс кэша настроек (для тестов и перечитывания окружения)"""
    global _settings
    _settings = None
