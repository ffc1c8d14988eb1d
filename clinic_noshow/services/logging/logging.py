import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Однократная настройка корневого логгера"""
    global _configured
    if _configured:
        logging.getLogger().setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
    _configured = True


def get_logger(logger_name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(logger_name)
