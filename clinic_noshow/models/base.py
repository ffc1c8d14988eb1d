from typing import Optional, Any
from pydantic import BaseModel, Field


class BaseResponse(BaseModel):
    """Базовая схема ответа API"""
    success: bool = True
    message: str = "OK"
    data: Optional[Any] = Field(default=None)
