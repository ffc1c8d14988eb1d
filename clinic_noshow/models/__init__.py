from .base import BaseResponse
from .appointment import AppointmentRecordTable

__all__ = ["BaseResponse", "AppointmentRecordTable"]
