from datetime import date
from typing import Optional

from pydantic import BaseModel


class ZipCheckRequest(BaseModel):
    """Запрос на проверку ZIP."""

    zip: str


class ZipCheckResult(BaseModel):
    """Ответ о возможности доставки по ZIP."""

    valid: bool
    zip: str
    next_available_date: Optional[date] = None
    message: Optional[str] = None
