from pydantic import BaseModel

from sameday_delivery.utils.enums import UserRole


class TokenPayload(BaseModel):
    """Полезная нагрузка JWT токена администратора магазина."""

    sub: str
    role: UserRole
