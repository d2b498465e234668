from datetime import datetime, timedelta, timezone
from typing import Annotated, Awaitable, Callable, List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from sameday_delivery.core.config import settings
from sameday_delivery.core.logging import logger
from sameday_delivery.schemas.auth import TokenPayload
from sameday_delivery.utils.enums import UserRole

security = HTTPBearer(auto_error=False)


def get_token_expires() -> timedelta:
    """Возвращает время жизни токена."""
    return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)


def create_access_token(subject: str, role: UserRole) -> str:
    """Создает JWT токен для админки магазина."""
    expire = datetime.now(timezone.utc) + get_token_expires()

    to_encode = {
        'sub': subject,
        'role': role.value,
        'exp': expire,
    }

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )


async def get_current_admin(
    credentials: Annotated[
        Optional[HTTPAuthorizationCredentials],
        Depends(security),
    ],
) -> TokenPayload:
    """Получение субъекта и роли из JWT токена."""
    if credentials is None:
        logger.info('Отсутствует заголовок Authorization в headers')
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Не авторизован',
        )

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )
        return TokenPayload.model_validate(payload)
    except (JWTError, ValidationError) as e:
        logger.warning(f'Ошибка при обработке токена: {e}')
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail='Неверные учетные данные',
        )


def role_checker(
    allowed_roles: List[UserRole],
) -> Callable[..., Awaitable[TokenPayload]]:
    """Универсальная функция для проверки роли в токене."""

    async def checker(
        current: TokenPayload = Depends(get_current_admin),
    ) -> TokenPayload:
        if current.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Недостаточно прав для выполнения операции',
            )

        return current

    return checker
