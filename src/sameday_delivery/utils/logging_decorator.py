import json
from functools import wraps
from typing import Any, Callable, Optional

from fastapi import HTTPException
from loguru import logger


def _request_payload(kwargs: dict[str, Any], only_set: bool) -> Optional[dict]:
    """Тело запроса эндпоинта: первая pydantic-модель среди аргументов."""
    for value in kwargs.values():
        if not hasattr(value, 'model_dump'):
            continue
        try:
            return value.model_dump(
                mode='json',
                exclude_none=True,
                exclude_unset=only_set,
            )
        except Exception as e:
            logger.debug(f'Не удалось сериализовать тело запроса: {e}')
    return None


def event_logger(
    event_type: str,
    table_name: str,
    only_set: bool = True,
) -> Callable:
    """Декоратор для журнала изменений холдов, резерваций и настроек.

    После успешного вызова эндпоинта пишет, какая запись таблицы
    (SlotHold, Reservation, DeliverySlot, DeliverySettings) изменилась
    и с каким телом запроса. Токен оформления из тела попадает в поле
    checkout_token записи лога, идентификатор заказа в текст сообщения.

    Отказ покупателю (HTTPException 4xx) пишется как warning, прочие
    ошибки как error. Исключение в любом случае пробрасывается дальше.

    Args:
        event_type: Событие в форме глагола ('Создан', 'Обновлена').
        table_name: Таблица, запись которой меняет эндпоинт.
        only_set: Логировать только поля, заданные в запросе.

    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            payload = _request_payload(kwargs, only_set)
            token = (payload or {}).get('token') or '-'
            order_id = kwargs.get('order_id')
            target = f'"{table_name}"'
            if order_id:
                target += f' для заказа {order_id}'
            event_log = logger.bind(checkout_token=token)
            try:
                result = await func(*args, **kwargs)
            except HTTPException as e:
                message = f'Запись {target} не изменена: {e.status_code}'
                if e.status_code < 500:
                    event_log.warning(message)
                else:
                    event_log.error(message)
                raise
            except Exception:
                event_log.error(
                    f'Произошла ошибка при изменении записи {target}',
                )
                raise
            if payload is not None:
                formatted = json.dumps(payload, ensure_ascii=False, indent=4)
                event_log.info(
                    f'{event_type} запись {target}, '
                    f'с параметрами:\n{formatted}',
                )
            return result

        return wrapper

    return decorator
