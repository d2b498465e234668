import asyncio
from typing import Awaitable, Callable, TypeVar

from fastapi_mail.errors import ConnectionErrors
from loguru import logger

from celery_app.main import celery_app
from sameday_delivery.core.config import settings
from sameday_delivery.core.db import engine
from sameday_delivery.core.dependencies import build_delivery_service
from sameday_delivery.core.notification import send_notification
from sameday_delivery.services.delivery_service import DeliveryService
from sameday_delivery.utils.enums import StorageBackend

T = TypeVar('T')


def _run_with_service(job: Callable[[DeliveryService], Awaitable[T]]) -> T:
    """Выполняет корутину с сервисом доставки в отдельном event loop."""

    async def runner() -> T:
        try:
            return await job(build_delivery_service())
        finally:
            await engine.dispose()

    return asyncio.run(runner())


@celery_app.task(name='send-notification')
def send_email_task(
    emails: list[str],
    text: str,
    subject: str,
    html: bool,
) -> None:
    """Таска на отправку письма покупателю."""
    try:
        asyncio.run(
            send_notification(
                emails=emails,
                text=text,
                subject=subject,
                html=html,
            ),
        )
    except ConnectionErrors:
        raise


@celery_app.task(name='pregenerate-delivery-slots')
def pregenerate_slots_task() -> int:
    """Таска на ежедневную догенерацию строк слотов."""
    if settings.SLOT_STORAGE_BACKEND != StorageBackend.SQL:
        logger.debug('Догенерация слотов пропущена: хранилище не SQL')
        return 0
    result = _run_with_service(lambda service: service.pregenerate_slots())
    return result.created


@celery_app.task(name='purge-expired-holds')
def purge_expired_holds_task() -> int:
    """Таска на удаление истёкших холдов."""
    if settings.SLOT_STORAGE_BACKEND != StorageBackend.SQL:
        logger.debug('Очистка холдов пропущена: хранилище не SQL')
        return 0
    return _run_with_service(lambda service: service.purge_expired_holds())
