from loguru import logger

from sameday_delivery.services.delivery_service import DeliveryService


async def create_settings_if_not_exist(service: DeliveryService) -> None:
    """Создаёт настройки доставки по умолчанию, если их ещё нет.

    Затем догенерирует строки слотов, если хранилище это поддерживает.
    """
    created = await service.settings_service.ensure_defaults()
    if created:
        logger.info('Настройки доставки инициализированы')
    if service.store.supports_slot_admin:
        await service.pregenerate_slots()
