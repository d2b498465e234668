from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from sameday_delivery.api.endpoints import routers
from sameday_delivery.core.dependencies import build_delivery_service
from sameday_delivery.core.exception_handler import (
    http_exception_handler,
    slot_validation_exception_handler,
    validation_exception_handler,
)
from sameday_delivery.core.exceptions import SlotValidationError
from sameday_delivery.core.init_settings import create_settings_if_not_exist
from sameday_delivery.core.logging import configure_logging
from sameday_delivery.middleware.http_logging import logging_middleware
from sameday_delivery.services.cache_service import cache_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator:
    """Запускает логгер, кеш и настройки при запуске приложения."""
    configure_logging()
    await cache_service.connect()
    await create_settings_if_not_exist(build_delivery_service())
    yield
    await cache_service.disconnect()


app = FastAPI(
    title='Доставка в день заказа',
    description='API резервирования слотов доставки в день заказа',
    version='0.1.0',
    lifespan=lifespan,
    root_path='/api',
)

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(
    SlotValidationError,
    slot_validation_exception_handler,
)

app.middleware('http')(logging_middleware)


for router in routers:
    app.include_router(router)
