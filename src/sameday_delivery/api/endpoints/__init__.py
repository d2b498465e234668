from .admin import router as admin_router
from .delivery import router as delivery_router
from .healthcheck import router as healthcheck_router
from .orders import router as orders_router

__all__ = [
    'delivery_router',
    'orders_router',
    'admin_router',
    'healthcheck_router',
]

routers = [
    delivery_router,
    orders_router,
    admin_router,
    healthcheck_router,
]
