from celery import Celery

from sameday_delivery.core.config import settings

celery_app = Celery(broker=settings.rabbit_url, backend='rpc://')

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    enable_utc=True,
    timezone=settings.STORE_TIMEZONE,
    include=['celery_app.tasks'],
    task_routes={
        'celery_app.tasks.*': 'default',
    },
    beat_schedule={
        'pregenerate-delivery-slots': {
            'task': 'pregenerate-delivery-slots',
            'schedule': 24 * 60 * 60,
            'options': {'queue': 'default'},
        },
        'purge-expired-holds': {
            'task': 'purge-expired-holds',
            'schedule': settings.HOLD_SWEEP_INTERVAL_SECONDS,
            'options': {'queue': 'default'},
        },
    },
)
