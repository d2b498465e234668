from datetime import datetime

# Настройки логгера
MS_IN_SECOND = 1000
LOG_DEPTH = 7
LOG_ENCODING = 'utf-8'
LOG_COMPRESSION = 'zip'
LOG_FORMAT = (
    '<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | '
    '<level>{level: <8}</level> | '
    '{extra[username]}({extra[user_id]}) | '
    'token={extra[checkout_token]} | '
    '<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | '
    '<level>{message}</level>'
)
FILE_LOG_FORMAT = (
    '{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | '
    '{extra[username]}({extra[user_id]}) | '
    'token={extra[checkout_token]} | '
    '{name}:{function}:{line} | {message}'
)
INTERCEPTED_LOGGERS = (
    'uvicorn',
    'uvicorn.error',
    'sqlalchemy',
    'celery',
)
NOISE_PATHS = {'/docs', '/openapi.json', '/health', '/livez', '/readyz'}
HTTP_LOG_TEMPLATE = (
    '{method} {path} -> {status} ({ms:.1f} ms)\n    ip={ip}\n    ua={ua}\n'
)
CHECKOUT_TOKEN_HEADER = 'X-Checkout-Token'

# Форматы значений слота
ZIP_LENGTH = 5
SLOT_KEY_PATTERN = r'^\d{2}:\d{2}-\d{2}:\d{2}$'
TIME_PATTERN = r'^\d{2}:\d{2}$'
DATE_PATTERN = r'^\d{4}-\d{2}-\d{2}$'
SLOT_VALUE_SEPARATOR = '|'
TIME_FORMAT = '%H:%M'
MINUTES_IN_DAY = 24 * 60
MIN_SLOT_DURATION_MINUTES = 15
TOKEN_MAX_LENGTH = 64

# Ключи настроек и кеша
SETTINGS_KEY = 'sameday'
SETTINGS_CACHE_KEY = 'delivery:settings'
SETTINGS_CACHE_PATTERN = 'delivery:*'
RESERVATIONS_REPORT_LIMIT = 100

# Ключи метаданных заказа
META_SLOT_KEY = '_delivery_slot_key'
META_DATE = '_delivery_date'
META_SLOT = '_delivery_slot'
META_DISPLAY = '_delivery_display'
META_ZIP = '_delivery_zip'

# Значения по умолчанию для настроек доставки
DEFAULT_ZIP_WHITELIST = (
    '10001', '10002', '10003', '10004', '10005', '10006',
    '10007', '10009', '10010', '10011', '10012', '10013',
)
DEFAULT_CAPACITY = 4
DEFAULT_SLOT_START = '10:00'
DEFAULT_SLOT_END = '20:00'
DEFAULT_SLOT_DURATION_MINUTES = 120
DEFAULT_CUTOFF_TIME = '14:00'

# Тексты для покупателя
MESSAGE_NO_ZIP = 'Enter a ZIP code to view available delivery slots.'
MESSAGE_INVALID_ZIP = (
    'Same-day delivery is only available within select NYC ZIP codes.'
)
MESSAGE_MISSING_SLOT = 'Please choose a delivery time slot.'
MESSAGE_INVALID_SLOT = (
    'The selected delivery slot is invalid. Please choose another slot.'
)
MESSAGE_UNAVAILABLE_SLOT = (
    'The selected delivery slot is no longer available. '
    'Please pick another slot.'
)
MESSAGE_NO_AVAILABILITY = (
    'No delivery slots remain for the upcoming delivery day.'
)
MESSAGE_SLOT_HELD = 'Slot reserved successfully.'
DELIVERY_WINDOW_LABEL = 'Delivery Window'
ADMIN_DELIVERY_LABEL = 'Same-day Delivery'
CONFIRMATION_SUBJECT = 'Your delivery window'


def get_logger_header() -> str:
    """Формирует заголовок для нового лог-файла."""
    return (
        '\n'
        '================= LOGGER - SAMEDAY_DELIVERY ===================\n'
        f'Date: {datetime.now():%Y-%m-%d %H:%M:%S}\n'
        '================================================================\n\n'
    )
