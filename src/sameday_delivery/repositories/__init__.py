from .base import CRUDBase
from .delivery_slot import DeliverySlotRepository, delivery_slot_repository
from .reservation import ReservationRepository, reservation_repository
from .settings import SettingsRepository, settings_repository
from .slot_hold import SlotHoldRepository, slot_hold_repository

__all__ = [
    'CRUDBase',
    'DeliverySlotRepository',
    'delivery_slot_repository',
    'ReservationRepository',
    'reservation_repository',
    'SettingsRepository',
    'settings_repository',
    'SlotHoldRepository',
    'slot_hold_repository',
]
