from .delivery_settings import DeliverySettings
from .delivery_slot import DeliverySlot
from .reservation import Reservation
from .slot_hold import SlotHold

__all__ = [
    'DeliverySettings',
    'DeliverySlot',
    'SlotHold',
    'Reservation',
]
