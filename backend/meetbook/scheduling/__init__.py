from meetbook.scheduling.availability import AvailabilityService
from meetbook.scheduling.booking import BookingEngine, BookingRequest, BookingResult, slot_reference
from meetbook.scheduling.locks import HostLockRegistry
from meetbook.scheduling.slots import SlotService, merge_windows, slots_for_date

__all__ = [
    "AvailabilityService",
    "BookingEngine",
    "BookingRequest",
    "BookingResult",
    "HostLockRegistry",
    "SlotService",
    "merge_windows",
    "slot_reference",
    "slots_for_date",
]
