from meetbook.models.host import Host
from meetbook.models.availability import AvailabilityWindow, BookingSlot
from meetbook.models.meeting import Meeting

__all__ = ["Host", "AvailabilityWindow", "BookingSlot", "Meeting"]
