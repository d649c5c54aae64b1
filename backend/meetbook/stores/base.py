from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from meetbook.domain import (
    AvailabilityWindow,
    Host,
    Meeting,
    RetiredSlot,
    WindowSpec,
)


class SchedulingStore(Protocol):
    """Persistence capability consumed by the scheduling core.

    Every adapter must give the same guarantees:
    - ``persist_meeting`` writes the meeting and the optional retired slot
      together or not at all, and raises ``SlotUnavailable`` when either
      collides with an existing live meeting / retired slot.
    - Storage errors surface as ``PersistenceFailure``; nothing is retried.
    """

    name: str

    async def open(self) -> None:
        ...

    async def close(self) -> None:
        ...

    # Hosts (external collaborator; only seeding and tests create them)
    async def resolve_host(self, host_id: str) -> Optional[Host]:
        ...

    async def create_host(
        self,
        email: str,
        full_name: str,
        has_full_license: bool = False,
        timezone: str = "UTC",
        host_id: Optional[str] = None,
    ) -> Host:
        ...

    # Availability
    async def load_active_windows(self, host_id: str, day_of_week: int) -> list[AvailabilityWindow]:
        ...

    async def list_windows(self, host_id: str) -> list[AvailabilityWindow]:
        ...

    async def add_window(self, host_id: str, spec: WindowSpec) -> AvailabilityWindow:
        ...

    async def replace_windows(self, host_id: str, specs: Sequence[WindowSpec]) -> list[AvailabilityWindow]:
        ...

    async def remove_window(self, window_id: str, host_id: str) -> bool:
        ...

    # Meetings
    async def load_active_meetings(self, host_id: str, start: datetime, end: datetime) -> list[Meeting]:
        ...

    async def load_retired_slots(self, host_id: str, slot_date: date) -> list[RetiredSlot]:
        ...

    async def persist_meeting(self, meeting: Meeting, retired_slot: Optional[RetiredSlot] = None) -> Meeting:
        ...

    async def get_meeting(self, meeting_id: str) -> Optional[Meeting]:
        ...

    async def list_meetings(self, host_id: str) -> list[Meeting]:
        ...

    async def update_meeting_status(self, meeting_id: str, host_id: str, status: str) -> Optional[Meeting]:
        ...

    async def delete_meeting(self, meeting_id: str, host_id: str) -> bool:
        ...
