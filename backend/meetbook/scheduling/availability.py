from __future__ import annotations

import logging
from typing import Sequence

from meetbook.core.errors import NotBookable, NotFound
from meetbook.domain import AvailabilityWindow, Host, WindowSpec, validate_window
from meetbook.stores.base import SchedulingStore

logger = logging.getLogger(__name__)


class AvailabilityService:
    """Admission and removal of a host's recurring weekly windows."""

    def __init__(self, store: SchedulingStore):
        self.store = store

    async def _licensed_host(self, host_id: str) -> Host:
        host = await self.store.resolve_host(host_id)
        if host is None:
            raise NotFound(f"Host {host_id} not found")
        if not host.has_full_license:
            raise NotBookable(f"Host {host_id} does not have scheduling enabled")
        return host

    async def list_windows(self, host_id: str) -> list[AvailabilityWindow]:
        host = await self._licensed_host(host_id)
        return await self.store.list_windows(host.id)

    async def add_window(
        self,
        host_id: str,
        day_of_week: int,
        start_time: str,
        end_time: str,
        active: bool = True,
    ) -> AvailabilityWindow:
        spec = validate_window(WindowSpec(day_of_week, start_time, end_time, active))
        host = await self._licensed_host(host_id)
        window = await self.store.add_window(host.id, spec)
        logger.info(
            f"Host {host.id} added window {window.id} "
            f"(day={window.day_of_week} {window.start_time}-{window.end_time})"
        )
        return window

    async def replace_windows(self, host_id: str, specs: Sequence[WindowSpec]) -> list[AvailabilityWindow]:
        """Validate every window first, then swap the host's whole set."""
        validated = [validate_window(spec) for spec in specs]
        host = await self._licensed_host(host_id)
        windows = await self.store.replace_windows(host.id, validated)
        logger.info(f"Host {host.id} replaced availability with {len(windows)} windows")
        return windows

    async def remove_window(self, window_id: str, host_id: str) -> None:
        host = await self._licensed_host(host_id)
        removed = await self.store.remove_window(window_id, host.id)
        if not removed:
            raise NotFound(f"Availability window {window_id} not found")
        logger.info(f"Host {host.id} removed window {window_id}")
