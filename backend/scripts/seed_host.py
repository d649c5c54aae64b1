from __future__ import annotations

import argparse
import asyncio
import json

from meetbook.core.config import get_settings
from meetbook.core.errors import SchedulingError
from meetbook.domain import WindowSpec, validate_window
from meetbook.stores import resolve_store


async def seed_host(
    email: str,
    full_name: str,
    timezone: str,
    licensed: bool,
    weekdays: list[int],
    start_time: str,
    end_time: str,
) -> None:
    """Create a host and give it the same window on each of ``weekdays``.

    Hosts are owned by the account system in production; this exists for
    local development and demos only.
    """
    store = resolve_store(get_settings())
    await store.open()
    try:
        host = await store.create_host(
            email=email,
            full_name=full_name,
            has_full_license=licensed,
            timezone=timezone,
        )
        specs = [validate_window(WindowSpec(day, start_time, end_time)) for day in weekdays]
        windows = await store.replace_windows(host.id, specs) if specs else []
    except SchedulingError as e:
        print(f"❌ Could not seed host {email}: {e}")
        return
    finally:
        await store.close()

    print(json.dumps({
        "host_id": host.id,
        "email": host.email,
        "licensed": host.has_full_license,
        "timezone": host.timezone,
        "windows": [f"{w.day_of_week} {w.start_time}-{w.end_time}" for w in windows],
        "booking_page": f"/api/schedule/{host.id}?date=YYYY-MM-DD",
    }, indent=2))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a bookable host in the configured store.")
    parser.add_argument("--email", required=True, help="Host email (unique)")
    parser.add_argument("--name", required=True, help="Host full name")
    parser.add_argument("--timezone", default="UTC", help="IANA timezone of the host's windows")
    parser.add_argument("--unlicensed", action="store_true", help="Create the host with scheduling disabled")
    parser.add_argument(
        "--days",
        default="1,2,3,4,5",
        help="Comma-separated weekdays to open (0 = Sunday ... 6 = Saturday); empty for none",
    )
    parser.add_argument("--start", default="09:00", help="Window start (HH:MM)")
    parser.add_argument("--end", default="17:00", help="Window end (HH:MM)")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    weekdays = [int(day) for day in args.days.split(",") if day.strip()]
    asyncio.run(
        seed_host(
            args.email,
            args.name,
            args.timezone,
            not args.unlicensed,
            weekdays,
            args.start,
            args.end,
        )
    )


if __name__ == "__main__":
    main()
