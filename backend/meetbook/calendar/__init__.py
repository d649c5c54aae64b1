from meetbook.calendar.cache import DocumentCache
from meetbook.calendar.ics import CalendarExporter, ParsedEvent, parse_events

__all__ = ["CalendarExporter", "DocumentCache", "ParsedEvent", "parse_events"]
