"""Meetbook: public booking of hosts' weekly availability, with iCalendar invites."""

__version__ = "1.0.0"
