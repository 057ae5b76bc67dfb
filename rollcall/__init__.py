"""Rollcall: event registration, waitlist and check-in service."""

__version__ = "0.1.0"
