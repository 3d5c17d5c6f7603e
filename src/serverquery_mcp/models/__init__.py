"""Data models for replies and notification events."""

from .reply import ErrorRecord, Record, Reply
from .event import Event
