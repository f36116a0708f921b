"""
Event tracking system for connection lifecycle events
"""

from .event_bus import EventBus, EventTypes, SystemEvent

__all__ = ['EventBus', 'EventTypes', 'SystemEvent']
