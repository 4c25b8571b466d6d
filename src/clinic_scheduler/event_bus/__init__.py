"""In-process message bus.

Services publish Pydantic messages describing what changed; handlers
registered at startup react to them. See ``bus.py`` for the threading model
and ``core.py`` for class-based handlers with dependency injection.
"""

from .bus import EventBus, get_event_bus
from .core import EventHandler

__all__ = [
    "EventBus",
    "EventHandler",
    "get_event_bus",
]
