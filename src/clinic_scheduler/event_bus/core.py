"""Core Event Bus Components.

## Key Components

- **EventHandler**: Base class for dependency-injectable message handlers
- **EventBusError**: Base exception for all event bus related errors
- **HandlerRegistrationError**: Raised when handler registration fails
- **EventEmissionError**: Raised when a message cannot be published

## Usage Example with Dependency Injection

```python
from clinic_scheduler.event_bus.core import EventHandler
from clinic_scheduler.events.types import EventCreated
from clinic_scheduler.realtime import NotificationDispatcher


class PatientCreatedNotifier(EventHandler[EventCreated]):
    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    async def handle(self, message: EventCreated) -> int:
        return await self.dispatcher.notify_created(str(message.patient_id))
```

The bus instantiates the handler and injects ``NotificationDispatcher`` from
the ``ServiceRegistry`` each time a message is delivered.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


class EventHandler[T_Message: BaseModel](ABC):
    """Base class for dependency-injectable message handlers."""

    @abstractmethod
    async def handle(self, message: T_Message) -> Any:
        """Handle the message.

        Exceptions raised here are caught by the bus and returned in the
        results list.
        """

    def __call__(self, message: T_Message) -> Any:
        return self.handle(message)


class EventBusError(Exception):
    """Base exception for all event bus related errors."""


class HandlerRegistrationError(EventBusError):
    """Raised when the message type is not a Pydantic model or the handler is not callable."""


class EventEmissionError(EventBusError):
    """Raised when the published object is not a Pydantic model instance."""
