"""Event Bus Implementation.

The bus decouples the services that mutate calendar events from the code that
reacts to those mutations (today: pushing signals to patient channels).

Request handlers run in Starlette's thread pool while real-time connections
live on the server's event loop. ``bind_loop`` is called once at startup with
that loop; ``emit`` then works from any thread:

- on the loop thread it schedules a task,
- on a worker thread it hands the coroutine to the bound loop with
  ``asyncio.run_coroutine_threadsafe``,
- with no loop at all (CLI, scripts) the message is dropped and logged.

Emission is fire-and-forget; ``emit_and_wait`` is there for callers that want
the handler results.

```python
bus = get_event_bus()
bus.on(EventDeleted, PatientDeletedNotifier)
bus.emit(EventDeleted(doctor_id=..., patient_id=..., event_ids=[...]))
```
"""

import asyncio
import inspect
from collections.abc import Callable
from functools import lru_cache
from typing import Any, TypeVar

from loguru import logger
from pydantic import BaseModel

from .core import EventEmissionError, HandlerRegistrationError

T_Message = TypeVar("T_Message", bound=BaseModel)
T_Handler = Callable[..., Any]


class EventBus:
    """Async in-process message bus with thread-safe publishing."""

    def __init__(self) -> None:
        self._handlers: dict[type[BaseModel], list[T_Handler]] = {}
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: set[asyncio.Task] = set()
        logger.debug("EventBus initialized")

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None) -> None:
        """Bind (or unbind with None) the loop that runs handlers."""
        self._loop = loop
        logger.debug("EventBus bound to loop {}", id(loop) if loop else None)

    def on(self, message_type: type[T_Message], handler: T_Handler) -> None:
        """Register a handler for a message type.

        Raises:
            HandlerRegistrationError: If message_type is not BaseModel or handler is not callable
        """
        if not (isinstance(message_type, type) and issubclass(message_type, BaseModel)):
            raise HandlerRegistrationError(f"Message type must be a Pydantic BaseModel subclass, got: {message_type}")
        if not callable(handler):
            raise HandlerRegistrationError(f"Handler must be callable: {handler}")

        self._handlers.setdefault(message_type, []).append(handler)
        logger.debug("Registered handler for {}: {}", message_type.__name__, handler)

    def remove_handler(self, message_type: type[T_Message], handler: T_Handler) -> bool:
        """Remove a specific handler for a message type."""
        handlers = self._handlers.get(message_type, [])
        if handler in handlers:
            handlers.remove(handler)
            logger.debug("Removed handler for {}: {}", message_type.__name__, handler)
            return True
        return False

    def clear_handlers(self, message_type: type[T_Message] | None = None) -> None:
        """Clear handlers for a specific message type or all of them."""
        if message_type is None:
            self._handlers.clear()
        else:
            self._handlers.pop(message_type, None)

    def get_handler_count(self, message_type: type[T_Message]) -> int:
        return len(self._handlers.get(message_type, []))

    def get_registered_events(self) -> list[type[BaseModel]]:
        return list(self._handlers.keys())

    def emit(self, message: T_Message) -> None:
        """Publish a message without waiting for the handlers (fire-and-forget)."""
        if not isinstance(message, BaseModel):
            raise EventEmissionError(f"Message must be a BaseModel instance, got: {type(message).__name__}")

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            task = running.create_task(self.emit_and_wait(message))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            return

        if self._loop is None or self._loop.is_closed():
            logger.debug("No event loop bound, dropping {}", type(message).__name__)
            return

        asyncio.run_coroutine_threadsafe(self.emit_and_wait(message), self._loop)

    async def emit_and_wait(self, message: T_Message) -> list[Any]:
        """Publish a message and wait for all handlers.

        Returns:
            List of results from all handlers (including exceptions)

        Raises:
            EventEmissionError: If message is not a BaseModel instance
        """
        if not isinstance(message, BaseModel):
            raise EventEmissionError(f"Message must be a BaseModel instance, got: {type(message).__name__}")

        message_type = type(message)
        handlers = list(self._handlers.get(message_type, []))
        if not handlers:
            logger.trace("No handlers registered for {}", message_type.__name__)
            return []

        results = await asyncio.gather(*(self._execute_handler(h, message) for h in handlers), return_exceptions=True)

        failed = sum(1 for r in results if isinstance(r, Exception))
        if failed:
            logger.warning("{}: {} of {} handler(s) failed", message_type.__name__, failed, len(results))
        return results

    async def _execute_handler(self, handler: T_Handler, message: T_Message) -> Any:
        """Execute a single handler; class handlers are built with injected services."""
        try:
            if inspect.isclass(handler):
                instance = self._instantiate_handler_class(handler)
                return await instance.handle(message)

            result = handler(message)
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:  # noqa: BLE001
            logger.opt(exception=e).error("Handler {} failed for {}", handler, type(message).__name__)
            return e

    def _instantiate_handler_class(self, handler_class: type) -> Any:
        """Instantiate a handler class, resolving constructor parameters from the ServiceRegistry."""
        from clinic_scheduler.services.registry import get_service_registry

        registry = get_service_registry()
        kwargs = {}
        parameters = list(inspect.signature(handler_class.__init__).parameters.values())[1:]
        for param in parameters:
            if param.annotation is inspect.Parameter.empty:
                continue
            try:
                kwargs[param.name] = registry.get(param.annotation)
            except KeyError:
                if param.default is inspect.Parameter.empty:
                    raise
                logger.trace("Service {} not registered, using default for {}", param.annotation, handler_class.__name__)
        return handler_class(**kwargs)


@lru_cache
def get_event_bus() -> EventBus:
    """Get or create the singleton EventBus instance."""
    return EventBus()
