"""
Minimal observer-list event channel shared by connections and the registry.
"""
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


class EventChannel:
    """
    Synchronous event channel.

    Listeners are called in registration order. A listener that raises is
    logged and skipped so the remaining listeners still run.
    """

    def __init__(self):
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> Listener:
        """Register a listener for an event and return it."""
        self._listeners.setdefault(event, []).append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register a listener that is removed after its first call."""

        def _wrapper(*args: Any) -> Any:
            self.off(event, _wrapper)
            return listener(*args)

        return self.on(event, _wrapper)

    def off(self, event: str, listener: Listener) -> None:
        """Remove a listener. Unknown listeners are ignored."""
        listeners = self._listeners.get(event)
        if not listeners:
            return
        try:
            listeners.remove(listener)
        except ValueError:
            return
        if not listeners:
            del self._listeners[event]

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every listener of an event with the given arguments.

        Returns:
            True if at least one listener was registered for the event
        """
        listeners = list(self._listeners.get(event, ()))
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logger.exception(f"Listener for '{event}' event failed")
        return bool(listeners)

    def listener_count(self, event: Optional[str] = None) -> int:
        """Count listeners for one event, or for all events when omitted."""
        if event is not None:
            return len(self._listeners.get(event, ()))
        return sum(len(listeners) for listeners in self._listeners.values())
