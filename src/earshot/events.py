"""DOM-style event target used as the default instrumented emitter type.

Registration follows the browser rules: a listener is keyed by
``(event_type, handler, capture)``, duplicate registrations collapse into
one, and removing a listener that was never added is a silent no-op.
A listener wrapped by the profiler still matches the handler it wraps, so
removal keeps working after monitoring stops.
Capture listeners run before bubble listeners; within each phase listeners
run in registration order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from earshot.models.runtime import capture_flag

logger = logging.getLogger("earshot.events")


def _unwrap(handler: Callable[..., Any]) -> Callable[..., Any]:
    if getattr(handler, "__earshot_listener__", False) is True:
        return handler.__wrapped__
    return handler


def same_listener(existing: Callable[..., Any], handler: Callable[..., Any]) -> bool:
    """Whether two listeners are the same handler, looking through profiler wrappers."""
    return existing == handler or _unwrap(existing) == _unwrap(handler)


@dataclass(slots=True)
class Event:
    """A dispatched event. ``detail`` carries an arbitrary payload."""

    type: str
    detail: Any = None
    target: Any = None
    current_target: Any = None
    default_prevented: bool = False
    propagation_stopped: bool = field(default=False, repr=False)

    def prevent_default(self) -> None:
        self.default_prevented = True

    def stop_immediate_propagation(self) -> None:
        self.propagation_stopped = True


class EventTarget:
    """Minimal event-emitting object."""

    def __init__(self, name: str | None = None):
        self.name = name or type(self).__name__
        self._listeners: dict[str, list[tuple[Callable[..., Any], bool, Any]]] = {}

    def add_event_listener(
        self, event_type: str, handler: Callable[..., Any], options: Any = None
    ) -> None:
        capture = capture_flag(options)
        bucket = self._listeners.setdefault(event_type, [])
        for existing, existing_capture, _ in bucket:
            if same_listener(existing, handler) and existing_capture == capture:
                return
        bucket.append((handler, capture, options))

    def remove_event_listener(
        self, event_type: str, handler: Callable[..., Any], options: Any = None
    ) -> None:
        capture = capture_flag(options)
        bucket = self._listeners.get(event_type)
        if not bucket:
            return
        for i, (existing, existing_capture, _) in enumerate(bucket):
            if same_listener(existing, handler) and existing_capture == capture:
                del bucket[i]
                break
        if not bucket:
            del self._listeners[event_type]

    def dispatch_event(self, event: Event | str, detail: Any = None) -> bool:
        """Run every listener for the event type. Returns False if default was prevented.

        Handler exceptions propagate to the caller after the failing handler;
        listeners added during dispatch are not run for the current event.
        """
        if isinstance(event, str):
            event = Event(type=event, detail=detail)
        event.target = event.target if event.target is not None else self
        event.current_target = self

        bucket = list(self._listeners.get(event.type, ()))
        ordered = [entry for entry in bucket if entry[1]] + [entry for entry in bucket if not entry[1]]
        for handler, _, _ in ordered:
            handler(event)
            if event.propagation_stopped:
                break
        return not event.default_prevented

    def listener_count(self, event_type: str | None = None) -> int:
        if event_type is not None:
            return len(self._listeners.get(event_type, ()))
        return sum(len(b) for b in self._listeners.values())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"
