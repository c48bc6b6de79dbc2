"""Authoritative map from registration identity to listener record.

Records are mutable: the wrapped handler and the aggregator
update their counters in place under the profiler lock.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from earshot.models.runtime import HandlerError, ListenerRecordView, RegistrationIdentity

logger = logging.getLogger("earshot.registry")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def describe_target(target: Any) -> str:
    """Short human label for an event target."""
    name = getattr(target, "name", None) or getattr(target, "__name__", None)
    kind = type(target).__name__
    return f"{kind}:{name}" if name and name != kind else kind


def describe_handler(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__qualname__", None) or repr(handler)


@dataclass(slots=True)
class ListenerRecord:
    """A tracked listener and its running statistics."""

    listener_id: str
    identity: RegistrationIdentity
    wrapped: Callable[..., Any] | None = None
    options: Any = None
    added_at: datetime = field(default_factory=_now)
    call_count: int = 0
    total_time: float = 0.0
    avg_time: float = 0.0
    errors: deque[HandlerError] = field(default_factory=deque)

    @property
    def event_type(self) -> str:
        return self.identity.event_type

    def record_timing(self, duration_ms: float) -> None:
        self.call_count += 1
        self.total_time += duration_ms
        self.avg_time = self.total_time / self.call_count

    def view(self) -> ListenerRecordView:
        return ListenerRecordView(
            listener_id=self.listener_id,
            event_type=self.identity.event_type,
            target=describe_target(self.identity.target),
            handler=describe_handler(self.identity.handler),
            capture=self.identity.capture,
            call_count=self.call_count,
            avg_time=round(self.avg_time, 3),
            total_time=round(self.total_time, 3),
            errors=len(self.errors),
            added_at=self.added_at,
        )


class ListenerRegistry:
    """Identity-keyed listener bookkeeping.

    ``wrapper_factory`` receives a fresh record and returns the proxy that
    will be handed to the host in place of the caller's handler.
    """

    def __init__(
        self,
        wrapper_factory: Callable[[ListenerRecord], Callable[..., Any]],
        max_errors: int = 50,
    ):
        self._wrapper_factory = wrapper_factory
        self._max_errors = max_errors
        self._records: dict[RegistrationIdentity, ListenerRecord] = {}
        self._ids = itertools.count(1)

    def track(self, identity: RegistrationIdentity, options: Any = None) -> Callable[..., Any]:
        """Return the wrapped handler for a registration."""
        record, _ = self.track_record(identity, options)
        return record.wrapped

    def track_record(
        self, identity: RegistrationIdentity, options: Any = None
    ) -> tuple[ListenerRecord, bool]:
        """Like track() but also reports whether a new record was created.

        Re-registering an identical identity refreshes the existing record and
        hands back the same wrapper, so the host collapses the duplicate.
        """
        existing = self._records.get(identity)
        if existing is not None:
            existing.options = options
            return existing, False

        record = ListenerRecord(
            listener_id=f"{identity.event_type}-{next(self._ids)}",
            identity=identity,
            options=options,
            errors=deque(maxlen=self._max_errors),
        )
        record.wrapped = self._wrapper_factory(record)
        self._records[identity] = record
        logger.debug("Tracking %s on %s", record.listener_id, describe_target(identity.target))
        return record, True

    def untrack(self, identity: RegistrationIdentity) -> bool:
        """Remove the record for identity. Unknown identities are a no-op."""
        try:
            record = self._records.pop(identity, None)
        except TypeError:
            return False
        if record is None:
            return False
        logger.debug("Untracked %s", record.listener_id)
        return True

    def get(self, identity: RegistrationIdentity) -> ListenerRecord | None:
        return self._records.get(identity)

    def snapshot(self) -> list[ListenerRecord]:
        return list(self._records.values())

    def count(self) -> int:
        return len(self._records)

    def count_by_type(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for identity in self._records:
            counts[identity.event_type] = counts.get(identity.event_type, 0) + 1
        return counts

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, identity: object) -> bool:
        return identity in self._records
