"""Frozen dataclass models for profiling observations."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from earshot.models.enums import MonitoringState, Priority, RecommendationType, WarningKind


def _now() -> datetime:
    return datetime.now(timezone.utc)


def capture_flag(options: Any) -> bool:
    """Reduce a registration options argument to its capture flag."""
    if options is None:
        return False
    if isinstance(options, bool):
        return options
    if isinstance(options, Mapping):
        return bool(options.get("capture", False))
    return bool(getattr(options, "capture", False))


@dataclass(frozen=True, slots=True, eq=False)
class RegistrationIdentity:
    """What makes two registration calls refer to the same listener.

    The target is compared by object identity (``is``), the handler by
    callable equality, so two accesses of the same bound method match.
    """

    target: Any
    event_type: str
    handler: Callable[..., Any]
    capture: bool = False

    @classmethod
    def from_call(
        cls, target: Any, event_type: str, handler: Callable[..., Any], options: Any = None
    ) -> RegistrationIdentity:
        return cls(target=target, event_type=event_type, handler=handler, capture=capture_flag(options))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegistrationIdentity):
            return NotImplemented
        return (
            self.target is other.target
            and self.event_type == other.event_type
            and self.capture == other.capture
            and self.handler == other.handler
        )

    def __hash__(self) -> int:
        return hash((id(self.target), self.event_type, self.handler, self.capture))


@dataclass(frozen=True, slots=True)
class HandlerError:
    """An exception raised by a wrapped handler."""

    message: str
    error_type: str
    execution_time: float  # ms spent before the raise
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class TimingEntry:
    """One completed handler invocation."""

    event_type: str
    execution_time: float  # ms
    listener_id: str
    monotonic: float  # seconds, for window arithmetic
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class MemorySample:
    """Process memory reading, all figures in MB."""

    used: float
    total: float
    limit: float
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class MetricsSnapshot:
    """Aggregated view of the profiler at a point in time."""

    listener_count: int
    events_fired: int
    event_types: dict[str, int]
    avg_handler_time: float
    event_frequency: int
    state: MonitoringState
    monitoring_duration: float = 0.0  # ms
    memory: MemorySample | None = None

    @property
    def is_monitoring(self) -> bool:
        return self.state is MonitoringState.MONITORING

    @property
    def memory_usage(self) -> float | None:
        return self.memory.used if self.memory else None


@dataclass(frozen=True, slots=True)
class PerformanceWarning:
    """A deduplicated anomaly report."""

    kind: WarningKind
    details: dict[str, Any]
    message: str
    timestamp: datetime = field(default_factory=_now)


@dataclass(frozen=True, slots=True)
class Recommendation:
    """An optimisation suggestion derived from current metrics."""

    type: RecommendationType
    priority: Priority
    message: str
    details: str


@dataclass(frozen=True, slots=True)
class ListenerRecordView:
    """Read-only projection of a tracked listener for display."""

    listener_id: str
    event_type: str
    target: str
    handler: str
    capture: bool
    call_count: int
    avg_time: float
    total_time: float
    errors: int
    added_at: datetime


@dataclass(frozen=True, slots=True)
class ProfilingReport:
    """Summary produced once when monitoring stops."""

    monitoring_duration: float  # ms
    snapshot: MetricsSnapshot
    event_types: tuple[str, ...]
    recommendations: tuple[Recommendation, ...]
    warnings_issued: int
    generated_at: datetime = field(default_factory=_now)
