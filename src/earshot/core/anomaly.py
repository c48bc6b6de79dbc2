"""Threshold-based anomaly detection with once-per-lifetime deduplication."""

from __future__ import annotations

import inspect
import json
import logging
import types
from collections.abc import Callable, Iterable
from typing import Any

from earshot.config import ThresholdConfig
from earshot.core.registry import ListenerRecord, describe_handler, describe_target
from earshot.models.enums import WarningKind
from earshot.models.runtime import PerformanceWarning, TimingEntry

logger = logging.getLogger("earshot.anomaly")

# Source fragments that suggest a handler arranges its own removal
CLEANUP_MARKERS = ("remove", "off(", "cleanup", "destroy", "dispose", "close")

_MESSAGES: dict[WarningKind, str] = {
    WarningKind.LISTENER_COUNT: "High listener count: {count} listeners (threshold: {threshold})",
    WarningKind.SLOW_HANDLER: (
        "Slow event handler: {execution_time:.2f}ms for {event_type} (threshold: {threshold}ms)"
    ),
    WarningKind.MEMORY_GROWTH: "Memory growth detected: +{growth:.2f}MB (threshold: {threshold}MB)",
    WarningKind.HIGH_FREQUENCY: "High event frequency: {frequency} events/sec (threshold: {threshold})",
    WarningKind.SUSPICIOUS_HANDLER_SHAPE: (
        "Anonymous {event_type} handler on global {target}. {suggestion}"
    ),
}


def dedup_key(kind: WarningKind, details: dict[str, Any]) -> str:
    """Stable key so the same condition is reported once."""
    return f"{kind.value}:{json.dumps(details, sort_keys=True, default=str)}"


def warning_message(kind: WarningKind, details: dict[str, Any]) -> str:
    try:
        return _MESSAGES[kind].format(**details)
    except (KeyError, ValueError):
        return f"{kind.value}: {details}"


def is_anonymous(handler: Callable[..., Any]) -> bool:
    """Lambdas and functions defined inside other functions."""
    func = getattr(handler, "__func__", handler)
    if not isinstance(func, types.FunctionType):
        return False
    return func.__name__ == "<lambda>" or "<locals>" in func.__qualname__


def has_cleanup_pattern(handler: Callable[..., Any], extra: Iterable[str] = ()) -> bool | None:
    """Whether the handler's source mentions a removal call. None if source is unavailable."""
    try:
        source = inspect.getsource(handler)
    except (OSError, TypeError):
        return None
    return any(marker in source for marker in (*CLEANUP_MARKERS, *extra))


class AnomalyDetector:
    """Evaluates thresholds and emits each distinct warning exactly once."""

    def __init__(
        self,
        thresholds: ThresholdConfig,
        emit: Callable[[PerformanceWarning], None] | None = None,
        enabled: bool = True,
        cleanup_markers: Iterable[str] = (),
    ):
        self.thresholds = thresholds
        self.enabled = enabled
        self._emit = emit
        self._cleanup_markers = tuple(cleanup_markers)
        self._issued: set[str] = set()
        self.warnings: list[PerformanceWarning] = []

    def issue(self, kind: WarningKind, details: dict[str, Any]) -> PerformanceWarning | None:
        """Record and emit a warning unless an identical one was already issued."""
        key = dedup_key(kind, details)
        if key in self._issued:
            return None
        self._issued.add(key)

        warning = PerformanceWarning(kind=kind, details=details, message=warning_message(kind, details))
        self.warnings.append(warning)
        logger.warning("Performance warning: %s", warning.message)
        if self._emit is not None:
            self._emit(warning)
        return warning

    def check_listener_count(self, count: int) -> PerformanceWarning | None:
        if not self.enabled or count <= self.thresholds.listener_count:
            return None
        return self.issue(
            WarningKind.LISTENER_COUNT,
            {"count": count, "threshold": self.thresholds.listener_count},
        )

    def check_invocation(self, entry: TimingEntry) -> PerformanceWarning | None:
        if not self.enabled or entry.execution_time <= self.thresholds.handler_time:
            return None
        return self.issue(
            WarningKind.SLOW_HANDLER,
            {
                "event_type": entry.event_type,
                "execution_time": round(entry.execution_time, 3),
                "listener_id": entry.listener_id,
                "threshold": self.thresholds.handler_time,
            },
        )

    def check_memory(self, growth: tuple[float, float, float] | None) -> PerformanceWarning | None:
        if not self.enabled or growth is None:
            return None
        delta, current, previous = growth
        if delta <= self.thresholds.memory_growth:
            return None
        return self.issue(
            WarningKind.MEMORY_GROWTH,
            {
                "growth": delta,
                "current": current,
                "previous": previous,
                "threshold": self.thresholds.memory_growth,
            },
        )

    def check_frequency(self, frequency: int) -> PerformanceWarning | None:
        if not self.enabled or frequency <= self.thresholds.event_frequency:
            return None
        return self.issue(
            WarningKind.HIGH_FREQUENCY,
            {"frequency": frequency, "threshold": self.thresholds.event_frequency},
        )

    def check_handler_shape(self, record: ListenerRecord, is_global: bool) -> PerformanceWarning | None:
        """Heuristic: anonymous handler on a process-global target with no visible cleanup."""
        if not self.enabled or not is_global:
            return None
        handler = record.identity.handler
        if not is_anonymous(handler):
            return None
        if has_cleanup_pattern(handler, self._cleanup_markers) is not False:
            return None
        return self.issue(
            WarningKind.SUSPICIOUS_HANDLER_SHAPE,
            {
                "listener_id": record.listener_id,
                "event_type": record.event_type,
                "target": describe_target(record.identity.target),
                "handler": describe_handler(handler),
                "suggestion": "Ensure global listeners are removed to prevent leaks",
            },
        )

    def reset(self) -> None:
        self._issued.clear()
        self.warnings.clear()
