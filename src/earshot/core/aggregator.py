"""Rolling handler timings, memory history and sliding-window frequency."""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable

from earshot.core.monitor import read_process_memory
from earshot.core.registry import ListenerRegistry
from earshot.models.runtime import HandlerError, MemorySample, RegistrationIdentity, TimingEntry

logger = logging.getLogger("earshot.aggregator")

# Frequency is reported as invocations observed in this trailing window
FREQUENCY_WINDOW_SECONDS = 1.0


class MetricsAggregator:
    """Global metrics over the registry's listeners.

    All histories are FIFO ring buffers: once full, the oldest entry is
    dropped for each new one.
    """

    def __init__(
        self,
        registry: ListenerRegistry,
        sample_size: int = 100,
        max_history_size: int = 1000,
        memory_history_size: int = 100,
        clock: Callable[[], float] = time.monotonic,
        memory_probe: Callable[[], MemorySample | None] = read_process_memory,
    ):
        self._registry = registry
        self._clock = clock
        self._memory_probe = memory_probe
        self.handler_times: deque[float] = deque(maxlen=sample_size)
        self.timings: deque[TimingEntry] = deque(maxlen=max_history_size)
        self.memory_history: deque[MemorySample] = deque(maxlen=memory_history_size)
        self.events_fired = 0
        self.avg_handler_time = 0.0

    def record_invocation(self, identity: RegistrationIdentity, duration_ms: float) -> TimingEntry:
        """Account one completed (or failed) handler call."""
        record = self._registry.get(identity)
        if record is not None:
            record.record_timing(duration_ms)
            listener_id = record.listener_id
        else:
            listener_id = "untracked"

        self.events_fired += 1
        self.handler_times.append(duration_ms)
        self.avg_handler_time = sum(self.handler_times) / len(self.handler_times)

        entry = TimingEntry(
            event_type=identity.event_type,
            execution_time=duration_ms,
            listener_id=listener_id,
            monotonic=self._clock(),
        )
        self.timings.append(entry)
        return entry

    def record_error(
        self, identity: RegistrationIdentity, error: BaseException, duration_ms: float
    ) -> HandlerError:
        """Log a handler failure on its record. Timing is accounted separately."""
        failure = HandlerError(
            message=str(error),
            error_type=type(error).__name__,
            execution_time=duration_ms,
        )
        record = self._registry.get(identity)
        if record is not None:
            record.errors.append(failure)
        return failure

    def sample_memory(self) -> MemorySample | None:
        sample = self._memory_probe()
        if sample is not None:
            self.memory_history.append(sample)
        return sample

    def latest_memory(self) -> MemorySample | None:
        return self.memory_history[-1] if self.memory_history else None

    def memory_growth(self) -> tuple[float, float, float] | None:
        """(growth, current, previous) in MB between the two newest samples."""
        if len(self.memory_history) < 2:
            return None
        previous = self.memory_history[-2].used
        current = self.memory_history[-1].used
        return round(current - previous, 2), current, previous

    def estimate_frequency(self) -> int:
        """Invocations within the trailing one-second window."""
        now = self._clock()
        return sum(1 for t in self.timings if now - t.monotonic <= FREQUENCY_WINDOW_SECONDS)

    def reset(self) -> None:
        self.handler_times.clear()
        self.timings.clear()
        self.memory_history.clear()
        self.events_fired = 0
        self.avg_handler_time = 0.0
