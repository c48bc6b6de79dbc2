"""Profiler facade: lifecycle, wrapped-handler timing, subscriptions and export."""

from __future__ import annotations

import functools
import logging
import threading
import time
import types
from collections.abc import Callable
from typing import Any

from earshot.config import ProfilerConfig
from earshot.core.aggregator import MetricsAggregator
from earshot.core.anomaly import AnomalyDetector
from earshot.core.interceptor import Interceptor, Primitives
from earshot.core.monitor import read_process_memory
from earshot.core.registry import ListenerRecord, ListenerRegistry
from earshot.core.report import build_recommendations, build_report, export_document, parse_format
from earshot.core.sampler import PeriodicSampler
from earshot.events import EventTarget
from earshot.models.enums import ExportFormat, MonitoringState
from earshot.models.runtime import (
    ListenerRecordView,
    MemorySample,
    MetricsSnapshot,
    PerformanceWarning,
    ProfilingReport,
    Recommendation,
    RegistrationIdentity,
)

logger = logging.getLogger("earshot.profiler")

METRICS_UPDATED = "metrics:updated"
PERFORMANCE_WARNING = "performance:warning"
PROFILING_COMPLETED = "profiling:completed"
PROFILER_RESET = "profiler:reset"


class Profiler:
    """Instruments an emitter type and reports on its listeners.

    Lifecycle is ``idle -> monitoring -> stopped``; restarting from stopped
    clears global counters and histories but keeps listeners that are still
    registered with the host, along with their per-listener statistics.
    """

    def __init__(
        self,
        config: ProfilerConfig | None = None,
        primitives: Primitives | None = None,
        clock: Callable[[], float] = time.perf_counter,
        memory_probe: Callable[[], MemorySample | None] = read_process_memory,
    ):
        self.config = config or ProfilerConfig()
        self.primitives = primitives or Primitives(EventTarget)
        self._clock = clock
        self._lock = threading.RLock()
        self._state = MonitoringState.IDLE
        self._started_at: float | None = None
        self._stopped_at: float | None = None
        self._sampler: PeriodicSampler | None = None
        self._subscribers: dict[str, list[Callable[[Any], None]]] = {}
        self._global_targets: dict[int, Any] = {}
        self.last_report: ProfilingReport | None = None

        self.registry = ListenerRegistry(
            self._make_wrapper, max_errors=self.config.max_errors_per_listener
        )
        self.aggregator = MetricsAggregator(
            self.registry,
            sample_size=self.config.sample_size,
            max_history_size=self.config.max_history_size,
            memory_history_size=self.config.memory_history_size,
            clock=clock,
            memory_probe=memory_probe,
        )
        self.detector = AnomalyDetector(
            self.config.thresholds,
            emit=self._emit_warning,
            enabled=self.config.enable_warnings,
            cleanup_markers=(self.primitives.remove,),
        )
        self.interceptor = Interceptor(
            self.primitives,
            self.registry,
            on_tracked=self._on_tracked,
            lock=self._lock,
        )

    # -- lifecycle ---------------------------------------------------------

    @property
    def state(self) -> MonitoringState:
        return self._state

    @property
    def is_monitoring(self) -> bool:
        return self._state is MonitoringState.MONITORING

    @property
    def warnings(self) -> tuple[PerformanceWarning, ...]:
        with self._lock:
            return tuple(self.detector.warnings)

    def start_monitoring(self) -> None:
        """Install interception and start periodic sampling.

        Raises InstrumentationError if the primitives cannot be patched; the
        profiler state is left unchanged in that case.
        """
        with self._lock:
            if self._state is MonitoringState.MONITORING:
                logger.warning("Profiler already monitoring")
                return

            restarting = self._state is MonitoringState.STOPPED
            self.interceptor.install()
            try:
                if self.config.update_interval > 0:
                    sampler = PeriodicSampler(self.config.update_interval, self.update_metrics)
                    sampler.start()
                    self._sampler = sampler
            except Exception:
                self.interceptor.uninstall()
                raise

            if restarting:
                self.aggregator.reset()
            self._state = MonitoringState.MONITORING
            self._started_at = self._clock()
            self._stopped_at = None
            if self.config.track_memory:
                self._take_memory_sample()

        logger.info(
            "Event listener profiling started on %s (%d listeners already tracked)",
            self.primitives.describe(), self.registry.count(),
        )

    def stop_monitoring(self) -> ProfilingReport | None:
        """Uninstall interception, cancel sampling and emit the final report."""
        with self._lock:
            if self._state is not MonitoringState.MONITORING:
                return None
            self.interceptor.uninstall()
            self._state = MonitoringState.STOPPED
            self._stopped_at = self._clock()
            sampler, self._sampler = self._sampler, None

        # Joined outside the lock: a tick in flight needs it to finish.
        if sampler is not None:
            sampler.stop()

        with self._lock:
            report = self._finalize()
        logger.info("Event listener profiling stopped")
        return report

    def destroy(self) -> None:
        """Stop monitoring and drop every piece of tracked data."""
        self.stop_monitoring()
        with self._lock:
            self.registry.clear()
            self.aggregator.reset()
            self.detector.reset()
            self._subscribers.clear()
            self._global_targets.clear()

    def __enter__(self) -> Profiler:
        self.start_monitoring()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop_monitoring()

    # -- wrapped handler ---------------------------------------------------

    def _make_wrapper(self, record: ListenerRecord) -> Callable[..., Any]:
        profiler = self
        identity = record.identity
        handler = identity.handler

        @functools.wraps(handler)
        def wrapped(*args, **kwargs):
            start = profiler._clock()
            error: BaseException | None = None
            try:
                return handler(*args, **kwargs)
            except BaseException as exc:
                error = exc
                raise
            finally:
                duration_ms = (profiler._clock() - start) * 1000.0
                profiler._observe(identity, duration_ms, error)

        wrapped.__earshot_listener__ = True
        return wrapped

    def _observe(
        self, identity: RegistrationIdentity, duration_ms: float, error: BaseException | None
    ) -> None:
        if self._state is not MonitoringState.MONITORING:
            return
        try:
            with self._lock:
                if error is not None:
                    failure = self.aggregator.record_error(identity, error, duration_ms)
                    logger.error(
                        "Event handler error in %s handler: %s: %s",
                        identity.event_type, failure.error_type, failure.message,
                    )
                if self.config.track_timing:
                    entry = self.aggregator.record_invocation(identity, duration_ms)
                    self.detector.check_invocation(entry)
        except Exception:
            # Accounting must never change what the application handler did.
            logger.exception("Failed to record handler timing")

    # -- registration hooks ------------------------------------------------

    def _on_tracked(self, record: ListenerRecord, created: bool) -> None:
        if not created:
            return
        with self._lock:
            self.detector.check_listener_count(self.registry.count())
            self.detector.check_handler_shape(record, self._is_global(record.identity.target))

    def _is_global(self, target: Any) -> bool:
        if isinstance(target, (types.ModuleType, type)):
            return True
        return id(target) in self._global_targets

    def mark_global(self, target: Any) -> None:
        """Treat target as process-global for the handler-shape heuristic."""
        with self._lock:
            self._global_targets[id(target)] = target

    def track_listener(
        self, target: Any, event_type: str, handler: Callable[..., Any], options: Any = None
    ) -> Callable[..., Any]:
        """Track a listener registered outside the intercepted primitives.

        Returns the wrapped handler the caller should hand to its emitter, or
        the handler itself when not monitoring.
        """
        if not self.is_monitoring:
            return handler
        identity = RegistrationIdentity.from_call(target, event_type, handler, options)
        with self._lock:
            record, created = self.registry.track_record(identity, options)
        self._on_tracked(record, created)
        return record.wrapped

    # -- periodic sampling -------------------------------------------------

    def update_metrics(self) -> MetricsSnapshot | None:
        """One sampling tick: memory sample, frequency check, metrics:updated."""
        with self._lock:
            if self._state is not MonitoringState.MONITORING:
                return None
            if self.config.track_memory:
                self._take_memory_sample()
            self.detector.check_frequency(self.aggregator.estimate_frequency())
            snapshot = self.get_metrics()
            self._emit(METRICS_UPDATED, snapshot)
            return snapshot

    def _take_memory_sample(self) -> None:
        sample = self.aggregator.sample_memory()
        if sample is not None:
            self.detector.check_memory(self.aggregator.memory_growth())

    # -- reads -------------------------------------------------------------

    def _duration_ms(self) -> float:
        if self._started_at is None:
            return 0.0
        end = self._stopped_at if self._stopped_at is not None else self._clock()
        return round((end - self._started_at) * 1000.0, 3)

    def get_metrics(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                listener_count=self.registry.count(),
                events_fired=self.aggregator.events_fired,
                event_types=self.registry.count_by_type(),
                avg_handler_time=round(self.aggregator.avg_handler_time, 3),
                event_frequency=self.aggregator.estimate_frequency(),
                state=self._state,
                monitoring_duration=self._duration_ms(),
                memory=self.aggregator.latest_memory(),
            )

    def get_listener_details(self) -> list[ListenerRecordView]:
        with self._lock:
            return [record.view() for record in self.registry.snapshot()]

    def get_optimization_recommendations(self) -> list[Recommendation]:
        return build_recommendations(self.get_metrics(), self.config.recommendations)

    def reset(self) -> None:
        """Clear metrics, histories and dedup state. Interception and live listeners stay."""
        with self._lock:
            self.aggregator.reset()
            self.detector.reset()
            self._emit(PROFILER_RESET, None)
        logger.info("Profiler data reset")

    def export_data(self, fmt: ExportFormat | str = ExportFormat.JSON) -> str:
        """Serialize current data. Raises UnsupportedExportFormatError for unknown formats."""
        export_format = parse_format(fmt)
        with self._lock:
            snapshot = self.get_metrics()
            return export_document(
                export_format,
                snapshot,
                self.get_listener_details(),
                self.aggregator.timings,
                self.aggregator.memory_history,
                build_recommendations(snapshot, self.config.recommendations),
            )

    def _finalize(self) -> ProfilingReport:
        snapshot = self.get_metrics()
        report = build_report(
            snapshot,
            build_recommendations(snapshot, self.config.recommendations),
            warnings_issued=len(self.detector.warnings),
        )
        self.last_report = report
        logger.info(
            "Performance report: %.0fms monitored, %d listeners, %d events, avg %.2fms",
            report.monitoring_duration, snapshot.listener_count,
            snapshot.events_fired, snapshot.avg_handler_time,
        )
        self._emit(PROFILING_COMPLETED, report)
        return report

    # -- subscriptions -----------------------------------------------------

    def on(self, event: str, callback: Callable[[Any], None]) -> None:
        with self._lock:
            self._subscribers.setdefault(event, []).append(callback)

    def off(self, event: str, callback: Callable[[Any], None]) -> None:
        with self._lock:
            callbacks = self._subscribers.get(event)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)

    def _emit_warning(self, warning: PerformanceWarning) -> None:
        self._emit(PERFORMANCE_WARNING, warning)

    def _emit(self, event: str, payload: Any) -> None:
        for callback in list(self._subscribers.get(event, ())):
            try:
                callback(payload)
            except Exception:
                logger.exception("Subscriber for %s failed", event)
