"""Recommendations, final report assembly and data export."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any

from earshot.config import RecommendationConfig
from earshot.errors import UnsupportedExportFormatError
from earshot.models.enums import ExportFormat, Priority, RecommendationType
from earshot.models.runtime import (
    ListenerRecordView,
    MemorySample,
    MetricsSnapshot,
    ProfilingReport,
    Recommendation,
    TimingEntry,
)

CSV_HEADER = ("timestamp", "event_type", "execution_time", "listener_id")


def build_recommendations(
    snapshot: MetricsSnapshot, config: RecommendationConfig | None = None
) -> list[Recommendation]:
    """Derive optimisation suggestions from current metrics."""
    config = config or RecommendationConfig()
    recs: list[Recommendation] = []

    if snapshot.listener_count > config.listener_count:
        recs.append(Recommendation(
            type=RecommendationType.DELEGATION,
            priority=Priority.HIGH,
            message="Use a shared dispatch point (event delegation) to reduce listener count",
            details=f"Current: {snapshot.listener_count} listeners",
        ))

    if snapshot.avg_handler_time > config.avg_handler_time:
        recs.append(Recommendation(
            type=RecommendationType.PERFORMANCE,
            priority=Priority.MEDIUM,
            message="Optimize slow event handlers",
            details=f"Average handler time: {snapshot.avg_handler_time:.2f}ms",
        ))

    if snapshot.memory is not None and snapshot.memory.used > config.memory_usage:
        recs.append(Recommendation(
            type=RecommendationType.MEMORY,
            priority=Priority.MEDIUM,
            message="Monitor memory usage for potential leaks",
            details=f"Current usage: {snapshot.memory.used:.2f}MB",
        ))

    if snapshot.event_frequency > config.event_frequency:
        recs.append(Recommendation(
            type=RecommendationType.THROTTLING,
            priority=Priority.MEDIUM,
            message="Consider throttling or debouncing high-frequency events",
            details=f"Current frequency: {snapshot.event_frequency} events/sec",
        ))

    return recs


def build_report(
    snapshot: MetricsSnapshot,
    recommendations: Iterable[Recommendation],
    warnings_issued: int,
) -> ProfilingReport:
    return ProfilingReport(
        monitoring_duration=snapshot.monitoring_duration,
        snapshot=snapshot,
        event_types=tuple(sorted(snapshot.event_types)),
        recommendations=tuple(recommendations),
        warnings_issued=warnings_issued,
    )


def parse_format(fmt: ExportFormat | str) -> ExportFormat:
    if isinstance(fmt, ExportFormat):
        return fmt
    try:
        return ExportFormat(str(fmt).lower())
    except ValueError:
        raise UnsupportedExportFormatError(fmt) from None


def export_document(
    fmt: ExportFormat | str,
    snapshot: MetricsSnapshot,
    listeners: list[ListenerRecordView],
    timings: Iterable[TimingEntry],
    memory: Iterable[MemorySample],
    recommendations: list[Recommendation],
) -> str:
    """Serialize profiling data as JSON (full document) or CSV (timings only)."""
    export_format = parse_format(fmt)
    timings = list(timings)

    if export_format is ExportFormat.CSV:
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for t in timings:
            writer.writerow([t.timestamp.isoformat(), t.event_type, t.execution_time, t.listener_id])
        return buf.getvalue()

    metrics: dict[str, Any] = asdict(snapshot)
    metrics["is_monitoring"] = snapshot.is_monitoring
    data = {
        "metrics": metrics,
        "listeners": [asdict(v) for v in listeners],
        "timings": [_timing_dict(t) for t in timings],
        "memory_snapshots": [asdict(m) for m in memory],
        "recommendations": [asdict(r) for r in recommendations],
        "export_time": datetime.now(timezone.utc).isoformat(),
    }
    return json.dumps(data, indent=2, default=str)


def _timing_dict(entry: TimingEntry) -> dict[str, Any]:
    d = asdict(entry)
    d.pop("monotonic", None)
    return d
