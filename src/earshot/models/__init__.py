"""earshot data models."""

from earshot.models.enums import (
    ExportFormat,
    MonitoringState,
    Priority,
    RecommendationType,
    WarningKind,
)
from earshot.models.runtime import (
    HandlerError,
    ListenerRecordView,
    MemorySample,
    MetricsSnapshot,
    PerformanceWarning,
    ProfilingReport,
    Recommendation,
    RegistrationIdentity,
    TimingEntry,
    capture_flag,
)

__all__ = [
    "MonitoringState",
    "WarningKind",
    "ExportFormat",
    "RecommendationType",
    "Priority",
    "RegistrationIdentity",
    "HandlerError",
    "TimingEntry",
    "MemorySample",
    "MetricsSnapshot",
    "PerformanceWarning",
    "Recommendation",
    "ListenerRecordView",
    "ProfilingReport",
    "capture_flag",
]
