"""Enumerations for earshot runtime models."""

from enum import Enum


class MonitoringState(str, Enum):
    """Profiler lifecycle: idle -> monitoring -> stopped -> monitoring ..."""

    IDLE = "idle"
    MONITORING = "monitoring"
    STOPPED = "stopped"


class WarningKind(str, Enum):
    """Anomaly kinds raised by the detector."""

    LISTENER_COUNT = "listener-count"
    SLOW_HANDLER = "slow-handler"
    MEMORY_GROWTH = "memory-growth"
    HIGH_FREQUENCY = "high-frequency"
    SUSPICIOUS_HANDLER_SHAPE = "suspicious-handler-shape"


class ExportFormat(str, Enum):
    """Supported export_data formats."""

    JSON = "json"
    CSV = "csv"


class RecommendationType(str, Enum):
    DELEGATION = "delegation"
    PERFORMANCE = "performance"
    MEMORY = "memory"
    THROTTLING = "throttling"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
