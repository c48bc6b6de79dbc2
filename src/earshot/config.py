"""Layered configuration: .earshot/config.toml -> EARSHOT_* env vars -> defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib  # 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]


@dataclass(frozen=True, slots=True)
class ThresholdConfig:
    """Warning thresholds, one per warning kind."""

    listener_count: int = 100
    handler_time: float = 10.0  # milliseconds
    memory_growth: float = 50.0  # MB between consecutive samples
    event_frequency: int = 100  # invocations per second


@dataclass(frozen=True, slots=True)
class RecommendationConfig:
    """Levels above which optimisation recommendations are produced."""

    listener_count: int = 50
    avg_handler_time: float = 5.0
    memory_usage: float = 100.0
    event_frequency: int = 50


@dataclass(frozen=True, slots=True)
class ProfilerConfig:
    """Top-level configuration container."""

    update_interval: float = 1.0  # seconds; <= 0 disables periodic sampling
    max_history_size: int = 1000
    sample_size: int = 100
    memory_history_size: int = 100
    max_errors_per_listener: int = 50
    track_timing: bool = True
    track_memory: bool = True
    enable_warnings: bool = True
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    recommendations: RecommendationConfig = field(default_factory=RecommendationConfig)

    @classmethod
    def load(cls, project_path: Path | None = None) -> ProfilerConfig:
        """Load config with layering: TOML file -> env vars -> defaults."""
        project = Path(project_path) if project_path else Path.cwd()
        toml_path = project / ".earshot" / "config.toml"

        toml_data: dict = {}
        if toml_path.is_file():
            with open(toml_path, "rb") as f:
                toml_data = tomllib.load(f)

        profiler_data = toml_data.get("profiler", {})
        threshold_data = toml_data.get("thresholds", {})
        rec_data = toml_data.get("recommendations", {})

        # Use literal defaults (slots=True prevents class-level attribute access)
        _defaults = cls()
        _thr = ThresholdConfig()
        _rec = RecommendationConfig()

        def _get(env: str, data: dict, key: str, default):
            return os.environ.get(env, data.get(key, default))

        thresholds = ThresholdConfig(
            listener_count=int(
                _get("EARSHOT_LISTENER_COUNT_THRESHOLD", threshold_data,
                     "listener_count", _thr.listener_count)
            ),
            handler_time=float(
                _get("EARSHOT_HANDLER_TIME_THRESHOLD", threshold_data,
                     "handler_time", _thr.handler_time)
            ),
            memory_growth=float(
                _get("EARSHOT_MEMORY_GROWTH_THRESHOLD", threshold_data,
                     "memory_growth", _thr.memory_growth)
            ),
            event_frequency=int(
                _get("EARSHOT_EVENT_FREQUENCY_THRESHOLD", threshold_data,
                     "event_frequency", _thr.event_frequency)
            ),
        )

        recommendations = RecommendationConfig(
            listener_count=int(rec_data.get("listener_count", _rec.listener_count)),
            avg_handler_time=float(rec_data.get("avg_handler_time", _rec.avg_handler_time)),
            memory_usage=float(rec_data.get("memory_usage", _rec.memory_usage)),
            event_frequency=int(rec_data.get("event_frequency", _rec.event_frequency)),
        )

        return cls(
            update_interval=float(
                _get("EARSHOT_UPDATE_INTERVAL", profiler_data,
                     "update_interval", _defaults.update_interval)
            ),
            max_history_size=int(
                _get("EARSHOT_MAX_HISTORY_SIZE", profiler_data,
                     "max_history_size", _defaults.max_history_size)
            ),
            sample_size=int(
                _get("EARSHOT_SAMPLE_SIZE", profiler_data,
                     "sample_size", _defaults.sample_size)
            ),
            memory_history_size=int(
                profiler_data.get("memory_history_size", _defaults.memory_history_size)
            ),
            max_errors_per_listener=int(
                profiler_data.get("max_errors_per_listener", _defaults.max_errors_per_listener)
            ),
            track_timing=_as_bool(
                _get("EARSHOT_TRACK_TIMING", profiler_data,
                     "track_timing", _defaults.track_timing)
            ),
            track_memory=_as_bool(
                _get("EARSHOT_TRACK_MEMORY", profiler_data,
                     "track_memory", _defaults.track_memory)
            ),
            enable_warnings=_as_bool(
                _get("EARSHOT_ENABLE_WARNINGS", profiler_data,
                     "enable_warnings", _defaults.enable_warnings)
            ),
            thresholds=thresholds,
            recommendations=recommendations,
        )


def _as_bool(value: object) -> bool:
    """Env vars arrive as strings; TOML values are already bools."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)
