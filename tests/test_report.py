"""Tests for recommendations, reports and export."""

import csv
import io
import json

import pytest

from earshot.config import RecommendationConfig
from earshot.core.report import (
    CSV_HEADER,
    build_recommendations,
    build_report,
    export_document,
    parse_format,
)
from earshot.errors import UnsupportedExportFormatError
from earshot.models.enums import ExportFormat, MonitoringState, RecommendationType
from earshot.models.runtime import MemorySample, MetricsSnapshot, TimingEntry


def _snap(listeners=0, avg=0.0, memory=None, frequency=0, event_types=None):
    return MetricsSnapshot(
        listener_count=listeners,
        events_fired=3,
        event_types=event_types or {},
        avg_handler_time=avg,
        event_frequency=frequency,
        state=MonitoringState.MONITORING,
        monitoring_duration=1500.0,
        memory=MemorySample(used=memory, total=memory * 2, limit=8000.0) if memory else None,
    )


class TestRecommendations:
    def test_quiet_metrics(self):
        assert build_recommendations(_snap()) == []

    def test_all_triggered(self):
        recs = build_recommendations(_snap(listeners=51, avg=5.5, memory=150.0, frequency=51))
        types = [r.type for r in recs]
        assert types == [
            RecommendationType.DELEGATION,
            RecommendationType.PERFORMANCE,
            RecommendationType.MEMORY,
            RecommendationType.THROTTLING,
        ]
        assert "shared dispatch point" in recs[0].message
        assert recs[0].details == "Current: 51 listeners"

    def test_custom_levels(self):
        recs = build_recommendations(_snap(listeners=3), RecommendationConfig(listener_count=2))
        assert [r.type for r in recs] == [RecommendationType.DELEGATION]


class TestBuildReport:
    def test_fields(self):
        snap = _snap(listeners=2, event_types={"keydown": 1, "click": 1})
        report = build_report(snap, [], warnings_issued=4)
        assert report.monitoring_duration == 1500.0
        assert report.event_types == ("click", "keydown")
        assert report.warnings_issued == 4
        assert report.snapshot is snap


class TestParseFormat:
    def test_enum_and_strings(self):
        assert parse_format(ExportFormat.CSV) is ExportFormat.CSV
        assert parse_format("JSON") is ExportFormat.JSON

    @pytest.mark.parametrize("fmt", ["xml", "", None])
    def test_unknown(self, fmt):
        with pytest.raises(UnsupportedExportFormatError):
            parse_format(fmt)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            parse_format("yaml")


class TestExport:
    def _timings(self):
        return [
            TimingEntry(event_type="click", execution_time=1.25, listener_id="click-1", monotonic=1.0),
            TimingEntry(event_type="scroll", execution_time=0.5, listener_id="scroll-2", monotonic=2.0),
        ]

    def test_json_document(self):
        snap = _snap(listeners=2, memory=20.0)
        text = export_document("json", snap, [], self._timings(), [snap.memory], [])
        data = json.loads(text)
        assert data["metrics"]["listener_count"] == 2
        assert data["metrics"]["state"] == "monitoring"
        assert data["metrics"]["is_monitoring"] is True
        assert len(data["timings"]) == 2
        assert "monotonic" not in data["timings"][0]
        assert data["memory_snapshots"][0]["used"] == 20.0
        assert "export_time" in data

    def test_csv_rows(self):
        text = export_document(ExportFormat.CSV, _snap(), [], self._timings(), [], [])
        rows = list(csv.reader(io.StringIO(text)))
        assert tuple(rows[0]) == CSV_HEADER
        assert rows[1][1:] == ["click", "1.25", "click-1"]
        assert len(rows) == 3

    def test_unknown_format(self):
        with pytest.raises(UnsupportedExportFormatError):
            export_document("pdf", _snap(), [], [], [], [])
