"""Markdown formatters for profiling output."""

from __future__ import annotations

from earshot.models.runtime import (
    ListenerRecordView,
    MetricsSnapshot,
    PerformanceWarning,
    ProfilingReport,
    Recommendation,
)


def format_metrics(snap: MetricsSnapshot) -> str:
    """Format a metrics snapshot as a markdown table."""
    memory = f"{snap.memory.used} MB" if snap.memory else "—"
    lines = [
        "## Metrics",
        f"**State:** {snap.state.value}  ",
        f"**Monitored:** {snap.monitoring_duration:.0f} ms  ",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Listeners | {snap.listener_count} |",
        f"| Events fired | {snap.events_fired} |",
        f"| Avg handler time | {snap.avg_handler_time:.3f} ms |",
        f"| Event frequency | {snap.event_frequency}/s |",
        f"| Memory | {memory} |",
    ]
    if snap.event_types:
        lines.extend(["", "| Event type | Listeners |", "|------------|-----------|"])
        for event_type, count in sorted(snap.event_types.items()):
            lines.append(f"| {event_type} | {count} |")
    return "\n".join(lines)


def format_listeners(listeners: list[ListenerRecordView], title: str = "Listeners") -> str:
    if not listeners:
        return f"## {title}\n\nNo listeners tracked."

    lines = [
        f"## {title}",
        "",
        "| ID | Type | Target | Handler | Calls | Avg (ms) | Errors |",
        "|----|------|--------|---------|-------|----------|--------|",
    ]
    for v in listeners:
        lines.append(
            f"| {v.listener_id} | {v.event_type} | {v.target} | `{v.handler}` "
            f"| {v.call_count} | {v.avg_time} | {v.errors} |"
        )
    return "\n".join(lines)


def format_warnings(warnings: list[PerformanceWarning], title: str = "Warnings") -> str:
    if not warnings:
        return f"## {title}\n\nNo warnings issued."

    lines = [f"## {title}", ""]
    for w in warnings:
        lines.append(f"- **[{w.kind.value}]** `{w.timestamp.isoformat()}` — {w.message}")
    return "\n".join(lines)


def format_recommendations(recs: list[Recommendation] | tuple[Recommendation, ...]) -> str:
    if not recs:
        return "## Recommendations\n\nNothing to recommend."

    lines = ["## Recommendations", ""]
    for r in recs:
        lines.append(f"- **{r.priority.value}** ({r.type.value}): {r.message} — {r.details}")
    return "\n".join(lines)


def format_report(report: ProfilingReport) -> str:
    """Full markdown report: metrics followed by recommendations."""
    header = [
        "# Profiling Report",
        f"**Generated:** {report.generated_at.isoformat()}  ",
        f"**Warnings issued:** {report.warnings_issued}",
        "",
    ]
    return "\n".join(header) + "\n" + "\n\n".join([
        format_metrics(report.snapshot),
        format_recommendations(report.recommendations),
    ])
