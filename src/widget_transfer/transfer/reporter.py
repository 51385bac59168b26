"""Import report formatting functions.

Provides human-readable and machine-readable output for imports:

- ``format_import_summary`` -- full post-import summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by action.
- ``summary_to_json`` -- structured dict for MCP tool output.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ImportSummary, WidgetOutcome

from .models import WidgetAction


def _describe(outcome: WidgetOutcome) -> str:
    """One-line label for a widget outcome."""
    if outcome.action == WidgetAction.PLACEHOLDER:
        return "(missing widget)"
    label = outcome.widget_type or "?"
    index = (
        outcome.target_index
        if outcome.target_index is not None
        else outcome.source_index
    )
    if index is not None:
        label = f"{label}-{index}"
    if outcome.title:
        label += f' "{outcome.title}"'
    return label


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_import_summary(summary: ImportSummary) -> str:
    """Format a complete import summary as human-readable text.

    Per-sidebar sections list every widget decision; warnings follow.

    Args:
        summary: The import summary.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = "Widget import"
    if summary.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    if summary.started_at:
        lines.append(f"Started: {summary.started_at}")
    if summary.completed_at:
        lines.append(f"Completed: {summary.completed_at}")
    lines.append("")

    lines.append(
        f"{summary.widgets_created} created, "
        f"{summary.widgets_reused} reused, "
        f"{summary.widgets_moved_to_inactive} moved to inactive, "
        f"{summary.widgets_skipped} skipped, "
        f"{len(summary.sidebars_created)} sidebars created"
    )
    lines.append("")

    by_sidebar: dict[str, list[WidgetOutcome]] = defaultdict(list)
    for outcome in summary.outcomes:
        by_sidebar[outcome.sidebar_id].append(outcome)

    for sidebar_id, outcomes in by_sidebar.items():
        suffix = " (new)" if sidebar_id in summary.sidebars_created else ""
        lines.append(f"{sidebar_id}{suffix}:")
        for outcome in outcomes:
            lines.append(f"  [{outcome.action.value}] {_describe(outcome)}")
        lines.append("")

    if summary.warnings:
        lines.append("Warnings:")
        for warning in summary.warnings:
            lines.append(f"  {warning.sidebar_id}: {warning.message}")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(summary: ImportSummary) -> str:
    """Format a dry-run preview grouped by action type.

    Args:
        summary: A dry-run summary (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = ["DRY RUN -- No changes will be made", ""]

    groups: dict[WidgetAction, list[WidgetOutcome]] = defaultdict(list)
    for outcome in summary.outcomes:
        groups[outcome.action].append(outcome)

    display_order = [
        WidgetAction.CREATED,
        WidgetAction.MOVED_INACTIVE,
        WidgetAction.SKIPPED,
    ]
    for action in display_order:
        if action not in groups:
            continue
        label = action.value.upper().replace("_", " ")
        lines.append(f"[{label}]")
        for outcome in groups[action]:
            lines.append(f"  {outcome.sidebar_id}: {_describe(outcome)}")
        lines.append("")

    reused = len(groups.get(WidgetAction.REUSED, []))
    if reused:
        lines.append(f"Unchanged: {reused} widgets already present")
        lines.append("")

    if summary.sidebars_created:
        lines.append(
            "Sidebars to create: " + ", ".join(summary.sidebars_created)
        )
        lines.append("")

    if summary.warnings:
        lines.append("Warnings:")
        for warning in summary.warnings:
            lines.append(f"  {warning.sidebar_id}: {warning.message}")
        lines.append("")

    if not any(a in groups for a in display_order) and not summary.sidebars_created:
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def summary_to_json(summary: ImportSummary) -> dict:
    """Convert an import summary to a structured dict.

    Suitable for MCP ``structuredContent`` output.
    """
    outcomes = []
    for o in summary.outcomes:
        entry: dict = {"sidebar_id": o.sidebar_id, "action": o.action.value}
        if o.widget_type is not None:
            entry["widget_type"] = o.widget_type
        if o.source_index is not None:
            entry["source_index"] = o.source_index
        if o.target_index is not None:
            entry["target_index"] = o.target_index
        if o.title:
            entry["title"] = o.title
        if o.message:
            entry["message"] = o.message
        outcomes.append(entry)

    return {
        "dry_run": summary.dry_run,
        "started_at": summary.started_at,
        "completed_at": summary.completed_at,
        "counts": {
            "created": summary.widgets_created,
            "reused": summary.widgets_reused,
            "moved_to_inactive": summary.widgets_moved_to_inactive,
            "skipped": summary.widgets_skipped,
            "sidebars_created": len(summary.sidebars_created),
        },
        "sidebars_created": list(summary.sidebars_created),
        "warnings": [
            {
                "code": w.code.value,
                "sidebar_id": w.sidebar_id,
                "message": w.message,
                **({"widget_type": w.widget_type} if w.widget_type else {}),
            }
            for w in summary.warnings
        ],
        "writes": list(summary.writes),
        "outcomes": outcomes,
    }
