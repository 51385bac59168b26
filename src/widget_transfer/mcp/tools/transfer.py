"""MCP tool handlers for widget export and import.

Defines four tools:

- ``widget_export`` -- serialise the registry, optionally to a file.
- ``widget_import`` -- import a document (with optional dry-run).
- ``widget_validate`` -- check a document without touching the registry.
- ``widget_registry_status`` -- summarise the live registry.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import mcp.types as types

from ...core.async_utils import run_sync
from ...file_handler import read_document_async, write_document_async
from ...transfer.models import INACTIVE_SIDEBAR_ID, is_missing
from ...transfer.reporter import (
    format_dry_run_preview,
    format_import_summary,
    summary_to_json,
)
from ...transfer.service import WidgetTransfer
from .registry import ToolSpec

logger = logging.getLogger(__name__)

_DEFAULT_MIME_TYPE = "application/json"

_DOCUMENT_PROPERTIES: dict[str, Any] = {
    "content": {
        "type": "string",
        "description": "Document JSON text. Provide either content or path.",
    },
    "path": {
        "type": "string",
        "description": "Absolute path to a document file (.json or legacy .wie)",
    },
    "mime_type": {
        "type": "string",
        "description": (
            "Declared MIME type. Defaults to application/json for content "
            "and to a guess from the file extension for path."
        ),
    },
}


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


TRANSFER_TOOLS: list[types.Tool] = [
    types.Tool(
        name="widget_export",
        description=(
            "Export every sidebar and widget in the registry as a portable "
            "JSON document. Returns the document, or writes it to "
            "output_path."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "output_path": {
                    "type": "string",
                    "description": "Absolute path to write the document to",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="widget_import",
        description=(
            "Import a widget document into the registry. Widgets already "
            "present are matched by content and kept; widgets the document "
            "drops are moved to the inactive bucket, never deleted. "
            "Repeating an import is safe."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                **_DOCUMENT_PROPERTIES,
                "sidebars": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Sidebar ids to import (default: all)",
                },
                "dry_run": {
                    "type": "boolean",
                    "default": False,
                    "description": "Preview changes without applying them",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="widget_validate",
        description=(
            "Validate a widget document (MIME type, JSON shape, format "
            "version, widget references) without importing it."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": dict(_DOCUMENT_PROPERTIES),
            "required": [],
        },
    ),
    types.Tool(
        name="widget_registry_status",
        description=(
            "Summarise the live registry: sidebars with widget counts, "
            "unregistered sidebars, and widget types in use."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
]


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


async def _read_document_arg(
    transfer: WidgetTransfer, args: dict[str, Any]
) -> tuple[bytes, str, str]:
    """Resolve ``content``/``path`` arguments to ``(raw, mime, source)``.

    Raises:
        ValueError: If neither or both are given, or the file is unusable.
    """
    content = args.get("content")
    path = args.get("path")
    if (content is None) == (path is None):
        raise ValueError("Provide exactly one of 'content' or 'path'")

    if content is not None:
        if not isinstance(content, str):
            raise ValueError("'content' must be a string")
        raw = content.encode("utf-8")
        mime = args.get("mime_type") or _DEFAULT_MIME_TYPE
        return raw, mime, "inline content"

    raw, guessed, resolved = await read_document_async(
        path, max_bytes=transfer.config.max_document_bytes
    )
    return raw, args.get("mime_type") or guessed, str(resolved)


def _sidebars_arg(args: dict[str, Any]) -> list[str] | None:
    sidebars = args.get("sidebars")
    if sidebars is None:
        return None
    if not isinstance(sidebars, list) or not all(
        isinstance(s, str) for s in sidebars
    ):
        raise ValueError("'sidebars' must be a list of sidebar ids")
    return sidebars


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_export(
    transfer: WidgetTransfer, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``widget_export`` tool."""
    payload = await run_sync(transfer.export)
    data = json.loads(payload)
    structured: dict[str, Any] = {
        "format_version": data["formatVersion"],
        "generator_version": data["generatorVersion"],
        "sidebars": len(data["sidebars"]),
        "widgets": len(data["widgets"]),
        "bytes": len(payload),
    }

    output_path = args.get("output_path")
    if output_path:
        resolved, count = await write_document_async(output_path, payload)
        structured["output_path"] = str(resolved)
        text = (
            f"Exported {structured['sidebars']} sidebars and "
            f"{structured['widgets']} widgets to {resolved} ({count} bytes)"
        )
    else:
        structured["document"] = data
        text = payload.decode("utf-8")

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


async def _handle_import(
    transfer: WidgetTransfer, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``widget_import`` tool."""
    raw, mime, source = await _read_document_arg(transfer, args)
    sidebars = _sidebars_arg(args)
    dry_run = bool(args.get("dry_run", False))

    logger.info(
        "Importing from %s (%s)%s", source, mime, " [dry run]" if dry_run else ""
    )
    summary = await run_sync(
        transfer.import_document, raw, mime, sidebars, dry_run
    )

    if dry_run:
        text = format_dry_run_preview(summary)
    else:
        text = format_import_summary(summary)

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=summary_to_json(summary),
    )


async def _handle_validate(
    transfer: WidgetTransfer, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``widget_validate`` tool."""
    raw, mime, source = await _read_document_arg(transfer, args)
    document = await run_sync(transfer.validate, raw, mime)

    lines = [
        f"Document is valid ({source})",
        f"  Format version: {document.format_version}",
        f"  Generator:      {document.generator_version or 'unknown'}",
        f"  Widgets:        {len(document.widgets)}",
        f"  Sidebars:       {len(document.sidebars)}",
    ]
    sidebars = []
    for sidebar in document.sidebars:
        missing = sum(1 for ref in sidebar.widget_refs if is_missing(ref))
        lines.append(
            f"    {sidebar.id}: {len(sidebar.widget_refs)} entries"
            + (f" ({missing} missing)" if missing else "")
        )
        sidebars.append(
            {
                "id": sidebar.id,
                "name": sidebar.name,
                "entries": len(sidebar.widget_refs),
                "missing": missing,
            }
        )

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={
            "valid": True,
            "format_version": document.format_version,
            "generator_version": document.generator_version,
            "widgets": len(document.widgets),
            "sidebars": sidebars,
        },
    )


async def _handle_registry_status(
    transfer: WidgetTransfer, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``widget_registry_status`` tool."""
    snapshot = await run_sync(transfer.reader.snapshot)
    registered = set(snapshot.registered_sidebar_ids)

    lines = ["Widget registry status", "  Sidebars:"]
    sidebars = []
    for sidebar in snapshot.sidebars:
        is_registered = sidebar.id in registered
        flag = ""
        if sidebar.id != INACTIVE_SIDEBAR_ID and not is_registered:
            flag = " [not registered]"
        lines.append(
            f"    {sidebar.id} ({sidebar.name}): "
            f"{len(sidebar.widget_refs)} widgets{flag}"
        )
        sidebars.append(
            {
                "id": sidebar.id,
                "name": sidebar.name,
                "widgets": len(sidebar.widget_refs),
                "registered": is_registered,
            }
        )

    types_in_use = {t: len(b) for t, b in sorted(snapshot.buckets.items())}
    lines.append("  Widget types:")
    for widget_type, count in types_in_use.items():
        lines.append(f"    {widget_type}: {count} instances")
    if not types_in_use:
        lines.append("    (none)")

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent={
            "taken_at": snapshot.taken_at,
            "sidebars": sidebars,
            "widget_types": types_in_use,
        },
    )


# ToolSpec list for registry-based dispatch
TRANSFER_SPECS: list[ToolSpec] = [
    ToolSpec(tool=TRANSFER_TOOLS[0], handler=_handle_export),
    ToolSpec(tool=TRANSFER_TOOLS[1], handler=_handle_import, writes=True),
    ToolSpec(tool=TRANSFER_TOOLS[2], handler=_handle_validate),
    ToolSpec(tool=TRANSFER_TOOLS[3], handler=_handle_registry_status),
]
