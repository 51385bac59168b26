"""Error response builders for MCP tool handlers.

Structured error responses carry a corrective action so AI agents can
recover from errors without human intervention.
"""

import mcp.types as types

from ...transfer.errors import (
    DanglingReference,
    DocumentValidationError,
    MalformedDocument,
    RegistryUnavailable,
    UnsupportedFormatVersion,
    UntrustedContent,
    WidgetTransferError,
    WriteBackError,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (untrusted_content, malformed_document,
            unsupported_format_version, dangling_reference,
            registry_unavailable, write_back_failed, validation_error,
            server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("malformed_document", "Invalid JSON", "Re-export the document.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


# ---------------------------------------------------------------------------
# Engine error translation
# ---------------------------------------------------------------------------

_VALIDATION_ACTIONS: dict[type[DocumentValidationError], str] = {
    UntrustedContent: (
        "Send the document as JSON text with mime_type application/json."
    ),
    MalformedDocument: (
        "Re-export the document with widget_export and import the "
        "unmodified output."
    ),
    UnsupportedFormatVersion: (
        "Export the document again with this server's version of "
        "widget-transfer."
    ),
    DanglingReference: (
        "Add the missing widget to the document's widgets array, or "
        "replace the reference with \"missing-widget\"."
    ),
}


def translate_transfer_error(
    error: WidgetTransferError,
) -> types.CallToolResult:
    """Translate an engine exception into a structured error response.

    Args:
        error: Any ``WidgetTransferError``.

    Returns:
        CallToolResult with isError=True and corrective action
    """
    match error:
        case DocumentValidationError():
            action = _VALIDATION_ACTIONS.get(
                type(error), "Check the document and retry."
            )
            return build_error_response(error.error_type, str(error), action)

        case RegistryUnavailable():
            return build_error_response(
                "registry_unavailable",
                str(error),
                "Check that the registry file exists and is readable, "
                "then retry.",
            )

        case WriteBackError():
            done = ", ".join(error.completed) or "none"
            return build_error_response(
                "write_back_failed",
                f"{error} (failed at {error.target}; completed: {done})",
                "Run widget_registry_status to inspect the registry, then "
                "re-run the import: matching makes a repeat import safe.",
            )

        case _:
            return build_error_response(
                "server_error",
                str(error),
                "Retry the operation or check the server log.",
            )
