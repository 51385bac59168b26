"""MCP tool handlers for widget transfer operations.

This package wraps the synchronous ``WidgetTransfer`` service with async
handlers and structured error responses.
"""

from .errors import build_error_response, translate_transfer_error
from .registry import ToolRegistry, ToolSpec
from .transfer import TRANSFER_SPECS, TRANSFER_TOOLS

ALL_SPECS: list[ToolSpec] = list(TRANSFER_SPECS)

__all__ = [
    "build_error_response",
    "translate_transfer_error",
    # Registry
    "ToolSpec",
    "ToolRegistry",
    # Spec lists
    "ALL_SPECS",
    "TRANSFER_SPECS",
    "TRANSFER_TOOLS",
]
