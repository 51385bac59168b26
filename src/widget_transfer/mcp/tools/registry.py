"""ToolSpec and ToolRegistry for read-only tool filtering.

Key concepts:
- ToolSpec: Immutable dataclass linking a Tool definition, an async handler
  with signature (transfer, args) -> CallToolResult, and whether the tool
  writes to the widget registry.
- ToolRegistry: Drops writing tools at construction time when the server
  runs read-only, then provides list_tools() and call_tool() dispatch with
  error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...transfer.errors import WidgetTransferError
from ...transfer.service import WidgetTransfer

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Immutable description of a single MCP tool.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        handler: Async handler with signature (transfer, args) -> CallToolResult.
        writes: True if the tool can modify the widget registry.
    """

    tool: types.Tool
    handler: Callable[[WidgetTransfer, dict], Awaitable[types.CallToolResult]]
    writes: bool = False


class ToolRegistry:
    """Registry of ToolSpecs.

    In read-only mode, specs with ``writes=True`` are left out entirely, so
    they are neither listed nor callable.
    """

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self.read_only = read_only
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            if read_only and spec.writes:
                logger.debug("Read-only: hiding tool %s", spec.tool.name)
                continue
            self._specs[spec.tool.name] = spec

    def list_tools(self) -> list[types.Tool]:
        """Return list of types.Tool for all registered specs."""
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        transfer: WidgetTransfer,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Engine errors, argument errors and unexpected exceptions are
        translated into structured CallToolResult responses.

        Raises:
            ValueError: If tool name is not registered (unknown or hidden).
        """
        from .errors import build_error_response, translate_transfer_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        args = arguments or {}
        try:
            return await spec.handler(transfer, args)
        except WidgetTransferError as e:
            logger.warning("%s failed: %s", name, e)
            return translate_transfer_error(e)
        except ValueError as e:
            return build_error_response(
                "validation_error",
                str(e),
                "Check parameter values and retry.",
            )
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return build_error_response(
                "server_error",
                str(e),
                "Retry the operation or check the server log.",
            )
