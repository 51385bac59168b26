"""MCP Server for widget export and import using stdio transport.

This module implements the Model Context Protocol server that lets AI
agents export, validate and import widget configuration.

Transport: stdio
Protocol: JSON-RPC 2.0 over MCP
"""

import argparse
import asyncio
import logging
import os
import sys

import mcp.server.stdio
import mcp.types as types
import yaml
from dotenv import load_dotenv
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions

from .. import __version__
from ..config_loader import discover_config_files, load_hierarchical_config
from ..config_schema import LoggingConfig, build_config
from ..core.async_utils import run_sync
from ..logger import setup_logging
from ..transfer.service import WidgetTransfer
from ..version import check_version_consistency
from .lifespan import server_lifespan
from .tools import ALL_SPECS, ToolRegistry, build_error_response
from .tools.registry import ToolSpec

logger = logging.getLogger(__name__)

server = Server("widget-transfer-mcp")

# Initialized in main()
_transfer: WidgetTransfer | None = None
_tool_registry: ToolRegistry | None = None


# ---------------------------------------------------------------------------
# Ping tool (always available)
# ---------------------------------------------------------------------------


async def _handle_ping(
    transfer: WidgetTransfer, args: dict
) -> types.CallToolResult:
    """Handle ping tool -- check the widget registry can be read."""
    try:
        snapshot = await run_sync(transfer.reader.snapshot)
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=(
                        f"Widget transfer MCP server {__version__} ready. "
                        f"Registry has {len(snapshot.sidebars)} sidebars."
                    ),
                )
            ]
        )
    except Exception as e:
        return types.CallToolResult(
            content=[
                types.TextContent(
                    type="text",
                    text=f"Widget registry unreadable: {e}. Check WIDGET_REGISTRY_PATH.",
                )
            ],
            isError=True,
        )


PING_SPEC = ToolSpec(
    tool=types.Tool(
        name="ping",
        description="Check the widget transfer server and its registry are reachable",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
    handler=_handle_ping,
)


# ---------------------------------------------------------------------------
# Global accessors
# ---------------------------------------------------------------------------


def get_transfer() -> WidgetTransfer:
    """Get the global WidgetTransfer instance.

    Raises:
        RuntimeError: If the server lifespan has not started
    """
    if _transfer is None:
        raise RuntimeError(
            "WidgetTransfer not initialized. Server lifespan not started."
        )
    return _transfer


def set_transfer(transfer: WidgetTransfer | None) -> None:
    global _transfer
    _transfer = transfer


def get_tool_registry() -> ToolRegistry:
    """Get the global ToolRegistry instance.

    Raises:
        RuntimeError: If registry is not initialized
    """
    if _tool_registry is None:
        raise RuntimeError("ToolRegistry not initialized.")
    return _tool_registry


def set_tool_registry(registry: ToolRegistry | None) -> None:
    global _tool_registry
    _tool_registry = registry


# ---------------------------------------------------------------------------
# MCP protocol handlers
# ---------------------------------------------------------------------------


@server.list_tools()
async def handle_list_tools() -> list[types.Tool]:
    """List the tools enabled for this server (write tools hidden when read-only)."""
    return get_tool_registry().list_tools()


@server.call_tool()
async def handle_call_tool(
    name: str, arguments: dict | None
) -> types.CallToolResult:
    """Handle tool execution via ToolRegistry dispatch."""
    transfer = get_transfer()
    try:
        return await get_tool_registry().call_tool(name, arguments, transfer)
    except ValueError as e:
        # Unknown or hidden tool name
        return build_error_response(
            "unknown_tool",
            str(e),
            "Use list_tools to see available tools.",
        )


# ---------------------------------------------------------------------------
# Server lifecycle
# ---------------------------------------------------------------------------


def logging_section() -> LoggingConfig:
    """Return the ``logging:`` section of the YAML config.

    Defaults are returned when no config file exists or it cannot be
    parsed; ``server_lifespan()`` reports config errors once logging is up.
    """
    if not discover_config_files():
        return LoggingConfig()
    try:
        return build_config(load_hierarchical_config()).logging
    except (OSError, ValueError, yaml.YAMLError) as e:
        sys.stderr.write(f"Warning: ignoring logging config: {e}\n")
        return LoggingConfig()


async def main(config_overrides: dict | None = None):
    """Run the MCP server with stdio transport.

    Args:
        config_overrides: Optional dict of CLI values (registry_path,
            read_only, debug, log_file)
    """
    overrides = config_overrides or {}

    load_dotenv()
    log_section = logging_section()

    # Must run before stdio_server so nothing reaches stdout
    setup_logging(
        mode="mcp",
        debug=overrides.get("debug", False),
        log_file=(
            overrides.get("log_file")
            or os.getenv("LOG_FILE")
            or log_section.file
        ),
        level=log_section.level,
    )

    is_consistent, message = check_version_consistency()
    if not is_consistent:
        logger.warning(message)
        sys.stderr.write(f"Warning: {message}\n")
    else:
        logger.info(message)

    # set_transfer() is called here rather than in the lifespan: under
    # `python -m widget_transfer.mcp.server` this module is __main__, and a
    # `from . import server` in lifespan.py would load a second copy.
    async with server_lifespan(config_overrides=overrides) as ctx:
        all_specs = [PING_SPEC] + ALL_SPECS
        registry = ToolRegistry(all_specs, read_only=ctx["config"].read_only)
        logger.info(
            "Registered %d tools (of %d total)",
            registry.tool_count(),
            len(all_specs),
        )
        set_tool_registry(registry)
        set_transfer(ctx["transfer"])
        try:
            async with mcp.server.stdio.stdio_server() as (
                read_stream,
                write_stream,
            ):
                init_options = InitializationOptions(
                    server_name="widget-transfer-mcp",
                    server_version=__version__,
                    capabilities=server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={},
                    ),
                )
                await server.run(
                    read_stream, write_stream, init_options
                )
        finally:
            set_transfer(None)
            set_tool_registry(None)


def run() -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    parser = argparse.ArgumentParser(
        description="Widget Transfer MCP Server - export and import widget configuration over MCP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with default config (from .env or .widget_transfer/config.yml)
  widget-transfer-mcp

  # Serve a specific registry file
  widget-transfer-mcp --registry /srv/site/widgets.json

  # Expose only the reading tools
  widget-transfer-mcp --registry widgets.json --read-only

Note: This server uses stdio transport for JSON-RPC communication with MCP clients.
All user-facing messages are written to stderr.
        """,
    )

    parser.add_argument(
        "--registry",
        help="Widget registry JSON file (takes precedence over WIDGET_REGISTRY_PATH and config files)",
    )
    parser.add_argument(
        "--read-only",
        action="store_true",
        help="Hide tools that modify the registry",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Log file path (default: LOG_FILE, then logging.file in config.yml, then /tmp/widget-transfer-mcp.log)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"widget-transfer-mcp version {__version__}",
    )

    args = parser.parse_args()

    config_overrides: dict = {}
    if args.registry:
        config_overrides["registry_path"] = args.registry
    if args.read_only:
        config_overrides["read_only"] = True
    if args.debug:
        config_overrides["debug"] = True
    if args.log_file:
        config_overrides["log_file"] = args.log_file

    try:
        asyncio.run(main(config_overrides=config_overrides))
    except RuntimeError:
        # Already reported on stderr by the lifespan manager
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    run()
