"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import TransferConfig, UnifiedConfig, build_config
from ..core.async_utils import run_sync
from ..core.registry import JsonFileRegistry
from ..transfer.service import WidgetTransfer

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are visible to env var lookups and YAML interpolation)
    - Load YAML config files if present
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Open the JSON registry and read it once
    - Fail fast if the registry is unreadable

    Args:
        config_overrides: Optional dict with CLI values (registry_path,
            read_only, debug)

    Yields:
        Dict with 'transfer' (WidgetTransfer) and 'config' (Config) keys

    Raises:
        RuntimeError: If configuration is invalid or the registry cannot be read.
    """
    logger.info("MCP server starting...")
    _stderr_print("Widget Transfer MCP Server starting...")

    try:
        # .env first so ${VAR} interpolation in YAML can use its values
        load_dotenv()

        unified = UnifiedConfig()
        config_files = discover_config_files()
        sources = []
        if config_files:
            unified = build_config(load_hierarchical_config())
            sources.append(f"config file: {config_files[0]}")

        overrides = config_overrides or {}
        config = load_config(
            registry_path=overrides.get("registry_path"),
            read_only=overrides.get("read_only", False),
            debug=overrides.get("debug", False),
            yaml_config=unified,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info("Registry: %s", config.registry_path)
        _stderr_print(f"  Registry: {config.registry_path}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Ensure WIDGET_REGISTRY_PATH is set.")
        raise RuntimeError(
            f"Configuration error: {e}. Ensure WIDGET_REGISTRY_PATH is set."
        ) from e

    registry = JsonFileRegistry(config.registry_path)
    transfer = WidgetTransfer(
        registry,
        config=TransferConfig(
            allowed_mime_types=list(config.allowed_mime_types),
            max_document_bytes=config.max_document_bytes,
            generator_version=config.generator_version,
            include_inactive=config.include_inactive,
        ),
    )

    logger.info("Reading widget registry...")
    try:
        snapshot = await run_sync(transfer.reader.snapshot)
    except Exception as e:
        logger.error("Failed to read widget registry: %s", e)
        _stderr_print("ERROR: Widget registry could not be read.")
        _stderr_print(f"  {e}")
        raise RuntimeError(f"Widget registry unreadable: {e}") from e

    logger.info(
        "Registry has %d sidebars and %d widget types",
        len(snapshot.sidebars),
        len(snapshot.buckets),
    )
    _stderr_print(
        f"  {len(snapshot.sidebars)} sidebars, "
        f"{len(snapshot.buckets)} widget types"
    )
    if config.read_only:
        _stderr_print("  Read-only mode: widget_import disabled")
    _stderr_print("Server ready. Waiting for MCP client connection...")

    yield {"transfer": transfer, "config": config}

    logger.info("MCP server shutting down")
    _stderr_print("Widget Transfer MCP Server shutting down.")
