"""Unified configuration schema for widget_transfer.

Defines Pydantic models for the YAML config structure with dedicated
sections for the registry, transfer limits, the MCP server, and logging.
``config.load_config()`` layers env vars and CLI args on top.

Usage:
    from widget_transfer.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_MIME_TYPES: tuple[str, ...] = (
    "application/json",
    "text/json",
    "text/plain",
)

DEFAULT_MAX_DOCUMENT_BYTES = 10_000_000


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RegistryConfig(BaseModel):
    """Location of the JSON registry file served by the MCP server.

    Optional so env vars and CLI args can supply it at runtime instead.
    """

    path: str | None = Field(
        default=None, description="Path to the widget registry JSON file"
    )

    model_config = {"frozen": True}


class TransferConfig(BaseModel):
    """Export and import behaviour."""

    allowed_mime_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES),
        min_length=1,
        description="MIME types accepted for uploaded documents",
    )
    max_document_bytes: int = Field(
        default=DEFAULT_MAX_DOCUMENT_BYTES,
        ge=1,
        description="Largest accepted document, in bytes",
    )
    generator_version: str | None = Field(
        default=None,
        description="generatorVersion written on export (default: package id)",
    )
    include_inactive: bool = Field(
        default=True,
        description="Export the inactive widgets bucket",
    )

    model_config = {"frozen": True}


class ServerConfig(BaseModel):
    """MCP server behaviour."""

    read_only: bool = Field(
        default=False,
        description="Hide tools that write to the registry",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            ``None`` keeps the mode default of ``setup_logging()``.
        file: Optional log file path.
    """

    level: str | None = Field(default=None, description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has defaults, so ``UnifiedConfig()`` is always valid.
    """

    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    transfer: TransferConfig = Field(default_factory=TransferConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)
