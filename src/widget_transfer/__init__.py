"""Widget configuration import/export engine with an MCP tool surface."""

__version__ = "1.0.0"
