"""Core collaborators shared by the transfer engine and the MCP server."""

from .async_utils import run_sync
from .registry import InMemoryRegistry, JsonFileRegistry, WidgetRegistry

__all__ = [
    "InMemoryRegistry",
    "JsonFileRegistry",
    "WidgetRegistry",
    "run_sync",
]
