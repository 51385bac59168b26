"""Stdio MCP server exposing widget export and import as tools."""
