"""
Notes MCP - A note-management backend exposed as an MCP server.
This package implements a Model Context Protocol (MCP) server for managing notes
with tags and folders, backed by a small SQLite store with substring search,
filtering, sorting and pagination.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("notes-mcp")
except PackageNotFoundError:
    __version__ = "0.3.0"
