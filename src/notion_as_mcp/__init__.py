"""Read-through cache and refresh loop between a Notion database and an MCP server."""

__version__ = "0.1.0"
