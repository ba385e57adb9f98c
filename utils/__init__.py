"""QIQ MCP utilities."""
