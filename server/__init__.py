"""QIQ MCP server: dispatcher, context and transports."""
