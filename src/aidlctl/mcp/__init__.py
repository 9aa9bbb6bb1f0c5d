"""MCP adapter: the record operations as remotely invokable tools."""
