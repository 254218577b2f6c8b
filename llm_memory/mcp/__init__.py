"""MCP tool server for llm-memory."""
