"""llm-memory command-line interface."""
