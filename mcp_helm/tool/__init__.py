"""Command line interface for mcp-helm."""
