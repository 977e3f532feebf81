"""Oracle advisor: senior-engineer guidance over MCP and HTTP."""

__version__ = "0.1.0"
