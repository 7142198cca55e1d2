"""mailsweep - safe bulk cleanup of a Gmail mailbox over MCP."""

__version__ = "0.1.0"
