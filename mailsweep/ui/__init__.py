"""Output formatting for tool responses and the command line."""
