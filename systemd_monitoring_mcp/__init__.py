"""Read-only MCP gateway for systemd service state and journal logs."""

__version__ = "0.1.0"
