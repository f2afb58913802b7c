"""daylog: dated log entries posted from a chat slash command."""

__version__ = "0.1.0"
