"""wabridge -- HTTP and webhook bridge for a paired chat-transport session."""

__version__ = "1.4.0"
