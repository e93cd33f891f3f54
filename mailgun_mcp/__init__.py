"""Mailgun API exposed as Model Context Protocol tools."""

from mailgun_mcp.config import SERVER_NAME, SERVER_VERSION

__version__ = SERVER_VERSION

__all__ = [
    "SERVER_NAME",
    "__version__",
]
