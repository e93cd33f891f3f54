"""Static configuration and environment lookups for the Mailgun MCP server."""

import os
from pathlib import Path
from typing import Optional

SERVER_NAME = "mailgun"
SERVER_VERSION = "1.0.0"

MAILGUN_API_HOSTNAME = "api.mailgun.net"
MAILGUN_API_BASE_URL = f"https://{MAILGUN_API_HOSTNAME}"
MAILGUN_API_USER = "api"

OPENAPI_YAML = Path(__file__).resolve().parent / "openapi-final.yaml"

DEFAULT_SSE_PORT = 3001
DEFAULT_HOST = "0.0.0.0"


def get_api_key() -> Optional[str]:
    return os.getenv("MAILGUN_API_KEY")


def get_port() -> int:
    return int(os.getenv("PORT", DEFAULT_SSE_PORT))


def get_host() -> str:
    return os.getenv("HOST", DEFAULT_HOST)


def is_test_mode() -> bool:
    """True when fatal startup errors should be raised instead of exiting"""
    return os.getenv("MAILGUN_MCP_ENV", "").lower() == "test"


__all__ = [
    "SERVER_NAME",
    "SERVER_VERSION",
    "MAILGUN_API_HOSTNAME",
    "MAILGUN_API_BASE_URL",
    "MAILGUN_API_USER",
    "OPENAPI_YAML",
    "get_api_key",
    "get_port",
    "get_host",
    "is_test_mode",
]
