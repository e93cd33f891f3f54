# mailgun_server.py

import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from mailgun_mcp.config import OPENAPI_YAML, SERVER_NAME, is_test_mode
from mailgun_mcp.dynamic import DynamicMCPServer, EndpointManager, get_operation_details

logging.basicConfig(stream=sys.stderr, level=logging.INFO, format='[%(levelname)s] %(message)s')

# ──────────────────────────────────────────────────────────────────────────────
# 📬  Mailgun endpoints exposed as tools
# ──────────────────────────────────────────────────────────────────────────────

ENDPOINTS = (
    "POST /v3/{domain_name}/messages",
    "GET /v4/domains",
    "GET /v4/domains/{name}",
    "GET /v1/dkim/keys",
    "GET /v3/domains/{name}/sending_queues",
    "GET /v5/accounts/subaccounts/ip_pools",
    "GET /v3/ips",
    "GET /v3/ips/{ip}",
    "GET /v3/ips/{ip}/domains",
    "GET /v3/ip_pools",
    "GET /v3/ip_pools/{pool_id}",
    "GET /v3/ip_pools/{pool_id}/domains",
    "GET /v3/{domain_name}/events",
    "GET /v3/{domain}/tags",
    "GET /v3/{domain}/tag",
    "GET /v3/{domain}/tag/stats/aggregates",
    "GET /v3/{domain}/tag/stats",
    "GET /v3/domains/{domain}/tag/devices",
    "GET /v3/domains/{domain}/tag/providers",
    "GET /v3/domains/{domain}/tag/countries",
    "GET /v3/stats/total",
    "GET /v3/{domain}/stats/total",
    "GET /v3/stats/total/domains",
    "GET /v3/stats/filter",
    "GET /v3/domains/{domain}/limits/tag",
    "GET /v3/{domain}/aggregates/providers",
    "GET /v3/{domain}/aggregates/devices",
    "GET /v3/{domain}/aggregates/countries",
    "POST /v1/analytics/metrics",
    "POST /v1/analytics/usage/metrics",
    "POST /v1/analytics/logs",
    "GET /v3/{domainID}/bounces/{address}",
    "GET /v3/{domainID}/bounces",
    "GET /v3/{domainID}/unsubscribes/{address}",
    "GET /v3/{domainID}/unsubscribes",
    "GET /v3/{domainID}/complaints/{address}",
    "GET /v3/{domainID}/complaints",
    "GET /v3/{domainID}/whitelists/{value}",
    "GET /v3/{domainID}/whitelists",
    "GET /v3/accounts/email_domain_suppressions/{email_domain}",
    "GET /v3/routes",
    "GET /v3/routes/{id}",
    "GET /v3/routes/match",
    "GET /v3/lists",
    "GET /v3/lists/{list_address}/members",
    "GET /v3/lists/{list_address}/members/{member_address}",
    "GET /v3/lists/{list_address}",
    "GET /v3/lists/pages",
    "GET /v3/lists/{list_address}/members/pages",
    "GET /v5/accounts/subaccounts/{subaccount_id}",
    "GET /v5/accounts/subaccounts",
    "GET /v5/accounts/limit/custom/monthly",
    "GET /v1/keys",
    "GET /v2/ip_whitelist",
    "GET /v5/users",
    "GET /v5/users/{user_id}",
    "GET /v5/users/me",
)


def parse_endpoint(endpoint: str) -> Tuple[str, str]:
    """Split an allow-list entry like "GET /v4/domains" into method and path"""
    method, path = endpoint.split(" ", 1)
    return method, path.strip()


# ──────────────────────────────────────────────────────────────────────────────
# 📄  OpenAPI description
# ──────────────────────────────────────────────────────────────────────────────

def load_openapi_spec(file_path: Union[str, Path] = OPENAPI_YAML) -> Dict[str, Any]:
    """Load and parse the OpenAPI description from a YAML file

    Exits the process on failure unless MAILGUN_MCP_ENV=test, in which case
    the error is raised to the caller.
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            spec = yaml.safe_load(f)
        if not isinstance(spec, dict):
            raise ValueError(f"{file_path} does not contain an OpenAPI document")
        return spec
    except (OSError, yaml.YAMLError, ValueError) as e:
        logging.error(f"[MailgunMCP] Error loading OpenAPI spec: {e}")
        if not is_test_mode():
            sys.exit(1)
        raise


def generate_tools_from_openapi(openapi_spec: Dict[str, Any], endpoint_manager: EndpointManager, endpoints: Optional[Tuple[str, ...]] = None) -> int:
    """Register one tool per allow-listed endpoint found in the description

    Endpoints missing from the description are skipped with a warning; any
    other failure is logged and only skips that endpoint.

    Returns:
        Number of tools registered
    """
    registered = 0
    for endpoint in endpoints or ENDPOINTS:
        try:
            method, path = parse_endpoint(endpoint)
            details = get_operation_details(openapi_spec, method, path)

            if not details:
                logging.warning(f"[MailgunMCP] Could not match endpoint: {method} {path} in OpenAPI spec")
                continue

            endpoint_manager.add_endpoint(method, path, details)
            registered += 1

        except Exception as e:
            logging.error(f"[MailgunMCP] Failed to process endpoint {endpoint}: {e}")

    logging.info(f"[MailgunMCP] Registered {registered} of {len(endpoints or ENDPOINTS)} endpoints")
    return registered


# ──────────────────────────────────────────────────────────────────────────────
# 🛰️  MCP Server
# ──────────────────────────────────────────────────────────────────────────────

def build_mcp_mailgun_server(openapi_path: Union[str, Path] = OPENAPI_YAML) -> DynamicMCPServer:
    """Load the description, register every tool and wrap them in an MCP server"""
    openapi_spec = load_openapi_spec(openapi_path)
    manager = EndpointManager(openapi_spec)
    generate_tools_from_openapi(openapi_spec, manager)
    return DynamicMCPServer(SERVER_NAME, manager)


def tool_names(server: DynamicMCPServer) -> List[str]:
    return list(server.get_endpoint_manager().get_tools().keys())


__all__ = [
    "ENDPOINTS",
    "parse_endpoint",
    "load_openapi_spec",
    "generate_tools_from_openapi",
    "build_mcp_mailgun_server",
    "tool_names",
]
