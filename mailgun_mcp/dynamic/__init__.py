"""Dynamic MCP server package.

This package turns operations from an OpenAPI description into MCP tools:
it translates their schemas into argument models, maps validated arguments
onto HTTP requests and serves the result over MCP.
"""

from .core import DynamicMCPServer
from .endpoint_manager import EndpointManager
from .models import HTTPMethod, OperationDetails, ParamField, RegisteredTool
from .openapi import get_operation_details, resolve_reference, sanitize_tool_id
from .schema import build_args_model, build_params_schema, openapi_to_schema

__all__ = [
    "DynamicMCPServer",
    "EndpointManager",
    "HTTPMethod",
    "OperationDetails",
    "ParamField",
    "RegisteredTool",
    "get_operation_details",
    "resolve_reference",
    "sanitize_tool_id",
    "build_args_model",
    "build_params_schema",
    "openapi_to_schema",
]
