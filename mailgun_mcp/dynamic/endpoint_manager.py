"""Endpoint management for OpenAPI-derived Mailgun tools.

This module provides the EndpointManager class which registers located
OpenAPI operations as MCP tools and dispatches tool calls to the Mailgun API.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from mailgun_mcp.config import MAILGUN_API_BASE_URL, MAILGUN_API_USER, get_api_key

from .models import HTTPMethod, OperationDetails, RegisteredTool
from .openapi import sanitize_tool_id
from .pipeline import (
    MissingPathParameterError,
    append_query_string,
    form_fields,
    process_path_parameters,
    separate_parameters,
)
from .schema import build_args_model, build_params_schema


class EndpointManager:
    """Registry of Mailgun tools and their dispatcher

    The manager is created by the startup routine, filled once from the
    OpenAPI description and then handed to the MCP server. Tools are never
    removed or changed after registration.

    Args:
        openapi_spec: Parsed OpenAPI document the tools are built from
        base_url: Scheme and host requests are sent to
        api_key: Mailgun API key; read from MAILGUN_API_KEY at call time if omitted
    """

    def __init__(self, openapi_spec: Dict[str, Any], base_url: str = MAILGUN_API_BASE_URL, api_key: Optional[str] = None):
        self.openapi_spec = openapi_spec
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.tools: Dict[str, RegisteredTool] = {}
        logging.info(f"[EndpointManager] Initialized endpoint manager for {self.base_url}")

    def add_endpoint(self, method: str, path: str, details: OperationDetails) -> RegisteredTool:
        """Register a located operation as an MCP tool

        Args:
            method: HTTP method from the allow-list
            path: URL template from the allow-list
            details: Operation located in the OpenAPI document

        Returns:
            The registered tool

        Raises:
            ValueError: If a tool with the same name already exists
        """
        tool_name = sanitize_tool_id(details.operation_id)
        if tool_name in self.tools:
            raise ValueError(f"Tool '{tool_name}' already exists")

        operation = details.operation
        fields = build_params_schema(operation, self.openapi_spec)
        tool = RegisteredTool(
            name=tool_name,
            description=operation.get("summary") or f"{method.upper()} {path}",
            method=HTTPMethod(method.upper()),
            path=path,
            operation=operation,
            fields=fields,
            args_model=build_args_model(tool_name, fields),
        )
        self.tools[tool_name] = tool

        logging.info(f"[EndpointManager] Added endpoint '{tool_name}' as MCP tool ({tool.method.value} {path})")
        return tool

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> dict:
        """Validate arguments and call the Mailgun endpoint behind a tool

        Args:
            name: Registered tool name
            arguments: Raw arguments from the MCP client

        Returns:
            Dict containing success status, data, and message
        """
        if name not in self.tools:
            logging.error(f"[EndpointManager] Tool '{name}' not found")
            return {"success": False, "message": f"Tool '{name}' not found"}

        tool = self.tools[name]
        try:
            validated = tool.args_model.model_validate(arguments or {})
        except ValidationError as e:
            logging.warning(f"[EndpointManager] Invalid arguments for '{name}': {e}")
            return {"success": False, "message": f"Invalid arguments for {name}: {e}"}

        params = validated.model_dump(mode="json", by_alias=True, exclude_unset=True)
        method = tool.method.value

        try:
            actual_path, remaining_params = process_path_parameters(tool.path, tool.operation, params)
        except MissingPathParameterError as e:
            logging.warning(f"[EndpointManager] {name}: {e}")
            return {"success": False, "message": str(e)}

        query_params, body_params = separate_parameters(remaining_params, tool.operation, method)
        final_path = append_query_string(actual_path, query_params)

        return await self._call_api_endpoint(method, final_path, None if method == "GET" else body_params)

    async def _call_api_endpoint(self, method: str, path: str, body_params: Optional[Dict[str, Any]] = None) -> dict:
        """Send one authenticated request to the Mailgun API

        Args:
            method: HTTP method
            path: Path including any query string
            body_params: Form fields for non-GET requests

        Returns:
            Dict containing success status, data, and message
        """
        api_key = self.api_key or get_api_key()
        if not api_key:
            logging.error("[EndpointManager] MAILGUN_API_KEY is not set")
            return {"success": False, "message": "MAILGUN_API_KEY environment variable is not set"}

        url = f"{self.base_url}/{path.lstrip('/')}"
        auth = aiohttp.BasicAuth(MAILGUN_API_USER, api_key)
        data = aiohttp.FormData(form_fields(body_params)) if body_params else None
        logging.info(f"[EndpointManager] Calling {method} {path}")

        try:
            # Mailgun calls are not retried and carry no timeout
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=None)) as session:
                async with session.request(method, url, auth=auth, data=data) as response:
                    return await self._process_response(response, method, path)
        except aiohttp.ClientError as e:
            logging.error(f"[EndpointManager] Request {method} {path} failed: {e}")
            return {"success": False, "message": f"Request to Mailgun failed: {e}"}
        except Exception as e:
            logging.exception(f"[EndpointManager] Error calling {method} {path}: {e}")
            return {"success": False, "message": f"Request to Mailgun failed: {str(e)}"}

    async def _process_response(self, response: aiohttp.ClientResponse, method: str, path: str) -> dict:
        """Process the HTTP response and return a standardized result

        Args:
            response: HTTP response object
            method: HTTP method of the request
            path: Requested path, used in the success message

        Returns:
            Dict containing success status, data, and message
        """
        text = await response.text()
        ok = 200 <= response.status < 300

        try:
            data = json.loads(text)
        except ValueError as e:
            if ok:
                logging.warning(f"[EndpointManager] Unparseable response from {method} {path}: {e}")
                return {
                    "success": False,
                    "status_code": response.status,
                    "message": f"Failed to parse response: {e}",
                }
            data = None

        if ok:
            logging.info(f"[EndpointManager] API call successful: {method} {path} returned {response.status}")
            return {
                "success": True,
                "status_code": response.status,
                "data": data,
                "message": f"✅ {method} {path} completed successfully",
            }

        logging.warning(f"[EndpointManager] API call failed: {method} {path} returned {response.status}")
        detail = data.get("message") if isinstance(data, dict) else None
        return {
            "success": False,
            "status_code": response.status,
            "data": data,
            "message": f"Mailgun API error: {detail or text}",
        }

    def get_tools(self) -> Dict[str, RegisteredTool]:
        """Get all registered tools

        Returns:
            Dictionary of tool name to RegisteredTool mappings
        """
        return self.tools

    def list_endpoints(self) -> List[dict]:
        """List all registered endpoints

        Returns:
            List of endpoint summaries as dictionaries
        """
        return [
            {
                "name": tool.name,
                "method": tool.method.value,
                "path": tool.path,
                "description": tool.description,
                "required": tool.required_arguments(),
            }
            for tool in self.tools.values()
        ]


__all__ = [
    "EndpointManager",
]
