"""Lookups into a parsed OpenAPI document.

Reference resolution and operation matching used when turning the
allow-listed Mailgun endpoints into MCP tools.
"""

import re
from typing import Any, Dict, Optional

from .models import OperationDetails

_NON_WORD = re.compile(r"[^\w-]")
_DASH_RUN = re.compile(r"-+")


def resolve_reference(ref: str, full_spec: Dict[str, Any]) -> Any:
    """Resolve an internal pointer such as #/components/schemas/ModelName

    Args:
        ref: Reference string
        full_spec: Complete OpenAPI document

    Returns:
        The fragment found at the pointer

    Raises:
        KeyError, TypeError: If the pointer does not lead anywhere
    """
    segments = ref.replace("#/", "", 1).split("/")
    node = full_spec
    for segment in segments:
        node = node[segment]
    return node


def get_operation_details(openapi_spec: Dict[str, Any], method: str, path: str) -> Optional[OperationDetails]:
    """Find the operation for a method and URL template

    Args:
        openapi_spec: Parsed OpenAPI document
        method: HTTP method, any case
        path: URL template exactly as it appears under `paths`

    Returns:
        OperationDetails, or None if the document has no such operation
    """
    path_item = (openapi_spec.get("paths") or {}).get(path)
    if not isinstance(path_item, dict):
        return None

    operation = path_item.get(method.lower())
    if not isinstance(operation, dict):
        return None

    collapsed = _DASH_RUN.sub("-", _NON_WORD.sub("-", path))
    return OperationDetails(operation=operation, operation_id=f"{method}-{collapsed}")


def sanitize_tool_id(operation_id: str) -> str:
    return _NON_WORD.sub("-", operation_id).lower()


__all__ = [
    "resolve_reference",
    "get_operation_details",
    "sanitize_tool_id",
]
