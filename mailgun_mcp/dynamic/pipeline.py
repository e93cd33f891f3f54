"""Mapping of validated tool arguments onto an HTTP request.

Three pure stages run per call: path substitution, query/body partitioning,
and query string composition.
"""

import json
from typing import Any, Dict, List, Tuple
from urllib.parse import quote, urlencode


class MissingPathParameterError(ValueError):
    """Raised when a URL template placeholder has no argument"""

    def __init__(self, name: str):
        super().__init__(f"Required path parameter '{name}' is missing")
        self.name = name


def _declared(operation: Dict[str, Any], location: str) -> List[Dict[str, Any]]:
    return [
        p for p in operation.get("parameters") or []
        if isinstance(p, dict) and p.get("in") == location
    ]


def stringify(value: Any) -> str:
    """Render an argument value the way Mailgun expects it on the wire"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def process_path_parameters(path: str, operation: Dict[str, Any], params: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """Substitute path parameters into a URL template

    Args:
        path: URL template with {placeholders}
        operation: OpenAPI operation object
        params: Tool call arguments

    Returns:
        Tuple of the substituted path and the arguments left over

    Raises:
        MissingPathParameterError: If a path parameter has no value
    """
    actual_path = path
    remaining_params = dict(params)

    for param in _declared(operation, "path"):
        name = param["name"]
        value = params.get(name)
        if value is None or value == "":
            raise MissingPathParameterError(name)
        # same reserved set as encodeURIComponent
        actual_path = actual_path.replace(f"{{{name}}}", quote(stringify(value), safe="-_.!~*'()"))
        remaining_params.pop(name, None)

    return actual_path, remaining_params


def separate_parameters(params: Dict[str, Any], operation: Dict[str, Any], method: str) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split arguments into query parameters and body parameters

    Args:
        params: Arguments left after path substitution
        operation: OpenAPI operation object
        method: HTTP method

    Returns:
        Tuple of (query_params, body_params); body_params is empty for GET
    """
    defined_query_params = {p.get("name") for p in _declared(operation, "query")}
    query_params: Dict[str, Any] = {}
    body_params: Dict[str, Any] = {}

    for key, value in params.items():
        if key in defined_query_params:
            query_params[key] = value
        else:
            body_params[key] = value

    if method.upper() == "GET":
        query_params.update(body_params)
        body_params = {}

    return query_params, body_params


def append_query_string(path: str, query_params: Dict[str, Any]) -> str:
    if not query_params:
        return path

    pairs = [(key, stringify(value)) for key, value in query_params.items() if value is not None]
    return f"{path}?{urlencode(pairs)}"


def form_fields(body_params: Dict[str, Any]) -> List[Tuple[str, str]]:
    """Flatten body arguments into form fields, repeating keys for lists"""
    fields: List[Tuple[str, str]] = []
    for key, value in body_params.items():
        if isinstance(value, (list, tuple)):
            fields.extend((key, stringify(item)) for item in value)
        elif value is not None:
            fields.append((key, stringify(value)))
    return fields


__all__ = [
    "MissingPathParameterError",
    "stringify",
    "process_path_parameters",
    "separate_parameters",
    "append_query_string",
    "form_fields",
]
