"""Data models for OpenAPI-derived endpoints and their tools.

This module contains the core data structures used to describe Mailgun
operations, the intermediate schema representation the translator produces,
and the registered tool records the MCP server serves.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Type, Union

from mcp import types as mcp_types
from pydantic import BaseModel


class HTTPMethod(Enum):
    """Supported HTTP methods for API endpoints"""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"


# Schema IR: one node type per supported OpenAPI schema shape.

@dataclass(frozen=True)
class AnySchema:
    description: str = ""


@dataclass(frozen=True)
class StringSchema:
    description: str = ""
    email: bool = False


@dataclass(frozen=True)
class EnumSchema:
    values: Tuple[Any, ...]
    description: str = ""


@dataclass(frozen=True)
class NumberSchema:
    description: str = ""
    integer: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None


@dataclass(frozen=True)
class BooleanSchema:
    description: str = ""


@dataclass(frozen=True)
class ArraySchema:
    items: "SchemaNode"
    description: str = ""


@dataclass(frozen=True)
class OpenObjectSchema:
    description: str = ""


@dataclass(frozen=True)
class ObjectSchema:
    properties: Tuple[Tuple[str, "SchemaNode"], ...]
    required: FrozenSet[str] = frozenset()
    description: str = ""


@dataclass(frozen=True)
class UnionSchema:
    branches: Tuple["SchemaNode", ...]
    description: str = ""


SchemaNode = Union[
    AnySchema,
    StringSchema,
    EnumSchema,
    NumberSchema,
    BooleanSchema,
    ArraySchema,
    OpenObjectSchema,
    ObjectSchema,
    UnionSchema,
]


@dataclass(frozen=True)
class ParamField:
    """One tool argument: its translated schema and whether it is required"""
    schema: SchemaNode
    required: bool = False


@dataclass
class OperationDetails:
    """An operation located in the API description

    Args:
        operation: The raw operation definition from the document
        operation_id: Canonical identifier built from verb and URL template
    """
    operation: Dict[str, Any]
    operation_id: str


@dataclass
class RegisteredTool:
    """A Mailgun endpoint exposed as an MCP tool

    Args:
        name: Unique tool name (sanitized operation identifier)
        description: Tool description shown to MCP clients
        method: HTTP method used when the tool is called
        path: URL template, e.g. /v3/{domain_name}/messages
        operation: Raw operation definition the tool was built from
        fields: Ordered argument name to ParamField mapping
        args_model: Pydantic model validating call arguments
    """
    name: str
    description: str
    method: HTTPMethod
    path: str
    operation: Dict[str, Any]
    fields: Dict[str, ParamField] = field(default_factory=dict)
    args_model: Optional[Type[BaseModel]] = None

    @property
    def input_schema(self) -> Dict[str, Any]:
        if self.args_model is None:
            return {"type": "object", "properties": {}}
        return self.args_model.model_json_schema(by_alias=True)

    def to_mcp_tool(self) -> mcp_types.Tool:
        return mcp_types.Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema,
        )

    def required_arguments(self) -> List[str]:
        return [name for name, param in self.fields.items() if param.required]


__all__ = [
    "HTTPMethod",
    "AnySchema",
    "StringSchema",
    "EnumSchema",
    "NumberSchema",
    "BooleanSchema",
    "ArraySchema",
    "OpenObjectSchema",
    "ObjectSchema",
    "UnionSchema",
    "SchemaNode",
    "ParamField",
    "OperationDetails",
    "RegisteredTool",
]
