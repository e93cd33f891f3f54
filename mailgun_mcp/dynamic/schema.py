"""Translation of OpenAPI schema fragments into argument validators.

Translation runs in two passes. `openapi_to_schema` walks a raw OpenAPI
fragment and produces the schema IR from `models`. `schema_to_annotation`
and `build_args_model` then interpret that IR as pydantic types, so every
tool gets a model that validates its call arguments and yields the JSON
Schema advertised to MCP clients.

Translation never raises for a bad reference: it logs and falls back to a
permissive `AnySchema` so one broken fragment cannot abort startup.
"""

import dataclasses
import keyword
import logging
import re
from typing import Annotated, Any, Dict, List, Literal, Optional, Set, Type, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, create_model

from .models import (
    AnySchema,
    ArraySchema,
    BooleanSchema,
    EnumSchema,
    NumberSchema,
    ObjectSchema,
    OpenObjectSchema,
    ParamField,
    SchemaNode,
    StringSchema,
    UnionSchema,
)
from .openapi import resolve_reference

# Request body media types, most preferred first. Only the first one an
# operation declares is used.
CONTENT_TYPE_PRIORITY = (
    "application/json",
    "multipart/form-data",
    "application/x-www-form-urlencoded",
)

# The upstream Mailgun description references EventSeverityType without
# defining it.
EVENT_SEVERITY_TYPE = "EventSeverityType"
EVENT_SEVERITY_VALUES = ("temporary", "permanent")

_RESERVED_FIELD_NAMES = set(dir(BaseModel))


class ToolArguments(BaseModel):
    """Base for generated argument models"""
    model_config = ConfigDict(extra="ignore")


def openapi_to_schema(schema: Optional[Dict[str, Any]], full_spec: Dict[str, Any]) -> SchemaNode:
    """Convert an OpenAPI schema fragment into a schema IR node

    Args:
        schema: OpenAPI schema object, may be None
        full_spec: Complete OpenAPI document, used for $ref lookups

    Returns:
        The corresponding SchemaNode
    """
    if not schema or not isinstance(schema, dict):
        return AnySchema()

    if "$ref" in schema:
        return _translate_reference(schema["$ref"], full_spec)

    description = schema.get("description") or ""
    schema_type = schema.get("type")

    if schema_type == "string":
        if schema.get("enum"):
            return EnumSchema(values=tuple(schema["enum"]), description=description)
        if schema.get("format") == "uri":
            description = f"URI: {description}"
        return StringSchema(description=description, email=schema.get("format") == "email")

    if schema_type in ("number", "integer"):
        return NumberSchema(
            description=description,
            integer=schema_type == "integer",
            minimum=schema.get("minimum"),
            maximum=schema.get("maximum"),
        )

    if schema_type == "boolean":
        return BooleanSchema(description=description)

    if schema_type == "array":
        return ArraySchema(items=openapi_to_schema(schema.get("items"), full_spec), description=description)

    if schema_type == "object":
        if not schema.get("properties"):
            return OpenObjectSchema(description=description)
        return _translate_object(schema, full_spec, description)

    # Untyped fragments
    if schema.get("properties"):
        return _translate_object(schema, full_spec, description)

    for union_key in ("oneOf", "anyOf"):
        if schema.get(union_key):
            branches = tuple(openapi_to_schema(branch, full_spec) for branch in schema[union_key])
            return UnionSchema(branches=branches, description=description)

    return AnySchema(description=description)


def _translate_reference(ref: str, full_spec: Dict[str, Any]) -> SchemaNode:
    if not ref.startswith("#/"):
        logging.error(f"[SchemaTranslator] Unsupported reference format: {ref}")
        return AnySchema(description=f"Unsupported reference: {ref}")

    try:
        referenced = resolve_reference(ref, full_spec)
    except (KeyError, TypeError, IndexError):
        referenced = None

    if referenced is None:
        if EVENT_SEVERITY_TYPE in ref.split("/"):
            return EnumSchema(values=EVENT_SEVERITY_VALUES, description="Filter by event severity")
        logging.error(f"[SchemaTranslator] Failed to resolve reference: {ref}")
        return AnySchema(description=f"Failed reference: {ref}")

    return openapi_to_schema(referenced, full_spec)


def _translate_object(schema: Dict[str, Any], full_spec: Dict[str, Any], description: str) -> ObjectSchema:
    properties = tuple(
        (name, openapi_to_schema(prop, full_spec))
        for name, prop in schema["properties"].items()
    )
    return ObjectSchema(
        properties=properties,
        required=frozenset(schema.get("required") or ()),
        description=description,
    )


# ──────────────────────────────────────────────────────────────────────────────
# IR -> pydantic
# ──────────────────────────────────────────────────────────────────────────────

def _bounded(base: Any, node: NumberSchema) -> Any:
    constraints = {}
    if node.minimum is not None:
        constraints["ge"] = node.minimum
    if node.maximum is not None:
        constraints["le"] = node.maximum
    if not constraints:
        return base
    return Annotated[base, Field(**constraints)]


def schema_to_annotation(node: SchemaNode, model_name: str = "Nested") -> Any:
    """Interpret a schema IR node as a pydantic-compatible type annotation

    Args:
        node: The SchemaNode to interpret
        model_name: Name used if the node needs a nested model

    Returns:
        A type usable as a pydantic field annotation
    """
    if isinstance(node, StringSchema):
        return EmailStr if node.email else str

    if isinstance(node, EnumSchema):
        return Literal[node.values]

    if isinstance(node, NumberSchema):
        if node.integer:
            return _bounded(int, node)
        # int stays int so query strings keep "10" rather than "10.0"
        return Union[_bounded(int, node), _bounded(float, node)]

    if isinstance(node, BooleanSchema):
        return bool

    if isinstance(node, ArraySchema):
        return List[schema_to_annotation(node.items, f"{model_name}Item")]

    if isinstance(node, OpenObjectSchema):
        return Dict[str, Any]

    if isinstance(node, ObjectSchema):
        fields = {
            name: ParamField(schema=prop, required=name in node.required)
            for name, prop in node.properties
        }
        return build_args_model(model_name, fields)

    if isinstance(node, UnionSchema):
        members = tuple(
            schema_to_annotation(branch, f"{model_name}Option{index}")
            for index, branch in enumerate(node.branches)
        )
        return Union[members]

    return Any


def _field_name(name: str, used: Set[str]) -> str:
    candidate = re.sub(r"\W", "_", name)
    if (
        not candidate.isidentifier()
        or keyword.iskeyword(candidate)
        or candidate.startswith("_")
        or candidate.startswith("model_")
        or candidate in _RESERVED_FIELD_NAMES
    ):
        candidate = f"field_{candidate.lstrip('_')}"

    unique = candidate
    suffix = 2
    while unique in used:
        unique = f"{candidate}_{suffix}"
        suffix += 1
    used.add(unique)
    return unique


def _model_name(raw: str) -> str:
    parts = re.split(r"[^0-9A-Za-z]+", raw)
    name = "".join(part[:1].upper() + part[1:] for part in parts if part)
    return name or "Arguments"


def build_args_model(name: str, fields: Dict[str, ParamField]) -> Type[BaseModel]:
    """Build a pydantic model validating one tool's arguments

    Argument names that are not usable as attribute names (Mailgun's
    `o:tag`, `h:X-My-Header`, `recipient-variables`, ...) are stored under a
    sanitized field name and keep the original as their alias, so the JSON
    Schema and validation both use the real API name.

    Args:
        name: Model name
        fields: Ordered argument name to ParamField mapping

    Returns:
        A ToolArguments subclass
    """
    model_name = _model_name(name)
    used: Set[str] = set()
    definitions: Dict[str, Any] = {}

    for arg_name, param in fields.items():
        field_name = _field_name(arg_name, used)
        annotation = schema_to_annotation(param.schema, f"{model_name}{_model_name(arg_name)}")

        field_kwargs: Dict[str, Any] = {}
        if param.schema.description:
            field_kwargs["description"] = param.schema.description
        if field_name != arg_name:
            field_kwargs["alias"] = arg_name

        if param.required:
            definitions[field_name] = (annotation, Field(**field_kwargs))
        else:
            definitions[field_name] = (Optional[annotation], Field(default=None, **field_kwargs))

    return create_model(model_name, __base__=ToolArguments, **definitions)


# ──────────────────────────────────────────────────────────────────────────────
# Operation -> argument fields
# ──────────────────────────────────────────────────────────────────────────────

def build_params_schema(operation: Dict[str, Any], full_spec: Dict[str, Any]) -> Dict[str, ParamField]:
    """Collect the arguments of an operation

    Path parameters come first, then query parameters, then request body
    properties; a later source overrides an earlier one with the same name.

    Args:
        operation: OpenAPI operation object
        full_spec: Complete OpenAPI document

    Returns:
        Ordered argument name to ParamField mapping
    """
    params_schema: Dict[str, ParamField] = {}
    parameters = [p for p in operation.get("parameters") or [] if isinstance(p, dict)]

    process_parameters([p for p in parameters if p.get("in") == "path"], params_schema, full_spec)
    process_parameters([p for p in parameters if p.get("in") == "query"], params_schema, full_spec)

    if operation.get("requestBody"):
        process_request_body(operation["requestBody"], params_schema, full_spec)

    return params_schema


def process_parameters(parameters: List[Dict[str, Any]], params_schema: Dict[str, ParamField], full_spec: Dict[str, Any]) -> None:
    for param in parameters:
        node = openapi_to_schema(param.get("schema"), full_spec)
        # Mailgun documents most parameters on the parameter, not its schema
        if not node.description and param.get("description"):
            node = dataclasses.replace(node, description=param["description"])
        params_schema[param["name"]] = ParamField(schema=node, required=bool(param.get("required")))


def process_request_body(request_body: Dict[str, Any], params_schema: Dict[str, ParamField], full_spec: Dict[str, Any]) -> None:
    """Add the properties of the first supported request body media type

    Args:
        request_body: OpenAPI requestBody object
        params_schema: Target mapping to populate
        full_spec: Complete OpenAPI document
    """
    content = request_body.get("content")
    if not content:
        return

    for content_type in CONTENT_TYPE_PRIORITY:
        if not content.get(content_type):
            continue

        body_schema = content[content_type].get("schema") or {}
        if "$ref" in body_schema:
            try:
                body_schema = resolve_reference(body_schema["$ref"], full_spec)
            except (KeyError, TypeError, IndexError):
                logging.error(f"[SchemaTranslator] Failed to resolve request body reference: {body_schema['$ref']}")
                return

        required = body_schema.get("required") or []
        for prop, prop_schema in (body_schema.get("properties") or {}).items():
            if isinstance(prop_schema, dict) and "$ref" in prop_schema:
                try:
                    prop_schema = resolve_reference(prop_schema["$ref"], full_spec)
                except (KeyError, TypeError, IndexError):
                    # leave the $ref in place; the translator logs and falls back
                    pass
            params_schema[prop] = ParamField(
                schema=openapi_to_schema(prop_schema, full_spec),
                required=prop in required,
            )

        break


__all__ = [
    "CONTENT_TYPE_PRIORITY",
    "ToolArguments",
    "openapi_to_schema",
    "schema_to_annotation",
    "build_args_model",
    "build_params_schema",
    "process_parameters",
    "process_request_body",
]
