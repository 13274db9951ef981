'''
Shorthand builders for the JSON schemas attached to each tool.

    object_schema({"filename": string(), "rows": array()}, required=["filename"])
'''

from typing import Any, Optional


def _with_description(schema: dict, description: Optional[str]) -> dict:
    if description:
        schema["description"] = description
    return schema


def string(description: Optional[str] = None, enum: Optional[list] = None) -> dict:
    schema: dict[str, Any] = {"type": "string"}
    if enum:
        schema["enum"] = list(enum)
    return _with_description(schema, description)


def number(description: Optional[str] = None) -> dict:
    return _with_description({"type": "number"}, description)


def integer(description: Optional[str] = None) -> dict:
    return _with_description({"type": "integer"}, description)


def boolean(description: Optional[str] = None) -> dict:
    return _with_description({"type": "boolean"}, description)


def array(items: Optional[dict] = None, description: Optional[str] = None) -> dict:
    schema: dict[str, Any] = {"type": "array"}
    if items is not None:
        schema["items"] = items
    return _with_description(schema, description)


def obj(properties: Optional[dict] = None, required: Optional[list] = None,
        description: Optional[str] = None) -> dict:
    """Nested object. Unknown keys are allowed, as the Office libraries ignore them."""
    schema: dict[str, Any] = {"type": "object"}
    if properties:
        schema["properties"] = properties
    if required:
        schema["required"] = list(required)
    return _with_description(schema, description)


def string_or_list(description: Optional[str] = None) -> dict:
    return _with_description(
        {"anyOf": [{"type": "string"}, {"type": "array", "items": {"type": "string"}}]},
        description,
    )


def object_schema(properties: dict, required: Optional[list] = None) -> dict:
    """Top-level inputSchema for a tool."""
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = list(required)
    return schema


OUTPUT_PATH = string("Optional output directory (or file path where noted)")
FILENAME = string("Path to the document to modify")
SHEET_NAME = string("Worksheet name")
SLIDE_NUMBER = integer("1-based slide number")

IMAP_CONFIG = obj({
    "host": string(),
    "port": integer(),
    "user": string(),
    "password": string(),
    "tls": boolean(),
    "timeout": number(),
}, required=["host", "port", "user", "password"],
    description="IMAP connection settings; without it the tool only describes the operation")

SMTP_CONFIG = obj({
    "host": string(),
    "port": integer(),
    "secure": boolean(),
    "auth": obj({"user": string(), "pass": string()}),
    "timeout": number(),
}, required=["host", "port"], description="SMTP connection settings")
