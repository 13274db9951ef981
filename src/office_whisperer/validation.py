'''
Argument validation against a tool's inputSchema (JSON Schema 2020-12).
'''

from jsonschema import Draft202012Validator


class InvalidParamsError(ValueError):
    """Raised when tools/call arguments do not satisfy the tool's schema."""

    def __init__(self, tool_name: str, errors: list[str]):
        super().__init__(f"Invalid params for {tool_name}: {'; '.join(errors)}")
        self.tool_name = tool_name
        self.errors = errors


def check_schema(schema: dict) -> None:
    """Raise jsonschema.SchemaError if the schema itself is malformed."""
    Draft202012Validator.check_schema(schema)


def build_validator(schema: dict) -> Draft202012Validator:
    return Draft202012Validator(schema)


def validation_errors(validator: Draft202012Validator, arguments: dict) -> list[str]:
    errors = sorted(validator.iter_errors(arguments), key=lambda e: [str(p) for p in e.path])
    return [f"path={'/'.join(map(str, e.path))} msg={e.message}" for e in errors]


def validate_arguments(tool_name: str, validator: Draft202012Validator, arguments: dict) -> None:
    errors = validation_errors(validator, arguments)
    if errors:
        raise InvalidParamsError(tool_name, errors)
