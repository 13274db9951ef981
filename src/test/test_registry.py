"""Tests for the tool registry and schema helpers."""

import pytest
from jsonschema import SchemaError

from office_whisperer.registry import Tool, ToolRegistry, ToolSet, tool
from office_whisperer.schema import array, obj, object_schema, string, string_or_list


class Sample(ToolSet):

    @tool("first", "First tool", object_schema({"x": string()}, required=["x"]))
    def first(self, args):
        return f"first {args['x']}"

    @tool("second", "Second tool", object_schema({}))
    def second(self, args):
        return "second"

    def helper(self):
        return "not a tool"


class TestToolSet:

    def test_tools_in_definition_order(self):
        assert [t.name for t in Sample(None, None).tools()] == ["first", "second"]

    def test_handlers_bound(self):
        first = Sample(None, None).tools()[0]
        assert first.handler({"x": "y"}) == "first y"

    def test_descriptor(self):
        first = Sample(None, None).tools()[0]
        assert first.descriptor() == {
            "name": "first",
            "description": "First tool",
            "inputSchema": {"type": "object", "properties": {"x": {"type": "string"}}, "required": ["x"]},
        }


class TestToolRegistry:

    def test_register_all(self):
        registry = ToolRegistry()
        assert registry.register_all(Sample(None, None)) == 2
        assert registry.names() == ["first", "second"]
        assert "first" in registry
        assert registry.get("missing") is None

    def test_duplicate_rejected(self):
        registry = ToolRegistry()
        registry.register_all(Sample(None, None))
        with pytest.raises(ValueError, match="already registered"):
            registry.register_all(Sample(None, None))

    def test_malformed_schema_rejected(self):
        registry = ToolRegistry()
        bad = Tool("bad", "Bad schema", {"type": "object", "properties": {"x": {"type": "strnig"}}},
                   lambda args: "")
        with pytest.raises(SchemaError):
            registry.register(bad)


class TestCatalog:

    def test_counts_per_application(self, registry):
        names = registry.names()
        assert len(names) == 141
        assert sum(n == "create_excel" or n.startswith("excel_") for n in names) == 38
        assert sum(n == "create_word" or n.startswith("word_") for n in names) == 37
        assert sum(n == "create_powerpoint" or n.startswith("ppt_") for n in names) == 33
        assert sum(n.startswith("outlook_") for n in names) == 33

    def test_descriptions_present(self, registry):
        for item in registry:
            assert item.description.strip()

    def test_schemas_are_objects(self, registry):
        for item in registry:
            assert item.input_schema["type"] == "object"
            assert isinstance(item.input_schema["properties"], dict)


class TestSchemaBuilders:

    def test_string_enum(self):
        assert string("Kind", enum=["a", "b"]) == {"type": "string", "enum": ["a", "b"], "description": "Kind"}

    def test_nested(self):
        schema = array(obj({"name": string()}, required=["name"]))
        assert schema["items"]["required"] == ["name"]

    def test_string_or_list(self):
        schema = string_or_list()
        assert {"type": "string"} in schema["anyOf"]
