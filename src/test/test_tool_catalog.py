"""Every registered tool runs end to end on the smallest arguments its schema accepts."""

import pytest
from PIL import Image

from office_whisperer.errors import TableNotFoundError
from office_whisperer.generators import ExcelGenerator, OutlookGenerator, PowerPointGenerator, WordGenerator
from office_whisperer.paths import OutputPaths
from office_whisperer.tools import build_registry
from office_whisperer.validation import build_validator, validate_arguments

TOOL_NAMES = build_registry(
    excel=ExcelGenerator(),
    word=WordGenerator(),
    powerpoint=PowerPointGenerator(),
    outlook=OutlookGenerator(),
    paths=OutputPaths(),
).names()

EMAIL = "ada@example.com"
WHEN = "2024-03-04T09:00:00"

# required values the generic samples cannot satisfy
OVERRIDES = {
    "excel_data_table": {"formula": "C2"},
    "word_add_content": {"text": "Intro"},
    "ppt_reorder_slides": {"slideOrder": [3, 1, 2]},
    "ppt_add_table_slide": {"data": [["a"]]},
    "ppt_add_media": {"mediaType": "audio"},
}

# the sample workbook has no tables
EXPECTED_ERRORS = {
    "excel_table_formula": TableNotFoundError,
}


def application(name):
    prefix, _, rest = name.partition("_")
    return rest if prefix == "create" else prefix


def samples(name, workbook, document, presentation, image):
    """Values keyed by property name, for the documents a tool of `name` works on."""
    kind = application(name)
    if name.startswith("create_"):
        filename = {"excel": "new.xlsx", "word": "new.docx", "powerpoint": "new.pptx"}[kind]
    else:
        filename = {"excel": workbook, "word": document, "ppt": presentation}.get(kind)
    return {
        "filename": filename,
        "excelPath": workbook,
        "originalPath": document,
        "revisedPath": document,
        "templatePath": document,
        "path": image,
        "imagePath": image,
        "mediaPath": image,
        "sheetName": "Sales",
        "range": "A1:C4",
        "dataRange": "A1:C4",
        "name": "Summary",
        "to": EMAIL,
        "email": EMAIL,
        "delegateEmail": EMAIL,
        "files": [workbook],
        "documents": [document],
    }


def sample_string(key, values):
    if key in values:
        return values[key]
    if key in ("cell", "location") or key.endswith("Cell"):
        return "A2"
    if key.endswith(("Time", "Date")):
        return WHEN
    return "x"


def minimal(schema, key, values):
    """Smallest value for `schema`: required properties only, one item per array, first enum value."""
    if "anyOf" in schema and "type" not in schema:
        return minimal(schema["anyOf"][0], key, values)
    if "enum" in schema:
        return schema["enum"][0]
    kind = schema.get("type")
    if kind == "object":
        required = list(schema.get("required") or [])
        for option in schema.get("anyOf", [])[:1]:
            required += option.get("required", [])
        properties = schema.get("properties") or {}
        return {prop: minimal(properties.get(prop, {}), prop, values) for prop in required}
    if kind == "array":
        if key in values:
            return values[key]
        return [minimal(schema["items"], key, values)] if "items" in schema else []
    if kind in ("integer", "number"):
        return 1
    if kind == "boolean":
        return True
    return sample_string(key, values)


@pytest.fixture
def image(tmp_path):
    path = tmp_path / "pixel.png"
    Image.new("RGB", (8, 8), "blue").save(path)
    return str(path)


class TestMinimalArguments:

    def test_builder_follows_schema(self):
        schema = {
            "type": "object",
            "properties": {
                "mode": {"type": "string", "enum": ["fast", "slow"]},
                "items": {"type": "array", "items": {
                    "type": "object",
                    "properties": {"cell": {"type": "string"}, "formula": {"type": "string"}},
                    "required": ["formula"],
                    "anyOf": [{"required": ["cell"]}, {"required": ["range"]}],
                }},
                "count": {"type": "integer"},
                "optional": {"type": "string"},
            },
            "required": ["mode", "items", "count"],
        }
        assert minimal(schema, None, {}) == {"mode": "fast", "items": [{"formula": "x", "cell": "A2"}], "count": 1}

    @pytest.mark.parametrize("name", TOOL_NAMES)
    def test_handler_runs(self, name, registry, paths, tmp_path, monkeypatch,
                          sample_workbook, sample_document, sample_presentation, image):
        monkeypatch.chdir(tmp_path)
        item = registry.get(name)
        values = samples(name, sample_workbook, sample_document, sample_presentation, image)
        arguments = {**minimal(item.input_schema, None, values), **OVERRIDES.get(name, {})}
        validate_arguments(name, build_validator(item.input_schema), arguments)

        if name in EXPECTED_ERRORS:
            with pytest.raises(EXPECTED_ERRORS[name]):
                item.handler(arguments)
        else:
            text = item.handler(arguments)
            assert isinstance(text, str)
            assert text.strip()
        assert len(paths.locks) == 0
