"""Tests for the PowerPoint generator and tool handlers."""

import io
import json

import pytest
from pptx import Presentation
from pptx.oxml.ns import qn

from office_whisperer.errors import SlideNotFoundError
from office_whisperer.generators import PowerPointGenerator


def reload(data):
    return Presentation(io.BytesIO(data))


def first_texts(prs):
    """First line of the first text-bearing shape on every slide."""
    return [
        next(s.text_frame.text.split("\n")[0] for s in slide.shapes if s.has_text_frame and s.text_frame.text)
        for slide in prs.slides
    ]


@pytest.fixture
def generator():
    return PowerPointGenerator()


# ── presentation creation ──────────────────────────────────────────────────


class TestCreatePresentation:

    def test_slides_and_properties(self, generator):
        prs = reload(generator.create_presentation(
            [{"title": "Hello", "subtitle": "World"}, {"title": "Second"}],
            title="Deck", author="Ada", company="Acme",
        ))
        assert len(prs.slides) == 2
        assert first_texts(prs) == ["Hello", "Second"]
        assert prs.core_properties.title == "Deck"
        assert prs.core_properties.author == "Ada"

    def test_themed_decks_are_widescreen(self, generator):
        assert reload(generator.create_presentation([], theme="dark")).slide_width.inches == pytest.approx(13.333)
        assert reload(generator.create_presentation([])).slide_width.inches == 10

    def test_content_items(self, generator):
        prs = reload(generator.create_presentation([{"content": [
            {"type": "text", "text": "Body", "x": 1, "y": "50%"},
            {"type": "shape", "shape": "ellipse", "fill": {"color": "FF0000"}},
            {"type": "table", "rows": [["a", "b"], ["1", "2"]]},
            {"type": "chart", "chartType": "bar", "data": [{"name": "S", "labels": ["x", "y"], "values": [1, 2]}]},
        ]}]))
        shapes = list(prs.slides[0].shapes)
        assert len(shapes) == 4
        assert shapes[0].text_frame.text == "Body"
        assert shapes[0].top.inches == pytest.approx(3.75)
        assert shapes[2].has_table
        assert shapes[2].table.cell(1, 1).text == "2"
        assert shapes[3].has_chart

    def test_missing_image_skipped(self, generator, tmp_path):
        prs = reload(generator.create_presentation([{"content": [
            {"type": "image", "path": str(tmp_path / "missing.png")},
        ]}]))
        assert len(prs.slides[0].shapes) == 0

    def test_notes(self, generator):
        prs = reload(generator.create_presentation([{"title": "T", "notes": "Say hi"}]))
        assert prs.slides[0].notes_slide.notes_text_frame.text == "Say hi"


# ── slide operations ───────────────────────────────────────────────────────


class TestSlideOperations:

    def test_reorder(self, generator, sample_presentation):
        prs = reload(generator.reorder_slides(sample_presentation, [3, 1, 2]))
        assert first_texts(prs) == ["Wrap-up", "Intro", "Agenda"]

    @pytest.mark.parametrize("order", [[1, 2], [1, 1, 2], [0, 1, 2], [1, 2, 4]])
    def test_reorder_requires_permutation(self, generator, sample_presentation, order):
        with pytest.raises(ValueError, match="permutation"):
            generator.reorder_slides(sample_presentation, order)

    def test_notes_replaced(self, generator, sample_presentation):
        prs = reload(generator.add_notes(sample_presentation, 2, "New notes"))
        assert prs.slides[1].notes_slide.notes_text_frame.text == "New notes"

    def test_missing_slide(self, generator, sample_presentation):
        with pytest.raises(SlideNotFoundError, match=r"Slide 9 not found \(presentation has 3 slides\)"):
            generator.add_notes(sample_presentation, 9, "x")

    def test_duplicate_to_position(self, generator, sample_presentation):
        prs = reload(generator.duplicate_slide(sample_presentation, 2, position=1))
        assert first_texts(prs) == ["Agenda", "Intro", "Agenda", "Wrap-up"]
        assert prs.slides[0].notes_slide.notes_text_frame.text == "Keep it short"

    def test_add_slide_at_position(self, generator, sample_presentation):
        data, number = generator.add_slide(sample_presentation, {"title": "Inserted"}, position=2)
        assert number == 2
        assert first_texts(reload(data))[1] == "Inserted"

    def test_transition_on_every_slide(self, generator, sample_presentation):
        data, changed = generator.add_transition(sample_presentation, {"type": "fade", "duration": 300})
        assert changed == 3
        for slide in reload(data).slides:
            transition = slide._element.find(qn("p:transition"))
            assert transition is not None
            assert transition.get("spd") == "fast"

    def test_transition_replaces_existing(self, generator, sample_presentation, tmp_path):
        path = tmp_path / "once.pptx"
        path.write_bytes(generator.add_transition(sample_presentation, {"type": "fade"}, 1)[0])
        data, _ = generator.add_transition(str(path), {"type": "push"}, 1)
        assert len(reload(data).slides[0]._element.findall(qn("p:transition"))) == 1

    def test_sections(self, generator, sample_presentation):
        prs = reload(generator.add_sections(sample_presentation, [
            {"name": "Opening", "startSlide": 1}, {"name": "Closing", "startSlide": 3},
        ]))
        assert first_texts(prs) == ["Opening", "Intro", "Agenda", "Closing", "Wrap-up"]
        names = [s.get("name") for s in prs.part._element.iter(
            "{http://schemas.microsoft.com/office/powerpoint/2010/main}section")]
        assert names == ["Opening", "Closing"]

    @pytest.mark.parametrize("effects,expected", [("subtle", "subtle"), ({"shadow": True, "glow": False}, "shadow")])
    def test_master_effects(self, generator, sample_presentation, effects, expected):
        prs = reload(generator.customize_master(sample_presentation, {"theme": {"effects": effects}}))
        slide = prs.slides[len(prs.slides) - 1]
        text = " ".join(s.text_frame.text for s in slide.shapes if s.has_text_frame)
        assert "Effects Enabled:" in text
        assert expected in text
        assert "glow" not in text


class TestTableSlideAndInfo:

    def test_table_slide(self, generator, sample_presentation):
        data, shape = generator.add_table_slide(sample_presentation, "Numbers", [["A", "B"], [1, None]])
        assert shape == "2 rows x 2 columns"
        slide = reload(data).slides[3]
        table = next(s for s in slide.shapes if s.has_table).table
        assert table.cell(0, 0).text == "A"
        assert table.cell(1, 1).text == ""

    def test_table_slide_requires_data(self, generator, sample_presentation):
        with pytest.raises(ValueError, match="cannot be empty"):
            generator.add_table_slide(sample_presentation, "Empty", [])

    def test_info(self, generator, sample_presentation):
        info = generator.presentation_info(sample_presentation)
        assert info["slideCount"] == 3
        assert info["widthInches"] == 10
        assert info["heightInches"] == 7.5
        assert info["aspectRatio"] == "10.0:7.5"
        assert info["title"] == "Deck"
        assert [s["title"] for s in info["slides"]] == ["Intro", "Agenda", "Wrap-up"]
        assert [s["hasNotes"] for s in info["slides"]] == [False, True, False]

    def test_info_missing_file(self, generator, tmp_path):
        with pytest.raises(FileNotFoundError):
            generator.presentation_info(str(tmp_path / "none.pptx"))


# ── tool handlers ──────────────────────────────────────────────────────────


class TestPowerPointTools:

    def test_create_powerpoint(self, call_tool, tmp_path):
        text = call_tool("create_powerpoint", filename="talk.pptx", outputPath=str(tmp_path), theme="light",
                         slides=[{"title": "One"}, {"title": "Two"}])
        assert "🎨 **Theme:** light" in text
        assert "📊 **Slides:** 2" in text
        assert len(Presentation(tmp_path / "talk.pptx").slides) == 2

    def test_reorder_in_place(self, call_tool, sample_presentation):
        text = call_tool("ppt_reorder_slides", filename=sample_presentation, slideOrder=[2, 3, 1])
        assert "🔀 **New order:** 2, 3, 1" in text
        assert first_texts(Presentation(sample_presentation))[0] == "Agenda"

    def test_export_pdf_path(self, call_tool, sample_presentation, tmp_path):
        out = tmp_path / "pdf"
        text = call_tool("ppt_export_pdf", filename=sample_presentation, outputPath=str(out))
        assert str(out / "deck.pdf") in text
        assert (out / "deck.pdf").exists()

    def test_presentation_info_writes_nothing(self, call_tool, sample_presentation, tmp_path):
        before = sorted(p.name for p in tmp_path.iterdir())
        info = json.loads(call_tool("ppt_presentation_info", filename=sample_presentation))
        assert info["slideCount"] == 3
        assert sorted(p.name for p in tmp_path.iterdir()) == before

    def test_table_slide_status(self, call_tool, sample_presentation):
        text = call_tool("ppt_add_table_slide", filename=sample_presentation, title="T", data=[["a"], ["b"]])
        assert "📐 **Size:** 2 rows x 1 columns" in text
