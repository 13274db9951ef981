"""Tests for the Word generator and tool handlers."""

import io

import pytest
from docx import Document
from PIL import Image

from office_whisperer.generators import WordGenerator
from office_whisperer.generators.word import caption_number, format_apa, format_mla, to_roman


def reload(data):
    return Document(io.BytesIO(data))


def texts(doc):
    return [p.text for p in doc.paragraphs]


@pytest.fixture
def generator():
    return WordGenerator()


@pytest.fixture
def png(tmp_path):
    path = tmp_path / "logo.png"
    Image.new("RGB", (40, 20), "red").save(path)
    return str(path)


# ── document creation ──────────────────────────────────────────────────────


class TestCreateDocument:

    def test_paragraphs_and_headings(self, generator):
        doc = reload(generator.create_document([{"children": [
            {"type": "paragraph", "text": "Overview", "heading": "Heading1"},
            {"type": "paragraph", "text": "Details", "heading": "2"},
            {"type": "paragraph", "children": [{"text": "Bold ", "bold": True}, {"text": "plain"}]},
        ]}], title="Plan"))
        assert doc.core_properties.title == "Plan"
        assert texts(doc)[:4] == ["Plan", "Overview", "Details", "Bold plain"]
        assert doc.paragraphs[1].style.name == "Heading 1"
        assert doc.paragraphs[2].style.name == "Heading 2"
        assert doc.paragraphs[3].runs[0].bold is True

    def test_table(self, generator):
        doc = reload(generator.create_document([{"children": [{"type": "table", "rows": [
            {"cells": [{"children": [{"text": "A"}]}, {"children": [{"text": "B"}]}]},
            {"cells": [{"children": [{"text": "wide"}], "columnSpan": 2}]},
        ]}]}]))
        table = doc.tables[0]
        assert table.cell(0, 0).text == "A"
        assert table.cell(0, 1).text == "B"
        assert table.cell(1, 0).text == "wide"
        assert table.cell(1, 0)._tc is table.cell(1, 1)._tc

    def test_table_from_plain_rows(self, generator):
        doc = reload(generator.create_document([{"children": [{"type": "table", "rows": [
            ["Name", "Qty"],
            [{"text": "Bolts", "shading": {"fill": "EEEEEE"}}, 4],
        ]}]}]))
        table = doc.tables[0]
        assert [c.text for c in table.rows[0].cells] == ["Name", "Qty"]
        assert [c.text for c in table.rows[1].cells] == ["Bolts", "4"]

    def test_missing_image_leaves_marker(self, generator, tmp_path):
        missing = str(tmp_path / "nope.png")
        doc = reload(generator.create_document([{"children": [{"type": "image", "path": missing}]}]))
        assert f"[Image: {missing}]" in texts(doc)

    def test_image_embedded(self, generator, png):
        doc = reload(generator.create_document([{"children": [{"type": "image", "path": png}]}]))
        assert len(doc.inline_shapes) == 1

    def test_sections_and_page_breaks(self, generator):
        doc = reload(generator.create_document([
            {"children": [{"type": "paragraph", "text": "one"}, {"type": "pageBreak"}]},
            {"children": [{"type": "paragraph", "text": "two"}]},
        ]))
        assert len(doc.sections) == 2
        assert "two" in texts(doc)

    def test_custom_styles(self, generator):
        doc = reload(generator.create_document([], styles={
            "paragraphStyles": [{"id": "Callout", "name": "Callout", "run": {"bold": True, "size": 28}}],
        }))
        style = doc.styles["Callout"]
        assert style.font.bold is True
        assert style.font.size.pt == 14


# ── editing ────────────────────────────────────────────────────────────────


class TestFindReplace:

    def test_counts_matches(self, generator, sample_document):
        data, count = generator.find_replace(sample_document, "quarter", "period")
        assert count == 3
        assert "The periodly numbers are in. Revenue grew this period." in texts(reload(data))

    def test_whole_word(self, generator, sample_document):
        _, count = generator.find_replace(sample_document, "quarter", "period", match_whole_word=True)
        assert count == 1

    def test_match_across_runs_keeps_first_run_format(self, generator, tmp_path):
        doc = Document()
        paragraph = doc.add_paragraph()
        paragraph.add_run("Reve").bold = True
        paragraph.add_run("nue up")
        path = tmp_path / "runs.docx"
        doc.save(path)

        data, count = generator.find_replace(str(path), "Revenue", "Income")
        runs = reload(data).paragraphs[0].runs
        assert count == 1
        assert runs[0].text == "Income"
        assert runs[0].bold is True
        assert runs[1].text == " up"

    def test_formatting_applied_to_replacement(self, generator, sample_document):
        data, _ = generator.find_replace(sample_document, "finance", "FINANCE", formatting={"bold": True})
        paragraph = next(p for p in reload(data).paragraphs if "FINANCE" in p.text)
        assert paragraph.text == "Prepared by the FINANCE team."
        assert any(run.text == "FINANCE" and run.bold for run in paragraph.runs)

    def test_empty_find_rejected(self, generator, sample_document):
        with pytest.raises(ValueError):
            generator.find_replace(sample_document, "", "x")


class TestMailMerge:

    def test_fills_placeholders(self, generator, tmp_path):
        template = Document()
        template.add_paragraph("Dear {{name}}, your total is {{ total }}. {{unknown}}")
        path = tmp_path / "letter.docx"
        template.save(path)

        documents = generator.mail_merge(str(path), [{"name": "Ada", "total": 12}, {"name": "Bo", "total": 3}])
        assert len(documents) == 2
        assert reload(documents[0]).paragraphs[0].text == "Dear Ada, your total is 12. {{unknown}}"
        assert reload(documents[1]).paragraphs[0].text.startswith("Dear Bo,")

    def test_missing_template_summarizes_record(self, generator, tmp_path):
        documents = generator.mail_merge(str(tmp_path / "none.docx"), [{"name": "Ada"}])
        assert 'Data: {"name": "Ada"}' in texts(reload(documents[0]))


class TestEdits:

    def test_document_info(self, generator, sample_document):
        doc = reload(generator.set_document_info(sample_document, {
            "title": "Q3", "author": "Finance", "keywords": ["revenue", "q3"],
        }))
        assert doc.core_properties.title == "Q3"
        assert doc.core_properties.author == "Finance"
        assert doc.core_properties.keywords == "revenue, q3"

    def test_merge_skips_unreadable(self, generator, sample_document, tmp_path):
        bad = tmp_path / "bad.docx"
        bad.write_bytes(b"garbage")
        data, merged = generator.merge_documents([sample_document, str(bad), sample_document])
        assert merged == 2
        assert texts(reload(data)).count("Quarterly Report") == 2

    def test_toc_moved_to_top(self, generator, sample_document):
        doc = reload(generator.add_table_of_contents(sample_document, title="Contents"))
        assert doc.paragraphs[0].text == "Contents"
        assert "Quarterly Report" in texts(doc)

    def test_drop_cap(self, generator, sample_document):
        doc = reload(generator.add_drop_cap(sample_document, 1))
        assert doc.paragraphs[1].text == "T"
        assert doc.paragraphs[2].text.startswith("he quarterly")

    def test_drop_cap_bad_index(self, generator, sample_document):
        with pytest.raises(ValueError, match="not found"):
            generator.add_drop_cap(sample_document, 40)

    def test_add_content_table(self, generator, sample_document):
        data, details = generator.add_content(sample_document, "table", table_data=[["a", "b"], [1, None]])
        assert details == {"table": "2x2"}
        table = reload(data).tables[0]
        assert table.cell(1, 0).text == "1"
        assert table.cell(1, 1).text == ""

    def test_add_content_requires_text(self, generator, sample_document):
        with pytest.raises(ValueError, match="text required"):
            generator.add_content(sample_document, "heading")


class TestHelpers:

    @pytest.mark.parametrize("number,expected", [(1, "I"), (4, "IV"), (9, "IX"), (14, "XIV"), (1990, "MCMXC")])
    def test_roman(self, number, expected):
        assert to_roman(number) == expected

    def test_caption_numbering(self):
        assert caption_number(3, "1, 2, 3") == "3"
        assert caption_number(3, "I, II, III") == "III"
        assert caption_number(3, "a, b, c") == "c"

    def test_apa_book(self):
        source = {"type": "book", "author": "Doe, J.", "year": 2020, "title": "Python", "publisher": "Press"}
        assert format_apa(source) == "Doe, J. (2020). Python. Press."

    def test_mla_defaults(self):
        assert format_mla({"title": "Notes"}) == "Unknown. Notes. n.d.."


# ── tool handlers ──────────────────────────────────────────────────────────


class TestWordTools:

    def test_create_word(self, call_tool, tmp_path):
        text = call_tool("create_word", filename="memo.docx", outputPath=str(tmp_path),
                         sections=[{"children": [{"type": "paragraph", "text": "Hello"}]}])
        assert text.startswith("✅ **Word document created!**")
        assert "Hello" in texts(Document(tmp_path / "memo.docx"))

    def test_find_replace_reports_count(self, call_tool, sample_document):
        text = call_tool("word_find_replace", filename=sample_document, find="quarter", replace="period")
        assert "🔢 **Replacements:** 3" in text

    def test_mail_merge_writes_numbered_files(self, call_tool, tmp_path):
        template = Document()
        template.add_paragraph("Hi {{name}}")
        template.save(tmp_path / "t.docx")
        out = tmp_path / "letters"
        text = call_tool("word_mail_merge", templatePath=str(tmp_path / "t.docx"), outputPath=str(out),
                         outputFilename="letter", dataSource=[{"name": "A"}, {"name": "B"}])
        assert "✉️ **Documents created:** 2" in text
        assert Document(out / "letter_2.docx").paragraphs[0].text == "Hi B"

    def test_to_pdf_swaps_extension(self, call_tool, sample_document, tmp_path):
        text = call_tool("word_to_pdf", filename=sample_document)
        assert str(tmp_path / "report.pdf") in text
        assert (tmp_path / "report.pdf").exists()

    def test_merge_default_name(self, call_tool, sample_document, tmp_path):
        target = tmp_path / "combined.docx"
        text = call_tool("word_merge_documents", documents=[sample_document], outputPath=str(target))
        assert "✔️ **Merged:** 1" in text
        assert target.exists()

    def test_add_content_image(self, call_tool, sample_document, png):
        text = call_tool("word_add_content", filename=sample_document, contentType="image", imagePath=png)
        assert "🔹 **Image:** " in text
        assert len(Document(sample_document).inline_shapes) == 1

    def test_document_info_status(self, call_tool, sample_document):
        text = call_tool("word_document_info", filename=sample_document, properties={"title": "T"})
        assert "ℹ️ **Title:** T" in text
        assert "👤 **Author:** Not set" in text
