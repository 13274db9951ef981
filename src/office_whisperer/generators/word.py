'''
Word generator - build and modify .docx documents with python-docx.

Edit methods load the named document (a blank one when the file does not
exist), append or change content and return the serialized bytes. Where
python-docx has no API (fields, bookmarks, content controls, protection) the
WordprocessingML is written directly with parse_xml.
'''

import datetime
import difflib
import io
import json
import os
import re
from copy import deepcopy
from typing import Any, Callable, Iterator, Optional, Union
from xml.sax.saxutils import escape, quoteattr

from docx import Document
from docx.document import Document as DocumentObject
from docx.enum.section import WD_SECTION
from docx.enum.style import WD_STYLE_TYPE
from docx.enum.table import WD_ROW_HEIGHT_RULE
from docx.enum.text import WD_ALIGN_PARAGRAPH, WD_BREAK, WD_COLOR_INDEX, WD_UNDERLINE
from docx.opc.constants import RELATIONSHIP_TYPE as RT
from docx.oxml import parse_xml
from docx.oxml.ns import nsdecls, qn
from docx.section import Section
from docx.shared import Emu, Inches, Pt, RGBColor, Twips
from docx.text.paragraph import Paragraph
from docx.text.run import Run

from ..media import load_image

import logging
logger = logging.getLogger(__name__)

AUTHOR = "Office Whisperer"
NOTE_COLOR = "666666"
LINK_COLOR = "0000FF"
ACCENT = "0066CC"
EMU_PER_PIXEL = 9525

ALIGNMENTS = {
    "left": WD_ALIGN_PARAGRAPH.LEFT,
    "center": WD_ALIGN_PARAGRAPH.CENTER,
    "right": WD_ALIGN_PARAGRAPH.RIGHT,
    "justified": WD_ALIGN_PARAGRAPH.JUSTIFY,
    "justify": WD_ALIGN_PARAGRAPH.JUSTIFY,
}

UNDERLINES = {
    "single": WD_UNDERLINE.SINGLE,
    "double": WD_UNDERLINE.DOUBLE,
    "thick": WD_UNDERLINE.THICK,
    "dotted": WD_UNDERLINE.DOTTED,
}

SECTION_STARTS = {
    "nextPage": WD_SECTION.NEW_PAGE,
    "continuous": WD_SECTION.CONTINUOUS,
    "evenPage": WD_SECTION.EVEN_PAGE,
    "oddPage": WD_SECTION.ODD_PAGE,
}

PROTECTION_DESCRIPTIONS = {
    "readOnly": "Document is read-only. No changes can be made.",
    "comments": "Only comments can be added. Content cannot be modified.",
    "forms": "Only form fields can be filled. Other content is locked.",
    "trackedChanges": "All changes will be tracked. Changes cannot be accepted/rejected without password.",
}

CAPTION_LABELS = {"figure": "Figure", "table": "Table", "equation": "Equation"}
CAPTION_SWITCHES = {"1, 2, 3": "ARABIC", "I, II, III": "ROMAN", "a, b, c": "alphabetic"}

MATH_NS = 'xmlns:m="http://schemas.openxmlformats.org/officeDocument/2006/math"'


# ── run and paragraph helpers ────────────────────────────────────────

def _rgb(color: str) -> RGBColor:
    return RGBColor.from_string(color.lstrip("#").upper()[-6:])


def _style_run(run: Run, bold: Optional[bool] = None, italic: Optional[bool] = None,
               color: Optional[str] = None, size: Optional[float] = None, font: Optional[str] = None,
               underline: Any = None, strike: Optional[bool] = None, superscript: Optional[bool] = None,
               highlight: Optional[str] = None) -> Run:
    if bold is not None:
        run.bold = bold
    if italic is not None:
        run.italic = italic
    if color:
        run.font.color.rgb = _rgb(color)
    if size:
        run.font.size = Pt(size)
    if font:
        run.font.name = font
    if underline:
        run.font.underline = UNDERLINES.get(underline, WD_UNDERLINE.SINGLE) if isinstance(underline, str) else True
    if strike is not None:
        run.font.strike = strike
    if superscript:
        run.font.superscript = True
    if highlight:
        key = re.sub(r"(?<!^)([A-Z])", r"_\1", highlight).upper()
        index = getattr(WD_COLOR_INDEX, key, None)
        if index is not None:
            run.font.highlight_color = index
    return run


def _add_run(paragraph: Paragraph, text: str, **style) -> Run:
    return _style_run(paragraph.add_run(text), **style)


def _note(container, text: str) -> Paragraph:
    """Italic grey remark appended after generated content."""
    paragraph = container.add_paragraph()
    _add_run(paragraph, text, italic=True, color=NOTE_COLOR)
    return paragraph


def _shade(paragraph: Paragraph, fill: str) -> None:
    paragraph._p.get_or_add_pPr().append(parse_xml(f'<w:shd {nsdecls("w")} w:val="clear" w:color="auto" w:fill="{fill}"/>'))


def _box(paragraph: Paragraph, color: str) -> None:
    sides = "".join(
        f'<w:{side} w:val="single" w:sz="4" w:space="4" w:color="{color}"/>'
        for side in ("top", "left", "bottom", "right")
    )
    paragraph._p.get_or_add_pPr().append(parse_xml(f'<w:pBdr {nsdecls("w")}>{sides}</w:pBdr>'))


def _spacing(paragraph: Paragraph, spacing: dict) -> None:
    """Spacing in twips (before/after) and 240ths of a line (line)."""
    fmt = paragraph.paragraph_format
    if spacing.get("before") is not None:
        fmt.space_before = Twips(spacing["before"])
    if spacing.get("after") is not None:
        fmt.space_after = Twips(spacing["after"])
    if spacing.get("line"):
        fmt.line_spacing = spacing["line"] / 240


def _add_field(paragraph: Paragraph, instruction: str, result: str, **style) -> Run:
    """Complex field (begin/instr/separate/result/end); returns the result run."""
    paragraph._p.append(parse_xml(f'<w:r {nsdecls("w")}><w:fldChar w:fldCharType="begin"/></w:r>'))
    paragraph._p.append(parse_xml(
        f'<w:r {nsdecls("w")}><w:instrText xml:space="preserve"> {escape(instruction)} </w:instrText></w:r>'
    ))
    paragraph._p.append(parse_xml(f'<w:r {nsdecls("w")}><w:fldChar w:fldCharType="separate"/></w:r>'))
    run = _add_run(paragraph, result, **style)
    paragraph._p.append(parse_xml(f'<w:r {nsdecls("w")}><w:fldChar w:fldCharType="end"/></w:r>'))
    return run


def _page_break(container) -> None:
    if isinstance(container, DocumentObject):
        container.add_page_break()
    else:
        container.add_paragraph().add_run().add_break(WD_BREAK.PAGE)


def _heading(container, text: str, level: int = 1) -> Paragraph:
    if isinstance(container, DocumentObject):
        return container.add_heading(text, level=level)
    return container.add_paragraph(text, style="Title" if level == 0 else f"Heading {level}")


def _toc(container, title: Optional[str] = None, levels: int = 3, hyperlinks: bool = True) -> None:
    _heading(container, title or "Table of Contents", 1)
    switches = f'\\o "1-{levels}"' + (" \\h" if hyperlinks else "") + " \\z \\u"
    _add_field(container.add_paragraph(), f"TOC {switches}",
               "Right-click to update the table of contents.", italic=True, color=NOTE_COLOR)


def _set_cell_shading(cell, fill: str) -> None:
    cell._tc.get_or_add_tcPr().append(parse_xml(f'<w:shd {nsdecls("w")} w:val="clear" w:color="auto" w:fill="{fill.lstrip("#")}"/>'))


def _table_cell(value: Any) -> dict:
    """Cell spec from plain text, {text, shading} or {children, columnSpan, rowSpan, shading}."""
    if not isinstance(value, dict):
        return {"children": [{"text": "" if value is None else str(value)}]}
    if not value.get("children") and value.get("text") is not None:
        return dict(value, children=[{"text": str(value["text"])}])
    return value


def _iter_block_paragraphs(container) -> Iterator[Paragraph]:
    yield from container.paragraphs
    for table in container.tables:
        for row in table.rows:
            for cell in row.cells:
                yield from _iter_block_paragraphs(cell)


def iter_paragraphs(doc: DocumentObject) -> Iterator[Paragraph]:
    """Body, table, header and footer paragraphs."""
    yield from _iter_block_paragraphs(doc)
    for section in doc.sections:
        for part in (section.header, section.footer):
            if not part.is_linked_to_previous:
                yield from _iter_block_paragraphs(part)


def replace_in_paragraph(paragraph: Paragraph, pattern: re.Pattern,
                         replacement: Union[str, Callable[[re.Match], str]],
                         formatting: Optional[dict] = None) -> int:
    """Replace matches across run boundaries, keeping each run's formatting.

    The replacement text takes the formatting of the run where the match
    starts (or `formatting` when given). Returns the number of matches.
    """
    runs = paragraph.runs
    text = "".join(run.text for run in runs)
    matches = list(pattern.finditer(text))
    if not matches:
        return 0

    bounds = []
    position = 0
    for run in runs:
        bounds.append((position, position + len(run.text)))
        position += len(run.text)

    # right to left so offsets of earlier matches stay valid
    for match in reversed(matches):
        start, end = match.span()
        new_text = replacement(match) if callable(replacement) else replacement
        first = True
        for run, (run_start, run_end) in zip(runs, bounds):
            if run_end <= start or run_start >= end:
                continue
            lo, hi = max(start, run_start) - run_start, min(end, run_end) - run_start
            if not first:
                run.text = run.text[:lo] + run.text[hi:]
                continue
            first = False
            if formatting:
                head, tail = run.text[:lo], run.text[hi:]
                run.text = head
                inserted = deepcopy(run._r)
                run._r.addnext(inserted)
                new_run = Run(inserted, paragraph)
                new_run.text = new_text
                _style_run(new_run, bold=formatting.get("bold"), italic=formatting.get("italic"),
                           color=formatting.get("color"), size=formatting.get("size"),
                           font=formatting.get("font"), underline=formatting.get("underline"),
                           highlight=formatting.get("highlight"))
                if tail:
                    trailing = deepcopy(run._r)
                    inserted.addnext(trailing)
                    Run(trailing, paragraph).text = tail
            else:
                run.text = run.text[:lo] + new_text + run.text[hi:]
    return len(matches)


def _insert_at_start(doc: DocumentObject, paragraphs: list[Paragraph]) -> None:
    body = doc.element.body
    for index, paragraph in enumerate(paragraphs):
        body.insert(index, paragraph._p)


def _settings_element(doc: DocumentObject, tag: str, xml: str) -> None:
    """Replace (or add) one child element of word/settings.xml."""
    settings = doc.settings.element
    for existing in settings.findall(qn(tag)):
        settings.remove(existing)
    element = parse_xml(xml)
    # w:zoom and w:removePersonalInformation must stay first
    anchor = settings.find(qn("w:zoom"))
    if anchor is not None:
        anchor.addnext(element)
    else:
        settings.insert(0, element)


def _bookmark_ids(doc: DocumentObject) -> int:
    ids = [int(el.get(qn("w:id"))) for el in doc.element.body.iter(qn("w:bookmarkStart"))
           if el.get(qn("w:id"), "").isdigit()]
    return max(ids, default=-1) + 1


def _wrap_bookmark(paragraph: Paragraph, name: str, bookmark_id: int) -> None:
    start = parse_xml(f'<w:bookmarkStart {nsdecls("w")} w:id="{bookmark_id}" w:name={quoteattr(name)}/>')
    end = parse_xml(f'<w:bookmarkEnd {nsdecls("w")} w:id="{bookmark_id}"/>')
    p = paragraph._p
    p_pr = p.pPr
    if p_pr is not None:
        p_pr.addnext(start)
    else:
        p.insert(0, start)
    p.append(end)


def _find_paragraph(doc: DocumentObject, text: str) -> Optional[Paragraph]:
    for paragraph in doc.paragraphs:
        if text and text in paragraph.text:
            return paragraph
    return None


def _contrast_with_white(color: RGBColor) -> float:
    def channel(value: int) -> float:
        c = value / 255
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4

    r, g, b = (channel(v) for v in color)
    luminance = 0.2126 * r + 0.7152 * g + 0.0722 * b
    return 1.05 / (luminance + 0.05)


def to_roman(number: int) -> str:
    numerals = [(1000, "M"), (900, "CM"), (500, "D"), (400, "CD"), (100, "C"), (90, "XC"),
                (50, "L"), (40, "XL"), (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I")]
    result = ""
    for value, numeral in numerals:
        while number >= value:
            result += numeral
            number -= value
    return result


def caption_number(number: int, numbering_format: str) -> str:
    if numbering_format == "I, II, III":
        return to_roman(number)
    if numbering_format == "a, b, c":
        return chr(96 + number) if number <= 26 else str(number)
    return str(number)


# ── bibliography styles ──────────────────────────────────────────────

def format_apa(source: dict) -> str:
    author = source.get("author") or "Unknown"
    year = source.get("year") or "n.d."
    title = source["title"]
    kind = source.get("type")
    if kind == "book":
        return f"{author} ({year}). {title}. {source.get('publisher') or 'Publisher'}."
    if kind == "article":
        issue = f"({source['issue']})" if source.get("issue") else ""
        return (f"{author} ({year}). {title}. {source.get('publisher') or 'Journal'}, "
                f"{source.get('volume') or ''}{issue}, {source.get('pages') or ''}.")
    if kind == "website":
        return f"{author} ({year}). {title}. Retrieved from {source.get('url') or 'URL'}"
    return f"{author} ({year}). {title}."


def format_mla(source: dict) -> str:
    author = source.get("author") or "Unknown"
    year = source.get("year") or "n.d."
    title = source["title"]
    kind = source.get("type")
    if kind == "book":
        return f"{author}. {title}. {source.get('publisher') or 'Publisher'}, {year}."
    if kind == "article":
        return (f'{author}. "{title}." {source.get("publisher") or "Journal"}, vol. {source.get("volume") or ""}, '
                f'no. {source.get("issue") or ""}, {year}, pp. {source.get("pages") or ""}.')
    if kind == "website":
        return f'{author}. "{title}." {source.get("publisher") or "Website"}, {year}, {source.get("url") or "URL"}.'
    return f"{author}. {title}. {year}."


def format_chicago(source: dict) -> str:
    author = source.get("author") or "Unknown"
    year = source.get("year") or "n.d."
    title = source["title"]
    kind = source.get("type")
    if kind == "book":
        return f"{author}. {title}. {source.get('city') or 'City'}: {source.get('publisher') or 'Publisher'}, {year}."
    if kind == "article":
        return (f'{author}. "{title}." {source.get("publisher") or "Journal"} {source.get("volume") or ""}, '
                f'no. {source.get("issue") or ""} ({year}): {source.get("pages") or ""}.')
    if kind == "website":
        accessed = datetime.date.today().strftime("%B %d, %Y")
        return (f'{author}. "{title}." {source.get("publisher") or "Website"}. '
                f'Accessed {accessed}. {source.get("url") or "URL"}.')
    return f"{author}. {title}. {year}."


def format_harvard(source: dict) -> str:
    return (f"{source.get('author') or 'Unknown'}, {source.get('year') or 'n.d.'}. "
            f"{source['title']}. {source.get('publisher') or 'Publisher'}.")


def format_ieee(source: dict) -> str:
    return (f'{source.get("author") or "Unknown"}, "{source["title"]}," '
            f'{source.get("publisher") or "Publisher"}, {source.get("year") or "n.d."}.')


CITATION_STYLES = {
    "APA": format_apa,
    "MLA": format_mla,
    "Chicago": format_chicago,
    "Harvard": format_harvard,
    "IEEE": format_ieee,
}


class WordGenerator:
    """Document builder. Stateless: safe to share between concurrent calls."""

    def _load(self, filename: str) -> DocumentObject:
        if os.path.exists(filename):
            return Document(filename)
        logger.warning(f"File {filename} not found, creating new document")
        return Document()

    @staticmethod
    def _save(doc: DocumentObject) -> bytes:
        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()

    # ── element model ────────────────────────────────────────────────

    def _add_paragraph(self, container, para: dict) -> Paragraph:
        style = None
        if para.get("heading"):
            style = f"Heading {para['heading'].replace('Heading', '')}"
        elif para.get("bullet"):
            level = para["bullet"].get("level") or 0
            style = "List Bullet" if level == 0 else f"List Bullet {min(level + 1, 3)}"
        elif para.get("numbering"):
            level = para["numbering"].get("level") or 0
            style = "List Number" if level == 0 else f"List Number {min(level + 1, 3)}"

        paragraph = container.add_paragraph(style=style)
        if para.get("children"):
            for run in para["children"]:
                underline = run.get("underline")
                _add_run(paragraph, run.get("text", ""), bold=run.get("bold"), italic=run.get("italics"),
                         color=run.get("color"), size=run.get("size"), font=run.get("font"),
                         underline=underline.get("type", "single") if isinstance(underline, dict) else underline,
                         strike=run.get("strike"), highlight=run.get("highlight"))
        elif para.get("text"):
            paragraph.add_run(para["text"])

        if para.get("alignment"):
            paragraph.alignment = ALIGNMENTS.get(para["alignment"], WD_ALIGN_PARAGRAPH.LEFT)
        if para.get("spacing"):
            _spacing(paragraph, para["spacing"])
        return paragraph

    def _add_table(self, container, spec: dict) -> None:
        rows = []
        for row in spec.get("rows") or []:
            if not isinstance(row, dict):
                row = {"cells": row}
            rows.append(dict(row, cells=[_table_cell(cell) for cell in row.get("cells") or []]))
        if not rows:
            return
        n_cols = max(sum(cell.get("columnSpan") or 1 for cell in row["cells"]) for row in rows) or 1
        if isinstance(container, DocumentObject):
            table = container.add_table(rows=len(rows), cols=n_cols)
        else:
            table = container.add_table(len(rows), n_cols, Inches(6))
        table.style = "Table Grid"

        occupied: set[tuple[int, int]] = set()
        for r, row in enumerate(rows):
            c = 0
            for cell_spec in row["cells"]:
                while (r, c) in occupied:
                    c += 1
                if c >= n_cols:
                    break
                col_span = cell_spec.get("columnSpan") or 1
                row_span = cell_spec.get("rowSpan") or 1
                last_row = min(r + row_span, len(rows)) - 1
                last_col = min(c + col_span, n_cols) - 1
                cell = table.cell(r, c)
                if last_row > r or last_col > c:
                    cell = cell.merge(table.cell(last_row, last_col))
                for rr in range(r, last_row + 1):
                    for cc in range(c, last_col + 1):
                        occupied.add((rr, cc))

                children = cell_spec.get("children") or []
                for index, para in enumerate(children):
                    if index == 0 and cell.paragraphs and not cell.paragraphs[0].text:
                        # reuse the empty paragraph every cell starts with
                        target = cell.paragraphs[0]
                        new = self._add_paragraph(cell, para)
                        target._p.addnext(new._p)
                        target._p.getparent().remove(target._p)
                    else:
                        self._add_paragraph(cell, para)

                shading = cell_spec.get("shading")
                if shading and shading.get("fill"):
                    _set_cell_shading(cell, shading["fill"])
                c = last_col + 1

            tr = table.rows[r]
            if row.get("height"):
                tr.height = Twips(row["height"])
                tr.height_rule = WD_ROW_HEIGHT_RULE.EXACTLY
            tr_pr = tr._tr.get_or_add_trPr()
            if row.get("cantSplit"):
                tr_pr.append(parse_xml(f'<w:cantSplit {nsdecls("w")}/>'))
            if row.get("tableHeader"):
                tr_pr.append(parse_xml(f'<w:tblHeader {nsdecls("w")}/>'))

        borders = spec.get("borders")
        if borders:
            edges = "".join(
                f'<w:{edge} w:val="{b.get("style", "single")}" w:sz="{b.get("size", 4)}" '
                f'w:space="0" w:color="{b.get("color", "auto").lstrip("#")}"/>'
                for edge, b in borders.items() if isinstance(b, dict)
            )
            table._tbl.tblPr.append(parse_xml(f'<w:tblBorders {nsdecls("w")}>{edges}</w:tblBorders>'))

    def _add_image(self, container, path: str, width: Optional[int] = None, height: Optional[int] = None) -> bool:
        """Inline picture sized in pixels; falls back to a text marker when the image cannot be read."""
        paragraph = container.add_paragraph()
        try:
            stream = load_image(path)
            run = paragraph.add_run()
            run.add_picture(stream,
                            width=Emu(width * EMU_PER_PIXEL) if width else None,
                            height=Emu(height * EMU_PER_PIXEL) if height else None)
            return True
        except Exception as e:
            logger.error(f"Error adding image {path}: {e}")
            paragraph.add_run(f"[Image: {path}]")
            return False

    def add_elements(self, container, elements: list[dict]) -> None:
        for element in elements:
            kind = element.get("type")
            if kind == "paragraph":
                self._add_paragraph(container, element)
            elif kind == "table":
                self._add_table(container, element)
            elif kind == "pageBreak":
                _page_break(container)
            elif kind == "image":
                size = element.get("transformation") or {}
                self._add_image(container, element["path"], size.get("width"), size.get("height"))
            elif kind == "toc":
                _toc(container, element.get("title"))
            else:
                logger.warning(f"Skipping unknown element type: {kind}")

    def _fill_header_footer(self, part, elements: list[dict]) -> None:
        part.is_linked_to_previous = False
        placeholder = part.paragraphs[0] if part.paragraphs and not part.paragraphs[0].text else None
        self.add_elements(part, elements)
        if placeholder is not None and len(part.paragraphs) > 1:
            placeholder._p.getparent().remove(placeholder._p)

    def _header_footer(self, doc: DocumentObject, section, kind: str, section_type: str):
        if section_type == "first":
            section.different_first_page_header_footer = True
            return section.first_page_header if kind == "header" else section.first_page_footer
        if section_type == "even":
            doc.settings.odd_and_even_pages_header_footer = True
            return section.even_page_header if kind == "header" else section.even_page_footer
        return section.header if kind == "header" else section.footer

    def apply_styles(self, doc: DocumentObject, styles: dict) -> int:
        """Document defaults and custom paragraph styles (sizes in half-points); returns styles added."""
        defaults = ((styles.get("default") or {}).get("document") or {})
        normal = doc.styles["Normal"]
        run = defaults.get("run") or {}
        if run.get("font"):
            normal.font.name = run["font"]
        if run.get("size"):
            normal.font.size = Pt(run["size"] / 2)
        line = ((defaults.get("paragraph") or {}).get("spacing") or {}).get("line")
        if line:
            normal.paragraph_format.line_spacing = line / 240

        added = 0
        existing = {style.name for style in doc.styles}
        for spec in styles.get("paragraphStyles") or []:
            name = spec.get("name") or spec["id"]
            if name in existing:
                style = doc.styles[name]
            else:
                style = doc.styles.add_style(name, WD_STYLE_TYPE.PARAGRAPH)
                existing.add(name)
                added += 1
            if spec.get("basedOn") in existing:
                style.base_style = doc.styles[spec["basedOn"]]
            if spec.get("next") in existing:
                style.next_paragraph_style = doc.styles[spec["next"]]

            run = spec.get("run") or {}
            if run.get("font"):
                style.font.name = run["font"]
            if run.get("size"):
                style.font.size = Pt(run["size"] / 2)
            if run.get("bold") is not None:
                style.font.bold = run["bold"]
            if run.get("italics") is not None:
                style.font.italic = run["italics"]
            if run.get("color"):
                style.font.color.rgb = _rgb(run["color"])

            paragraph = spec.get("paragraph") or {}
            spacing = paragraph.get("spacing") or {}
            fmt = style.paragraph_format
            if spacing.get("before") is not None:
                fmt.space_before = Twips(spacing["before"])
            if spacing.get("after") is not None:
                fmt.space_after = Twips(spacing["after"])
            if spacing.get("line"):
                fmt.line_spacing = spacing["line"] / 240
            if paragraph.get("alignment"):
                fmt.alignment = ALIGNMENTS.get(paragraph["alignment"])
        return added

    # ── core operations ──────────────────────────────────────────────

    def create_document(self, sections: list[dict], title: Optional[str] = None,
                        styles: Optional[dict] = None) -> bytes:
        doc = Document()
        doc.core_properties.author = AUTHOR
        if styles:
            self.apply_styles(doc, styles)
        if title:
            doc.core_properties.title = title
            doc.add_heading(title, 0)

        for index, spec in enumerate(sections):
            section = doc.sections[-1] if index == 0 else doc.add_section(WD_SECTION.NEW_PAGE)
            page = ((spec.get("properties") or {}).get("page") or {})
            size = page.get("size") or {}
            if size.get("width"):
                section.page_width = Twips(size["width"])
            if size.get("height"):
                section.page_height = Twips(size["height"])
            margin = page.get("margin") or {}
            for side in ("top", "right", "bottom", "left"):
                if margin.get(side) is not None:
                    setattr(section, f"{side}_margin", Twips(margin[side]))

            for kind in ("header", "footer"):
                for part_spec in spec.get(f"{kind}s") or []:
                    part = self._header_footer(doc, section, kind, part_spec.get("type") or "default")
                    self._fill_header_footer(part, part_spec.get("children") or [])

            self.add_elements(doc, spec.get("children") or [])

        return self._save(doc)

    def add_table_of_contents(self, filename: str, title: Optional[str] = None,
                              hyperlinks: bool = True, levels: int = 3) -> bytes:
        doc = self._load(filename)
        start = len(doc.paragraphs)
        _toc(doc, title, levels, hyperlinks)
        breaker = doc.add_paragraph()
        breaker.add_run().add_break(WD_BREAK.PAGE)
        # move the new block to the top of the body
        _insert_at_start(doc, doc.paragraphs[start:])
        return self._save(doc)

    def mail_merge(self, template_path: str, data_source: list[dict]) -> list[bytes]:
        """One document per record with {{key}} placeholders filled in."""
        documents = []
        placeholder = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")
        have_template = os.path.exists(template_path)
        if not have_template:
            logger.warning(f"Template {template_path} not found, generating summary documents")

        for record in data_source:
            if have_template:
                doc = Document(template_path)
                fill = lambda m: str(record[m.group(1)]) if m.group(1) in record else m.group(0)  # noqa: E731
                for paragraph in iter_paragraphs(doc):
                    replace_in_paragraph(paragraph, placeholder, fill)
            else:
                doc = Document()
                doc.add_heading("Mail Merge Document", 1)
                doc.add_paragraph(f"Generated from template: {template_path}")
                doc.add_paragraph(f"Data: {json.dumps(record, ensure_ascii=False, default=str)}")
            documents.append(self._save(doc))
        return documents

    def find_replace(self, filename: str, find: str, replace: str, match_case: bool = False,
                     match_whole_word: bool = False, formatting: Optional[dict] = None) -> tuple[bytes, int]:
        if not find:
            raise ValueError("find must not be empty")
        doc = self._load(filename)
        expression = re.escape(find)
        if match_whole_word:
            expression = rf"\b{expression}\b"
        pattern = re.compile(expression, 0 if match_case else re.IGNORECASE)
        count = sum(
            replace_in_paragraph(paragraph, pattern, lambda _: replace, formatting)
            for paragraph in iter_paragraphs(doc)
        )
        return self._save(doc), count

    def add_comment(self, filename: str, text: str, comment: str, author: str = AUTHOR) -> bytes:
        doc = self._load(filename)
        paragraph = doc.add_paragraph(f"Text: {text}")
        initials = "".join(word[0] for word in author.split() if word)[:3]
        doc.add_comment(paragraph.runs, text=comment, author=author, initials=initials)
        remark = doc.add_paragraph()
        _add_run(remark, f"Comment by {author}: {comment}", italic=True, color=LINK_COLOR)
        return self._save(doc)

    def format_styles(self, filename: str, styles: dict) -> tuple[bytes, int]:
        doc = self._load(filename)
        added = self.apply_styles(doc, styles)
        return self._save(doc), added

    def insert_image(self, filename: str, image_path: str, size: Optional[dict] = None) -> bytes:
        doc = self._load(filename)
        size = size or {}
        paragraph = doc.add_paragraph()
        stream = load_image(image_path)
        paragraph.add_run().add_picture(stream,
                                        width=Emu((size.get("width") or 200) * EMU_PER_PIXEL),
                                        height=Emu((size.get("height") or 200) * EMU_PER_PIXEL))
        doc.add_paragraph(f"Image inserted from: {image_path}")
        return self._save(doc)

    def add_header_footer(self, filename: str, kind: str, content: list[dict],
                          section_type: str = "default") -> bytes:
        doc = self._load(filename)
        for section in doc.sections:
            part = self._header_footer(doc, section, kind, section_type)
            self._fill_header_footer(part, content)
        return self._save(doc)

    def compare_documents(self, original_path: str, revised_path: str, author: str = AUTHOR) -> tuple[bytes, dict]:
        """Paragraph-level diff report. Returns (bytes, {unchanged, added, removed})."""
        original = [p.text for p in Document(original_path).paragraphs if p.text.strip()]
        revised = [p.text for p in Document(revised_path).paragraphs if p.text.strip()]

        doc = Document()
        doc.add_heading("Document Comparison Report", 1)
        doc.add_paragraph(f"Original: {original_path}")
        doc.add_paragraph(f"Revised: {revised_path}")
        doc.add_paragraph(f"Reviewer: {author}")

        stats = {"unchanged": 0, "added": 0, "removed": 0}
        changes = []
        for tag, i1, i2, j1, j2 in difflib.SequenceMatcher(a=original, b=revised, autojunk=False).get_opcodes():
            if tag == "equal":
                stats["unchanged"] += i2 - i1
                continue
            for line in original[i1:i2]:
                changes.append(("-", line))
                stats["removed"] += 1
            for line in revised[j1:j2]:
                changes.append(("+", line))
                stats["added"] += 1

        summary = doc.add_paragraph()
        _add_run(summary, f"Unchanged: {stats['unchanged']}, Added: {stats['added']}, Removed: {stats['removed']}",
                 bold=True)
        if changes:
            doc.add_heading("Changes", 2)
            for marker, line in changes:
                paragraph = doc.add_paragraph()
                if marker == "+":
                    _add_run(paragraph, f"+ {line}", color="00AA00")
                else:
                    _add_run(paragraph, f"- {line}", color="FF0000", strike=True)
        else:
            _note(doc, "The documents have identical text.")
        return self._save(doc), stats

    def convert_to_pdf(self, filename: str) -> bytes:
        doc = Document()
        doc.add_heading("PDF Conversion Information", 1)
        doc.add_paragraph(f"Source document: {filename}")
        doc.add_paragraph("PDF conversion requires external tools like LibreOffice or docx2pdf")
        return self._save(doc)

    def merge_documents(self, document_paths: list[str]) -> tuple[bytes, int]:
        """Body content of every readable document, separated by page breaks.

        Returns (bytes, number of documents merged).
        """
        merged = Document()
        body = merged.element.body
        merged_count = 0

        for path in document_paths:
            try:
                source = Document(path)
            except Exception as e:
                logger.error(f"Error merging document {path}: {e}")
                continue

            if merged_count:
                merged.add_page_break()
            for element in source.element.body.iterchildren():
                if element.tag == qn("w:sectPr"):
                    continue
                copied = deepcopy(element)
                # pictures reference the source part's relationships
                for blip in copied.iter(qn("a:blip")):
                    r_id = blip.get(qn("r:embed"))
                    if r_id and r_id in source.part.rels:
                        blob = source.part.rels[r_id].target_part.blob
                        new_id, _ = merged.part.get_or_add_image(io.BytesIO(blob))
                        blip.set(qn("r:embed"), new_id)
                body.insert(len(body) - 1, copied)
            merged_count += 1

        return self._save(merged), merged_count

    # ── review and references ────────────────────────────────────────

    def enable_track_changes(self, filename: str, enable: bool, author: Optional[str] = None) -> bytes:
        doc = self._load(filename)
        settings = doc.settings.element
        for existing in settings.findall(qn("w:trackRevisions")):
            settings.remove(existing)
        if enable:
            _settings_element(doc, "w:trackRevisions", f'<w:trackRevisions {nsdecls("w")}/>')

        doc.add_heading(f"Track Changes: {'ENABLED' if enable else 'DISABLED'}", 1)
        doc.add_paragraph(f"Author: {author or AUTHOR}")
        _note(doc, "Note: Full track changes functionality requires Microsoft Word.")
        return self._save(doc)

    def add_footnotes(self, filename: str, footnotes: list[dict]) -> bytes:
        doc = self._load(filename)
        for index, footnote in enumerate(footnotes, 1):
            paragraph = doc.add_paragraph()
            paragraph.add_run(footnote["text"])
            _add_run(paragraph, f" [{index}]", superscript=True, color=LINK_COLOR)

        doc.add_page_break()
        endnotes = all(f.get("type") == "endnote" for f in footnotes) and footnotes
        doc.add_heading("Endnotes" if endnotes else "Footnotes", 2)
        for index, footnote in enumerate(footnotes, 1):
            paragraph = doc.add_paragraph()
            _add_run(paragraph, f"{index}. ", superscript=True)
            _add_run(paragraph, footnote["note"], size=10)
        return self._save(doc)

    def add_bookmarks(self, filename: str, bookmarks: list[dict]) -> bytes:
        doc = self._load(filename)
        next_id = _bookmark_ids(doc)
        for bookmark in bookmarks:
            paragraph = _find_paragraph(doc, bookmark["text"])
            if paragraph is None:
                paragraph = doc.add_paragraph()
                _add_run(paragraph, f'📑 Bookmark "{bookmark["name"]}": ', bold=True)
                paragraph.add_run(bookmark["text"])
            _wrap_bookmark(paragraph, bookmark["name"], next_id)
            next_id += 1
        return self._save(doc)

    def add_section_breaks(self, filename: str, breaks: list[dict]) -> bytes:
        doc = self._load(filename)
        paragraphs = doc.paragraphs
        body_sect_pr = doc.sections[-1]._sectPr

        appended = 0
        for brk in sorted(breaks, key=lambda b: b.get("position") or 0):
            start = SECTION_STARTS.get(brk.get("type"), WD_SECTION.NEW_PAGE)
            position = brk.get("position") or 0
            if 0 < position <= len(paragraphs):
                # a section ends at the paragraph carrying its sectPr
                p_pr = paragraphs[position - 1]._p.get_or_add_pPr()
                if p_pr.sectPr is not None:
                    p_pr.remove(p_pr.sectPr)
                sect_pr = deepcopy(body_sect_pr)
                p_pr.append(sect_pr)
                Section(sect_pr, doc.part).start_type = start
            else:
                appended += 1
                doc.add_section(start)
                doc.add_heading(f"Section {len(doc.sections)}", 1)
                paragraph = doc.add_paragraph()
                _add_run(paragraph, f"Break Type: {brk.get('type')}", italic=True)
        return self._save(doc)

    def add_text_boxes(self, filename: str, text_boxes: list[dict]) -> bytes:
        doc = self._load(filename)
        for index, box in enumerate(text_boxes, 1):
            label = doc.add_paragraph()
            _add_run(label, f"[Text Box {index}]", bold=True, color=ACCENT)
            paragraph = doc.add_paragraph(box["text"])
            _box(paragraph, ACCENT)
            _shade(paragraph, "F0F8FF")
        _note(doc, "Note: Full text box positioning requires Microsoft Word.")
        return self._save(doc)

    def add_cross_references(self, filename: str, references: list[dict]) -> bytes:
        doc = self._load(filename)
        for ref in references:
            name = ref["bookmarkName"]
            kind = ref.get("referenceType") or "text"
            instruction = {
                "pageNumber": f"PAGEREF {name} \\h",
                "above/below": f"REF {name} \\p \\h",
            }.get(kind, f"REF {name} \\h")

            paragraph = doc.add_paragraph()
            paragraph.add_run(ref.get("insertText") or "See ")
            _add_field(paragraph, instruction, f'"{name}"', bold=True, color=LINK_COLOR)
            _add_run(paragraph, f" ({kind})", italic=True)
        _note(doc, "Note: Cross-reference fields update when the document is opened in Microsoft Word.")
        return self._save(doc)

    def add_bibliography(self, filename: str, sources: list[dict], style: str = "APA") -> bytes:
        doc = self._load(filename)
        formatter = CITATION_STYLES.get(style, format_apa)
        doc.add_heading("References", 1)
        for source in sources:
            paragraph = doc.add_paragraph(formatter(source))
            paragraph.paragraph_format.space_after = Twips(200)
        _note(doc, f"[Bibliography formatted in {style} style]")
        return self._save(doc)

    def insert_citations(self, filename: str, citations: list[dict]) -> tuple[bytes, int]:
        """Citation markers at paragraph positions (1-based). Returns (bytes, markers placed inline)."""
        doc = self._load(filename)
        paragraphs = doc.paragraphs
        inline = 0
        listed = []

        for index, citation in enumerate(citations, 1):
            text = "".join([
                citation.get("prefix") or "",
                f"({citation['sourceTag']}",
                f", p. {citation['pageNumber']}" if citation.get("pageNumber") else "",
                ")",
                citation.get("suffix") or "",
            ])
            position = citation.get("position") or 0
            if 0 < position <= len(paragraphs):
                _add_run(paragraphs[position - 1], f" {text}", italic=True)
                inline += 1
            else:
                listed.append((index, text, position))

        if listed:
            doc.add_heading("Citations", 2)
            for index, text, position in listed:
                paragraph = doc.add_paragraph()
                paragraph.add_run(f"Citation {index}: ")
                _add_run(paragraph, text, italic=True, color=LINK_COLOR)
                _add_run(paragraph, f" at paragraph {position}", color=NOTE_COLOR)
        return self._save(doc), inline

    def create_index(self, filename: str, entries: list[dict], title: str = "Index", columns: int = 2,
                     insert_at: str = "newPage") -> bytes:
        doc = self._load(filename)
        section = doc.add_section(WD_SECTION.NEW_PAGE if insert_at == "newPage" else WD_SECTION.CONTINUOUS)
        cols = section._sectPr.find(qn("w:cols"))
        if cols is None:
            cols = parse_xml(f'<w:cols {nsdecls("w")}/>')
            section._sectPr.append(cols)
        cols.set(qn("w:num"), str(columns))
        cols.set(qn("w:space"), "720")

        heading = doc.add_heading(title, 1)
        heading.alignment = WD_ALIGN_PARAGRAPH.CENTER

        grouped: dict[str, list[dict]] = {}
        for entry in entries:
            grouped.setdefault(entry["mainEntry"], []).append(entry)

        for main_entry in sorted(grouped, key=str.lower):
            items = grouped[main_entry]
            pages = [str(e.get("pageNumber") or "?") for e in items if not e.get("subEntry")]
            paragraph = doc.add_paragraph()
            _add_run(paragraph, main_entry, bold=True)
            if pages:
                paragraph.add_run(f", {', '.join(pages)}")
            _spacing(paragraph, {"before": 100, "after": 50})
            for entry in sorted((e for e in items if e.get("subEntry")), key=lambda e: e["subEntry"].lower()):
                sub = doc.add_paragraph(f"{entry['subEntry']}, {entry.get('pageNumber') or '?'}")
                sub.paragraph_format.left_indent = Inches(0.25)

        _note(doc, f"[Index formatted with {columns} column(s)]")
        return self._save(doc)

    def mark_index_entry(self, filename: str, text: str, main_entry: str, sub_entry: Optional[str] = None,
                         cross_reference: Optional[str] = None) -> tuple[bytes, int]:
        """XE fields after every paragraph containing `text`. Returns (bytes, paragraphs marked)."""
        doc = self._load(filename)
        entry = f"{main_entry}:{sub_entry}" if sub_entry else main_entry
        instruction = f'XE "{entry}"' + (f' \\t "See {cross_reference}"' if cross_reference else "")

        marked = 0
        for paragraph in list(doc.paragraphs):
            if text and text in paragraph.text:
                _add_field(paragraph, instruction, "")
                marked += 1

        doc.add_heading("Index Entry Markers", 2)
        paragraph = doc.add_paragraph()
        _add_run(paragraph, "Marked text: ", bold=True)
        _add_run(paragraph, text, highlight="yellow")
        doc.add_paragraph(f"Entry: {entry}")
        if cross_reference:
            paragraph = doc.add_paragraph()
            _add_run(paragraph, "Cross-reference: ", italic=True)
            _add_run(paragraph, cross_reference, italic=True, color=LINK_COLOR)
        return self._save(doc), marked

    # ── forms and controls ───────────────────────────────────────────

    def add_form_fields(self, filename: str, fields: list[dict], protect_form: bool = False) -> bytes:
        doc = self._load(filename)
        doc.add_heading("Form Fields", 1)
        if protect_form:
            paragraph = doc.add_paragraph()
            _add_run(paragraph, "🔒 Form is protected (fill-in only)", bold=True, color="FF6600")
            _settings_element(doc, "w:documentProtection",
                              f'<w:documentProtection {nsdecls("w")} w:edit="forms" w:enforcement="1"/>')

        for field in fields:
            label = doc.add_paragraph()
            _add_run(label, field.get("label") or field["name"], bold=True)
            if field.get("required"):
                _add_run(label, " *", color="FF0000")
            label.paragraph_format.space_before = Twips(150)

            kind = field.get("type")
            if kind == "text":
                limit = f" (max {field['maxLength']})" if field.get("maxLength") else ""
                representation = f"[Text: _____________{limit}]"
            elif kind == "checkbox":
                representation = f"[☐ Checkbox{' (checked)' if field.get('defaultValue') else ''}]"
            elif kind == "dropdown":
                representation = f"[Dropdown: {', '.join(field.get('options') or []) or 'options'}]"
            elif kind == "date":
                representation = "[Date Picker: MM/DD/YYYY]"
            else:
                representation = "[Number: _______]"
            _shade(doc.add_paragraph(representation), "F0F0F0")

            if field.get("helpText"):
                help_text = doc.add_paragraph()
                _add_run(help_text, f"ℹ️ {field['helpText']}", italic=True, size=9, color=NOTE_COLOR)

        _note(doc, "Note: Interactive form fields require Microsoft Word.")
        return self._save(doc)

    def add_content_controls(self, filename: str, controls: list[dict]) -> bytes:
        """Block-level structured document tags (w:sdt) with placeholder text."""
        doc = self._load(filename)
        doc.add_heading("Content Controls", 1)

        for control in controls:
            label = doc.add_paragraph()
            _add_run(label, control["title"], bold=True, color=ACCENT)
            if control.get("tag"):
                _add_run(label, f" [{control['tag']}]", italic=True, color=NOTE_COLOR)

            kind = control.get("type")
            options = control.get("options") or []
            items = "".join(f'<w:listItem w:displayText={quoteattr(o)} w:value={quoteattr(o)}/>' for o in options)
            if kind == "plainText":
                text, props = f"[Plain Text Control: {control.get('placeholder') or 'Enter text here'}]", "<w:text/>"
            elif kind == "picture":
                text, props = "[Picture Control: Click to insert image]", "<w:picture/>"
            elif kind == "dropDownList":
                text = f"[Dropdown List: {' | '.join(options) or 'Select option'}]"
                props = f"<w:dropDownList>{items}</w:dropDownList>"
            elif kind == "comboBox":
                text = f"[Combo Box: {' | '.join(options) or 'Type or select'}]"
                props = f"<w:comboBox>{items}</w:comboBox>"
            elif kind == "datePicker":
                date_format = control.get("dateFormat") or "MM/DD/YYYY"
                text = f"[Date Picker: {date_format}]"
                props = f'<w:date><w:dateFormat w:val={quoteattr(date_format)}/></w:date>'
            elif kind == "checkbox":
                text, props = "[☐ Checkbox Control]", "<w:text/>"
            else:
                text, props = f"[Rich Text Control: {control.get('placeholder') or 'Enter formatted text here'}]", ""

            tag = f'<w:tag w:val={quoteattr(control["tag"])}/>' if control.get("tag") else ""
            sdt = parse_xml(
                f'<w:sdt {nsdecls("w")}><w:sdtPr><w:alias w:val={quoteattr(control["title"])}/>{tag}'
                f'<w:showingPlcHdr/>{props}</w:sdtPr><w:sdtContent/></w:sdt>'
            )
            paragraph = doc.add_paragraph(text)
            _box(paragraph, ACCENT)
            _shade(paragraph, "F0F8FF")
            paragraph._p.addprevious(sdt)
            sdt.find(qn("w:sdtContent")).append(paragraph._p)

        _note(doc, "Note: Content controls are interactive in Microsoft Word.")
        return self._save(doc)

    def insert_smartart(self, filename: str, smart_art: dict) -> bytes:
        doc = self._load(filename)
        heading = doc.add_heading("📊 SmartArt Graphic", 2)
        heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
        for text in (f"Type: {smart_art['type']} | Layout: {smart_art.get('layout', '')}",
                     f"Style: {smart_art.get('style') or 'default'} | Colors: {smart_art.get('colorScheme') or 'default'}"):
            paragraph = doc.add_paragraph()
            _add_run(paragraph, text, italic=True)
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER

        items = smart_art.get("items") or []
        for index, item in enumerate(items):
            if smart_art["type"] == "hierarchy":
                level = item.get("level") or 0
                line = f"{'    ' * level}{'▪' if level == 0 else '▫'} {item['text']}"
            elif smart_art["type"] == "process":
                line = f"{index + 1}. {item['text']}{' →' if index < len(items) - 1 else ''}"
            else:
                line = f"• {item['text']}"
            _spacing(doc.add_paragraph(line), {"before": 50, "after": 50})

        _note(doc, "[SmartArt placeholder - Full SmartArt graphics require Microsoft Word]")
        return self._save(doc)

    def add_equations(self, filename: str, equations: list[dict]) -> bytes:
        doc = self._load(filename)
        doc.add_heading("Mathematical Equations", 1)
        for index, equation in enumerate(equations, 1):
            label = doc.add_paragraph()
            _add_run(label, f"Equation {index}: ", bold=True)
            _add_run(label, "(inline)" if equation.get("inline") else "(display)", italic=True, color=NOTE_COLOR)

            paragraph = doc.add_paragraph()
            if equation.get("latex"):
                paragraph.add_run(f"LaTeX: {equation['latex']}")
            elif equation.get("mathml"):
                paragraph.add_run(f"MathML: {equation['mathml'][:100]}...")
            elif equation.get("text"):
                # plain-text equations become native Office Math
                paragraph._p.append(parse_xml(
                    f'<m:oMath {MATH_NS}><m:r><m:t>{escape(equation["text"])}</m:t></m:r></m:oMath>'
                ))
            paragraph.alignment = WD_ALIGN_PARAGRAPH.LEFT if equation.get("inline") else WD_ALIGN_PARAGRAPH.CENTER
            _shade(paragraph, "FFF8E1")
            _box(paragraph, "FFA726")

        _note(doc, "[LaTeX and MathML sources are shown as text; plain-text equations are Office Math objects]")
        return self._save(doc)

    def insert_symbols(self, filename: str, symbols: list[dict]) -> bytes:
        doc = self._load(filename)
        doc.add_heading("Special Characters and Symbols", 1)
        for index, symbol in enumerate(symbols, 1):
            paragraph = doc.add_paragraph()
            paragraph.add_run(f"Symbol {index}: ")
            _add_run(paragraph, symbol["character"], font=symbol.get("font"), size=16, bold=True)
            if symbol.get("font"):
                _add_run(paragraph, f" ({symbol['font']} font)", italic=True, color=NOTE_COLOR)
            _spacing(paragraph, {"before": 100, "after": 100})
        return self._save(doc)

    # ── accessibility and metadata ───────────────────────────────────

    def check_accessibility(self, filename: str, checks: Optional[dict] = None,
                            auto_fix: bool = False) -> tuple[bytes, list[str]]:
        """Inspect the loaded document and append a report. Returns (bytes, issues)."""
        doc = self._load(filename)
        checks = checks or {"altText": True, "headingStructure": True, "colorContrast": True,
                            "tableHeaders": True, "readingOrder": True}
        issues: list[str] = []
        performed: list[tuple[str, str]] = []
        fixed = 0

        if not any(p.text.strip() for p in doc.paragraphs) and not doc.tables:
            issues.append("Document has no text content")

        if checks.get("altText"):
            missing = [i for i, shape in enumerate(doc.inline_shapes, 1) if not shape._inline.docPr.get("descr")]
            if missing:
                issues.append(f"{len(missing)} image(s) found without alt text")
                if auto_fix:
                    for i in missing:
                        doc.inline_shapes[i - 1]._inline.docPr.set("descr", f"Image {i}")
                        fixed += 1
            performed.append(("Alt Text Check", "Checked for images missing alternative text"))

        if checks.get("headingStructure"):
            previous = 0
            for paragraph in doc.paragraphs:
                match = re.fullmatch(r"Heading (\d)", paragraph.style.name if paragraph.style is not None else "")
                if not match:
                    continue
                level = int(match.group(1))
                if previous and level > previous + 1:
                    issues.append(f'Heading levels skip from H{previous} to H{level} at "{paragraph.text[:40]}"')
                previous = level
            performed.append(("Heading Structure", "Verified proper heading hierarchy"))

        if checks.get("colorContrast"):
            low = 0
            for paragraph in doc.paragraphs:
                for run in paragraph.runs:
                    color = run.font.color.rgb if run.font.color is not None and run.font.color.type is not None else None
                    if isinstance(color, RGBColor) and run.text.strip() and _contrast_with_white(color) < 4.5:
                        low += 1
            if low:
                issues.append(f"{low} text run(s) below a 4.5:1 contrast ratio on white")
            performed.append(("Color Contrast", "Analyzed text/background contrast ratios"))

        if checks.get("tableHeaders"):
            without_header = [t for t in doc.tables if t.rows and t.rows[0]._tr.trPr is None
                              or t.rows and t.rows[0]._tr.trPr.find(qn("w:tblHeader")) is None]
            if without_header:
                issues.append(f"{len(without_header)} table(s) missing header rows")
                if auto_fix:
                    for table in without_header:
                        table.rows[0]._tr.get_or_add_trPr().append(parse_xml(f'<w:tblHeader {nsdecls("w")}/>'))
                        fixed += 1
            performed.append(("Table Headers", "Checked tables for header rows"))

        if checks.get("readingOrder"):
            performed.append(("Reading Order", "Verified logical reading order"))

        doc.add_heading("Accessibility Check Report", 1)
        paragraph = doc.add_paragraph()
        _add_run(paragraph, f"Auto-fix: {'Enabled' if auto_fix else 'Disabled'}", italic=True)
        for name, description in performed:
            paragraph = doc.add_paragraph()
            _add_run(paragraph, f"✓ {name}: ", bold=True, color="00AA00")
            paragraph.add_run(description)

        if issues:
            doc.add_heading("Issues Found:", 2)
            for issue in issues:
                paragraph = doc.add_paragraph()
                _add_run(paragraph, "⚠ ", color="FF6600")
                paragraph.add_run(issue)
        else:
            doc.add_paragraph("No accessibility issues found.")
        if fixed:
            _note(doc, f"Auto-fix applied {fixed} change(s).")
        return self._save(doc), issues

    def set_alt_text(self, filename: str, images: list[dict]) -> tuple[bytes, int]:
        """descr/title on inline pictures by 1-based index. Returns (bytes, pictures updated)."""
        doc = self._load(filename)
        shapes = doc.inline_shapes
        applied = 0
        doc.add_heading("Alt Text Assignments", 1)

        for item in images:
            index = item["imageIndex"]
            found = 1 <= index <= len(shapes)
            if found:
                doc_pr = shapes[index - 1]._inline.docPr
                doc_pr.set("descr", item["altText"])
                if item.get("title"):
                    doc_pr.set("title", item["title"])
                applied += 1
            else:
                logger.warning(f"Image {index} not found in {filename}")

            paragraph = doc.add_paragraph()
            _add_run(paragraph, f"Image {index}: ", bold=True)
            if item.get("title"):
                _add_run(paragraph, f'"{item["title"]}" - ', italic=True)
            paragraph.add_run(item["altText"])
            if not found:
                _add_run(paragraph, " (not found)", color="FF0000")
        return self._save(doc), applied

    def add_digital_signature(self, filename: str, action: str, certificate_path: Optional[str] = None,
                              reason: Optional[str] = None, location: Optional[str] = None) -> bytes:
        doc = self._load(filename)
        doc.add_heading("Digital Signature", 1)
        if action == "add":
            _add_run(doc.add_paragraph(), "🔏 Signature Added", bold=True, color="00AA00")
            doc.add_paragraph(f"Certificate: {certificate_path or 'Not specified'}")
            doc.add_paragraph(f"Reason: {reason or 'Document approval'}")
            doc.add_paragraph(f"Location: {location or 'Not specified'}")
            doc.add_paragraph(f"Date: {datetime.datetime.now(datetime.timezone.utc).isoformat()}")
        elif action == "remove":
            _add_run(doc.add_paragraph(), "🔓 Signature Removed", bold=True, color="FF6600")
        else:
            _add_run(doc.add_paragraph(), "✓ Signature Valid", bold=True, color="00AA00")
            doc.add_paragraph("Certificate chain verified")
            doc.add_paragraph("Document has not been modified since signing")
        _note(doc, "[Digital signature metadata only - Cryptographic signing requires Microsoft Word or external tools]")
        return self._save(doc)

    def protect_document(self, filename: str, protection_type: str, password: Optional[str] = None,
                         allowed_editing: Optional[list[str]] = None, users: Optional[list[str]] = None) -> bytes:
        doc = self._load(filename)
        _settings_element(doc, "w:documentProtection",
                          f'<w:documentProtection {nsdecls("w")} w:edit="{protection_type}" w:enforcement="1"/>')

        doc.add_heading("🔒 Document Protection", 1)
        paragraph = doc.add_paragraph()
        _add_run(paragraph, "Protection Type: ", bold=True)
        _add_run(paragraph, protection_type, color="FF6600")
        _add_run(doc.add_paragraph(), PROTECTION_DESCRIPTIONS.get(protection_type, ""), italic=True)
        if password:
            doc.add_paragraph("🔑 Password protection enabled")
        for title, values in (("Allowed editing regions:", allowed_editing), ("Authorized users:", users)):
            if values:
                _add_run(doc.add_paragraph(), title, bold=True)
                for value in values:
                    doc.add_paragraph(f"  • {value}")
        _note(doc, "[Protection is enforced by Word; the password is not stored in the file]")
        return self._save(doc)

    def create_master_document(self, filename: str, subdocuments: list[dict], generate_toc: bool = False) -> bytes:
        doc = self._load(filename)
        heading = doc.add_heading("Master Document", 1)
        heading.alignment = WD_ALIGN_PARAGRAPH.CENTER
        if generate_toc:
            _toc(doc)
            doc.add_page_break()

        doc.add_heading("Subdocuments", 1)
        for index, subdoc in enumerate(subdocuments, 1):
            paragraph = doc.add_paragraph()
            _add_run(paragraph, f"{index}. ", bold=True)
            _add_run(paragraph, subdoc.get("title") or f"Subdocument {index}", bold=True, color=ACCENT)
            paragraph = doc.add_paragraph()
            _add_run(paragraph, f"   Path: {subdoc['path']}", italic=True)
            if subdoc.get("lockForEditing"):
                _add_run(paragraph, " 🔒 (Locked)", color="FF6600")
        _note(doc, "[Master document structure - Subdocument linking requires Microsoft Word]")
        return self._save(doc)

    def set_document_info(self, filename: str, info: dict) -> bytes:
        doc = self._load(filename)
        props = doc.core_properties
        if info.get("author"):
            props.author = info["author"]
        if info.get("title"):
            props.title = info["title"]
        if info.get("subject"):
            props.subject = info["subject"]
        if info.get("keywords"):
            props.keywords = ", ".join(info["keywords"])
        if info.get("category"):
            props.category = info["category"]
        if info.get("comments"):
            props.comments = info["comments"]

        doc.add_heading("Document Properties", 1)
        for label, value in (
            ("Title", info.get("title") or "Not set"),
            ("Author", info.get("author") or "Not set"),
            ("Subject", info.get("subject") or "Not set"),
            ("Keywords", ", ".join(info.get("keywords") or []) or "None"),
            ("Category", info.get("category") or "Not set"),
            ("Company", info.get("company") or "Not set"),
            ("Manager", info.get("manager") or "Not set"),
            ("Comments", info.get("comments") or "None"),
        ):
            doc.add_paragraph(f"{label}: {value}")
        _note(doc, "[Metadata embedded in document properties]")
        return self._save(doc)

    def add_captions(self, filename: str, captions: list[dict]) -> bytes:
        """Caption paragraphs numbered with SEQ fields, one sequence per label."""
        doc = self._load(filename)
        counters: dict[str, int] = {}
        for caption in captions:
            label = CAPTION_LABELS.get(caption["type"]) or caption.get("label") or "Item"
            counters[label] = counters.get(label, 0) + 1
            numbering = caption.get("numberingFormat") or "1, 2, 3"

            paragraph = doc.add_paragraph(style="Caption")
            _add_run(paragraph, f"{label} ", italic=True)
            _add_field(paragraph, f"SEQ {label} \\* {CAPTION_SWITCHES.get(numbering, 'ARABIC')}",
                       caption_number(counters[label], numbering), italic=True)
            suffix = ".1" if caption.get("includeChapterNumber") else ""
            _add_run(paragraph, f"{suffix}: {caption['text']}", italic=True)
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            _spacing(paragraph, {"before": 100, "after": 100})

            if caption.get("position"):
                position = doc.add_paragraph()
                _add_run(position, f"(Position: {caption['position']})", size=9, color=NOTE_COLOR)
                position.alignment = WD_ALIGN_PARAGRAPH.CENTER
        return self._save(doc)

    def add_advanced_hyperlinks(self, filename: str, links: list[dict]) -> bytes:
        doc = self._load(filename)
        doc.add_heading("Advanced Hyperlinks", 1)
        for index, link in enumerate(links, 1):
            paragraph = doc.add_paragraph()
            paragraph.add_run(f"{index}. ")

            tooltip = f" w:tooltip={quoteattr(link['screenTip'])}" if link.get("screenTip") else ""
            if link.get("url") or link.get("emailAddress"):
                destination = link.get("url") or f"mailto:{link['emailAddress']}"
                r_id = paragraph.part.relate_to(destination, RT.HYPERLINK, is_external=True)
                target = f'r:id="{r_id}"'
            elif link.get("bookmark"):
                destination = f"#{link['bookmark']}"
                target = f"w:anchor={quoteattr(link['bookmark'])}"
            else:
                destination = ""
                target = ""

            hyperlink = parse_xml(
                f'<w:hyperlink {nsdecls("w", "r")} {target}{tooltip}><w:r><w:rPr>'
                f'<w:color w:val="{LINK_COLOR}"/><w:u w:val="single"/></w:rPr>'
                f'<w:t xml:space="preserve">{escape(link["text"])}</w:t></w:r></w:hyperlink>'
            )
            paragraph._p.append(hyperlink)
            if destination:
                _add_run(paragraph, f" → {destination}", italic=True, color=NOTE_COLOR)
            _spacing(paragraph, {"before": 100, "after": 50})

            if link.get("screenTip"):
                tip = doc.add_paragraph()
                _add_run(tip, f"   ℹ️ {link['screenTip']}", size=9, color=NOTE_COLOR)
        return self._save(doc)

    def add_drop_cap(self, filename: str, paragraph_index: int, style: str = "dropped",
                     lines: int = 3, distance: float = 0) -> bytes:
        """Move the first letter of a body paragraph (0-based) into a drop-cap frame."""
        doc = self._load(filename)
        paragraphs = doc.paragraphs
        if not 0 <= paragraph_index < len(paragraphs):
            raise ValueError(f"Paragraph {paragraph_index} not found (document has {len(paragraphs)} paragraphs)")
        target = paragraphs[paragraph_index]
        first_run = next((run for run in target.runs if run.text), None)
        if first_run is None:
            raise ValueError(f"Paragraph {paragraph_index} has no text")

        letter = first_run.text[0]
        first_run.text = first_run.text[1:]

        mode = "margin" if style == "inMargin" else "drop"
        frame = doc.add_paragraph()
        frame._p.get_or_add_pPr().append(parse_xml(
            f'<w:framePr {nsdecls("w")} w:dropCap="{mode}" w:lines="{lines}" w:wrap="around" '
            f'w:vAnchor="text" w:hAnchor="text" w:hSpace="{int(distance * 20)}"/>'
        ))
        _add_run(frame, letter, bold=True, size=12 * lines, color=ACCENT)
        target._p.addprevious(frame._p)
        return self._save(doc)

    def add_watermark(self, filename: str, watermark: dict) -> bytes:
        doc = self._load(filename)
        opacity = watermark.get("opacity") or 0.5
        if watermark.get("type") == "text" and watermark.get("text"):
            color = watermark.get("color") or "C0C0C0"
            if not re.fullmatch(r"#?[0-9A-Fa-f]{6}", color):
                color = "C0C0C0"
            paragraph = doc.add_paragraph()
            _add_run(paragraph, watermark["text"].upper(), size=watermark.get("fontSize") or 36, color=color)
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            _shade(paragraph, "F0F0F0")
            _note(doc, f'[Text watermark: "{watermark["text"]}"]')
            _note(doc, f"Diagonal: {str(watermark.get('diagonal') is not False).lower()}, "
                       f"Opacity: {opacity}, Color: {watermark.get('color') or 'gray'}")
        elif watermark.get("type") == "image" and watermark.get("imagePath"):
            paragraph = doc.add_paragraph("[IMAGE WATERMARK]")
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
            _shade(paragraph, "F0F0F0")
            _note(doc, f"[Image watermark: {watermark['imagePath']}]")
            _note(doc, f"Opacity: {opacity}")
        _note(doc, "[Watermark placeholder - Full watermark rendering requires Microsoft Word]")
        return self._save(doc)

    def add_content(self, filename: str, content_type: str, text: Optional[str] = None, level: int = 1,
                    items: Optional[list[str]] = None, image_path: Optional[str] = None,
                    image_width_inches: float = 5.0, table_data: Optional[list[list]] = None,
                    table_header: bool = True) -> tuple[bytes, dict]:
        """Append one block of content. Returns (bytes, details for the status text)."""
        doc = self._load(filename)
        details: dict[str, Any] = {}

        if content_type == "heading":
            if not text:
                raise ValueError("text required for heading")
            level = max(1, min(level, 4))
            doc.add_heading(text, level=level)
            details["level"] = level

        elif content_type == "paragraph":
            if not text:
                raise ValueError("text required for paragraph")
            doc.add_paragraph(text)

        elif content_type == "bullets":
            if not items:
                raise ValueError("items required for bullets")
            for item in items:
                doc.add_paragraph(item, style='List Bullet')
            details["items"] = len(items)

        elif content_type == "image":
            if not image_path:
                raise ValueError("imagePath required for image")
            doc.add_picture(load_image(image_path), width=Inches(image_width_inches))
            details["image"] = image_path

        elif content_type == "table":
            if not table_data or not table_data[0]:
                raise ValueError("tableData required for table")
            rows, cols = len(table_data), max(len(row) for row in table_data)
            table = doc.add_table(rows=rows, cols=cols)
            table.style = 'Table Grid'
            for row_idx, row_data in enumerate(table_data):
                for col_idx, cell_value in enumerate(row_data):
                    cell = table.rows[row_idx].cells[col_idx]
                    cell.text = "" if cell_value is None else str(cell_value)
                    if table_header and row_idx == 0:
                        _set_cell_shading(cell, "4472C4")
                        for para in cell.paragraphs:
                            for run in para.runs:
                                _style_run(run, bold=True, color="FFFFFF")
            details["table"] = f"{rows}x{cols}"

        elif content_type == "pageBreak":
            doc.add_page_break()

        else:
            raise ValueError(f"Unknown contentType: {content_type}")

        return self._save(doc), details
