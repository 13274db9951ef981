'''
PowerPoint generator - build and modify .pptx presentations with python-pptx.

Positions and sizes are in inches. Edit methods load the named presentation
(a blank one when the file does not exist) and return the serialized bytes.
Features python-pptx has no API for are written as presentation XML
(transitions, sections, custom shows, click actions) or rendered as
descriptive slides (recording, designer, presenter coach, ...).
'''

import io
import math
import mimetypes
import os
import uuid
from copy import deepcopy
from typing import Any, Optional
from xml.sax.saxutils import quoteattr

from pptx import Presentation
from pptx.chart.data import CategoryChartData, XyChartData
from pptx.dml.color import RGBColor
from pptx.enum.chart import XL_CHART_TYPE, XL_LEGEND_POSITION
from pptx.enum.dml import MSO_LINE_DASH_STYLE
from pptx.enum.shapes import MSO_CONNECTOR, MSO_SHAPE
from pptx.enum.text import MSO_ANCHOR, PP_ALIGN
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.oxml import parse_xml
from pptx.oxml.ns import nsdecls, qn
from pptx.util import Emu, Inches, Pt

from ..errors import SlideNotFoundError
from ..media import load_image, media_stream

import logging
logger = logging.getLogger(__name__)

AUTHOR = "Office Whisperer"
NOTE_COLOR = "666666"
EMU_PER_INCH = 914400

PPTX_WIDTH = Inches(10)
PPTX_HEIGHT = Inches(7.5)
WIDE_WIDTH = Inches(13.333)

THEME_BACKGROUNDS = {"dark": "1E1E1E", "light": "FFFFFF", "colorful": "F5F5F5"}

SHAPES = {
    "rectangle": MSO_SHAPE.RECTANGLE,
    "ellipse": MSO_SHAPE.OVAL,
    "triangle": MSO_SHAPE.ISOSCELES_TRIANGLE,
    "arrow": MSO_SHAPE.RIGHT_ARROW,
}

CHART_TYPES = {
    "bar": XL_CHART_TYPE.COLUMN_CLUSTERED,
    "line": XL_CHART_TYPE.LINE_MARKERS,
    "pie": XL_CHART_TYPE.PIE,
    "scatter": XL_CHART_TYPE.XY_SCATTER,
    "area": XL_CHART_TYPE.AREA,
}

ALIGN = {"left": PP_ALIGN.LEFT, "center": PP_ALIGN.CENTER, "right": PP_ALIGN.RIGHT, "justify": PP_ALIGN.JUSTIFY}
VALIGN = {"top": MSO_ANCHOR.TOP, "middle": MSO_ANCHOR.MIDDLE, "bottom": MSO_ANCHOR.BOTTOM}
DIRECTIONS = {"left": "l", "right": "r", "up": "u", "down": "d"}

TRANSITIONS = {
    "fade": "<p:fade/>",
    "push": '<p:push dir="{dir}"/>',
    "wipe": '<p:wipe dir="{dir}"/>',
    "split": '<p:split orient="horz" dir="out"/>',
    "reveal": '<p:cover dir="{dir}"/>',
    "randomBars": '<p:randomBar dir="horz"/>',
    "circle": "<p:circle/>",
    "dissolve": "<p:dissolve/>",
}

SHOW_JUMPS = {
    "nextSlide": "nextslide",
    "previousSlide": "previousslide",
    "firstSlide": "firstslide",
    "lastSlide": "lastslide",
    "endShow": "endshow",
}

SMARTART_COLORS = {
    "colorful": ["0078D4", "7719AA", "D83B01", "107C10", "FFB900", "E74856"],
    "accent1": ["0078D4", "106EBE", "005A9E", "004578", "002050", "001424"],
    "accent2": ["7719AA", "621E95", "4F1A7F", "3B135F", "270D3F", "13061F"],
    "accent3": ["D83B01", "B53100", "912700", "6D1D00", "481300", "240900"],
    "accent4": ["107C10", "0E6A0D", "0B570A", "084407", "053104", "021E02"],
    "accent5": ["FFB900", "D99E00", "B38300", "8C6700", "664C00", "403000"],
    "accent6": ["E74856", "C43E49", "A1333C", "7E292F", "5B1E22", "381215"],
}

PLACEHOLDER_ICONS = {"text": "📝", "image": "🖼️", "chart": "📊", "table": "📋", "video": "🎬"}
TRIGGER_ICONS = {"onClick": "🖱️", "withPrevious": "⏩", "afterPrevious": "⏭️", "onPageClick": "👆"}
ACCENTS = ("accent1", "accent2", "accent3", "accent4", "accent5", "accent6")

SECTIONS_EXT_URI = "{521415D9-36F7-43E2-AB2F-B90AF26B5E84}"
P14_NS = "http://schemas.microsoft.com/office/powerpoint/2010/main"


def _parse_color(color_str: str) -> RGBColor:
    """
    Convert color string to RGBColor.

    Accepts:
        - Color names: red, green, blue, white, black, yellow, orange, purple, gray/grey
        - Hex codes: #RRGGBB, RRGGBB or AARRGGBB

    Returns black if color cannot be parsed.
    """
    color_map = {
        "red": RGBColor(255, 0, 0),
        "green": RGBColor(0, 255, 0),
        "blue": RGBColor(0, 0, 255),
        "white": RGBColor(255, 255, 255),
        "black": RGBColor(0, 0, 0),
        "yellow": RGBColor(255, 255, 0),
        "orange": RGBColor(255, 165, 0),
        "purple": RGBColor(128, 0, 128),
        "gray": RGBColor(128, 128, 128),
        "grey": RGBColor(128, 128, 128),
    }

    if color_str.lower() in color_map:
        return color_map[color_str.lower()]

    hex_part = color_str.lstrip("#")
    if len(hex_part) in (6, 8):
        try:
            return RGBColor.from_string(hex_part[-6:].upper())
        except ValueError:
            pass

    return RGBColor(0, 0, 0)


def _num(value: Any, default: float) -> float:
    """Inches from a number or a numeric string such as '1.5' or '2in'."""
    if value is None or value == "":
        return default
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip().rstrip('"').replace("in", ""))
    except ValueError:
        return default


def _dim(value: Any, total: float, default: float) -> float:
    """Like _num, with 'NN%' taken relative to `total` inches."""
    if isinstance(value, str) and value.strip().endswith("%"):
        try:
            return total * float(value.strip()[:-1]) / 100
        except ValueError:
            return default
    return _num(value, default)


def _set_alpha(shape, transparency: float) -> None:
    """Fill transparency in percent (solid fills only)."""
    solid = shape._element.spPr.find(qn("a:solidFill"))
    if solid is not None and len(solid):
        solid[0].append(parse_xml(f'<a:alpha {nsdecls("a")} val="{int((100 - transparency) * 1000)}"/>'))


def add_text(slide, text: str, x: float, y: float, w: float = 9, h: float = 0.5, size: float = 14,
             bold: bool = False, italic: bool = False, color: Optional[str] = None, align: Optional[str] = None,
             valign: Optional[str] = None, font: Optional[str] = None, underline: bool = False,
             line_spacing: Optional[float] = None):
    """Word-wrapped textbox, one paragraph per line of `text`."""
    box = slide.shapes.add_textbox(Inches(x), Inches(y), Inches(w), Inches(h))
    tf = box.text_frame
    tf.word_wrap = True
    if valign:
        tf.vertical_anchor = VALIGN.get(valign, MSO_ANCHOR.TOP)
    for index, line in enumerate(str(text).split("\n")):
        p = tf.paragraphs[0] if index == 0 else tf.add_paragraph()
        if align:
            p.alignment = ALIGN.get(align, PP_ALIGN.LEFT)
        if line_spacing:
            p.line_spacing = Pt(line_spacing)
        run = p.add_run()
        run.text = line
        run.font.size = Pt(size)
        run.font.bold = bold
        run.font.italic = italic
        if underline:
            run.font.underline = True
        if font:
            run.font.name = font
        if color:
            run.font.color.rgb = _parse_color(color)
    return box


def add_box(slide, x: float, y: float, w: float, h: float, fill: Optional[str] = None,
            line: Optional[str] = None, line_width: float = 1, shape=MSO_SHAPE.RECTANGLE,
            rotation: float = 0, transparency: float = 0, dash=None):
    box = slide.shapes.add_shape(shape, Inches(x), Inches(y), Inches(w), Inches(h))
    if fill:
        box.fill.solid()
        box.fill.fore_color.rgb = _parse_color(fill)
        if transparency:
            _set_alpha(box, transparency)
    else:
        box.fill.background()
    if line:
        box.line.color.rgb = _parse_color(line)
        box.line.width = Pt(line_width)
        if dash is not None:
            box.line.dash_style = dash
    else:
        box.line.fill.background()
    if rotation:
        box.rotation = rotation
    return box


def add_line(slide, x1: float, y1: float, x2: float, y2: float, color: str, width: float = 1, dash=None):
    connector = slide.shapes.add_connector(MSO_CONNECTOR.STRAIGHT, Inches(x1), Inches(y1), Inches(x2), Inches(y2))
    connector.line.color.rgb = _parse_color(color)
    connector.line.width = Pt(width)
    if dash is not None:
        connector.line.dash_style = dash
    return connector


def add_title(slide, title: str, size: float = 32, color: Optional[str] = None, y: float = 0.5):
    return add_text(slide, title, 0.5, y, 9, 0.8, size=size, bold=True, color=color)


def add_note(slide, text: str, y: float = 6.5):
    return add_text(slide, text, 0.5, y, 9, 0.8, size=11, italic=True, color=NOTE_COLOR)


def _check(flag: Any) -> str:
    return "✓" if flag else "✗"


def _set_tooltip(element, tooltip: Optional[str]) -> None:
    if tooltip:
        for link in element.iter(qn("a:hlinkClick")):
            link.set("tooltip", tooltip)


def _move_slide(prs, old_index: int, new_index: int) -> None:
    slide_ids = prs.slides._sldIdLst
    element = list(slide_ids)[old_index]
    slide_ids.remove(element)
    slide_ids.insert(new_index, element)


class PowerPointGenerator:
    """Presentation builder. Stateless: safe to share between concurrent calls."""

    def _load(self, filename: str):
        if os.path.exists(filename):
            return Presentation(filename)
        logger.warning(f"File {filename} not found, creating new presentation")
        return self._new()

    @staticmethod
    def _new(theme: str = "default"):
        prs = Presentation()
        prs.slide_width = WIDE_WIDTH if theme in THEME_BACKGROUNDS else PPTX_WIDTH
        prs.slide_height = PPTX_HEIGHT
        prs.core_properties.author = AUTHOR
        return prs

    @staticmethod
    def _save(prs) -> bytes:
        buffer = io.BytesIO()
        prs.save(buffer)
        return buffer.getvalue()

    @staticmethod
    def _blank_slide(prs):
        layouts = prs.slide_layouts
        layout = next((l for l in layouts if l.name == "Blank"), None)
        if layout is None:
            layout = layouts[min(6, len(layouts) - 1)]
        return prs.slides.add_slide(layout)

    @staticmethod
    def _slide(prs, slide_number: int):
        count = len(prs.slides)
        if not 1 <= slide_number <= count:
            raise SlideNotFoundError(slide_number, count)
        return prs.slides[slide_number - 1]

    # ── slide model ──────────────────────────────────────────────────

    def _add_content(self, prs, slide, content: dict) -> None:
        width_in = prs.slide_width / EMU_PER_INCH
        height_in = prs.slide_height / EMU_PER_INCH
        x = _dim(content.get("x"), width_in, 0.5)
        y = _dim(content.get("y"), height_in, 1.5)
        w = _dim(content.get("w"), width_in, max(width_in - x - 0.5, 1))
        h = _dim(content.get("h"), height_in, 1)
        kind = content.get("type")

        if kind == "text":
            box = add_text(slide, content.get("text", ""), x, y, w, h, size=content.get("fontSize") or 14,
                           bold=bool(content.get("bold")), italic=bool(content.get("italic")),
                           color=content.get("color") or "000000", align=content.get("align") or "left",
                           valign=content.get("valign") or "top", font=content.get("fontFace") or "Arial",
                           underline=bool(content.get("underline")))
            bullet = content.get("bullet")
            if bullet:
                for p in box.text_frame.paragraphs:
                    p_pr = p._p.get_or_add_pPr()
                    p_pr.set("marL", "342900")
                    p_pr.set("indent", "-342900")
                    if isinstance(bullet, dict) and bullet.get("type") == "number":
                        p_pr.append(parse_xml(f'<a:buAutoNum {nsdecls("a")} type="arabicPeriod"/>'))
                    else:
                        code = bullet.get("code") if isinstance(bullet, dict) else None
                        char = chr(int(code, 16)) if code else "•"
                        p_pr.append(parse_xml(f'<a:buChar {nsdecls("a")} char="{char}"/>'))

        elif kind == "image":
            try:
                slide.shapes.add_picture(load_image(content["path"]), Inches(x), Inches(y),
                                         Inches(w) if content.get("w") is not None else None,
                                         Inches(h) if content.get("h") is not None else None)
            except Exception as e:
                logger.error(f"Error adding image {content.get('path')}: {e}")

        elif kind == "shape":
            fill = content.get("fill")
            if isinstance(fill, dict):
                fill = fill.get("color")
            line = content.get("line") or {}
            if content.get("shape") == "line":
                add_line(slide, x, y, x + w, y + h, line.get("color") or "000000", line.get("width") or 1)
            else:
                add_box(slide, x, y, w, h, fill=fill, line=line.get("color"), line_width=line.get("width") or 1,
                        shape=SHAPES.get(content.get("shape"), MSO_SHAPE.RECTANGLE))

        elif kind == "table":
            rows = content.get("rows") or []
            if not rows or not rows[0]:
                logger.warning("Skipping empty table")
                return
            n_rows, n_cols = len(rows), max(len(r) for r in rows)
            row_h = content.get("rowH") or 0.4
            table = slide.shapes.add_table(n_rows, n_cols, Inches(x), Inches(y), Inches(w),
                                           Inches(row_h * n_rows)).table
            for col_idx, col_w in enumerate((content.get("colW") or [])[:n_cols]):
                table.columns[col_idx].width = Inches(col_w)
            for row_idx, row_data in enumerate(rows):
                for col_idx, cell_value in enumerate(row_data):
                    cell = table.cell(row_idx, col_idx)
                    cell.text = str(cell_value)
                    if content.get("fill"):
                        cell.fill.solid()
                        cell.fill.fore_color.rgb = _parse_color(content["fill"])
                    for para in cell.text_frame.paragraphs:
                        for run in para.runs:
                            if content.get("fontSize"):
                                run.font.size = Pt(content["fontSize"])
                            if content.get("color"):
                                run.font.color.rgb = _parse_color(content["color"])

        elif kind == "chart":
            series = content.get("data") or []
            if not series:
                logger.warning("Skipping chart without data")
                return
            chart_type = CHART_TYPES.get(content.get("chartType"), XL_CHART_TYPE.COLUMN_CLUSTERED)
            if chart_type == XL_CHART_TYPE.XY_SCATTER:
                chart_data = XyChartData()
                for s in series:
                    xy = chart_data.add_series(s.get("name", ""))
                    for index, value in enumerate(s.get("values") or []):
                        labels = s.get("labels") or []
                        x_value = labels[index] if index < len(labels) else index + 1
                        xy.add_data_point(_num(x_value, index + 1), value)
            else:
                chart_data = CategoryChartData()
                chart_data.categories = series[0].get("labels") or []
                for s in series:
                    chart_data.add_series(s.get("name", ""), s.get("values") or [])
            chart = slide.shapes.add_chart(chart_type, Inches(x), Inches(y), Inches(w),
                                           Inches(_dim(content.get("h"), height_in, 4)), chart_data).chart
            if content.get("title"):
                chart.has_title = True
                chart.chart_title.text_frame.text = content["title"]
            if len(series) > 1 or chart_type == XL_CHART_TYPE.PIE:
                chart.has_legend = True
                chart.legend.position = XL_LEGEND_POSITION.BOTTOM
                chart.legend.include_in_layout = False

        else:
            logger.warning(f"Skipping unknown content type: {kind}")

    def _build_slide(self, prs, spec: dict, theme: str = "default"):
        slide = self._blank_slide(prs)
        background = spec.get("backgroundColor") or THEME_BACKGROUNDS.get(theme)
        if background:
            slide.background.fill.solid()
            slide.background.fill.fore_color.rgb = _parse_color(background)
        if spec.get("backgroundImage"):
            try:
                picture = slide.shapes.add_picture(load_image(spec["backgroundImage"]), 0, 0,
                                                   prs.slide_width, prs.slide_height)
                # behind everything else on the slide
                tree = slide.shapes._spTree
                tree.remove(picture._element)
                tree.insert(2, picture._element)
            except Exception as e:
                logger.error(f"Error adding background image {spec['backgroundImage']}: {e}")

        width_in = prs.slide_width / EMU_PER_INCH
        title_color = "FFFFFF" if theme == "dark" and not spec.get("backgroundColor") else "363636"
        if spec.get("title"):
            add_text(slide, spec["title"], 0.5, 0.5, width_in * 0.9, 1.0, size=32, bold=True, color=title_color)
        if spec.get("subtitle"):
            add_text(slide, spec["subtitle"], 0.5, 1.7, width_in * 0.9, 0.6, size=18, color=NOTE_COLOR)
        for content in spec.get("content") or []:
            self._add_content(prs, slide, content)
        if spec.get("notes"):
            slide.notes_slide.notes_text_frame.text = spec["notes"]
        return slide

    # ── core operations ──────────────────────────────────────────────

    def create_presentation(self, slides: list[dict], title: Optional[str] = None, theme: str = "default",
                            author: Optional[str] = None, company: Optional[str] = None) -> bytes:
        prs = self._new(theme)
        props = prs.core_properties
        props.author = author or AUTHOR
        props.title = title or "Presentation"
        if company:
            props.category = company
        for spec in slides:
            self._build_slide(prs, spec, theme)
        return self._save(prs)

    def add_transition(self, filename: str, transition: dict, slide_number: Optional[int] = None) -> tuple[bytes, int]:
        """Transition on one slide or on every slide. Returns (bytes, slides changed)."""
        prs = self._load(filename)
        if slide_number:
            targets = [self._slide(prs, slide_number)]
        else:
            targets = list(prs.slides)
            if not targets:
                slide = self._blank_slide(prs)
                add_text(slide, "Slide with Transition", 1, 1, 8, 1, size=32, bold=True)
                targets = [slide]

        kind = transition.get("type", "fade")
        duration = transition.get("duration") or 1000
        speed = "fast" if duration < 500 else "med" if duration < 1000 else "slow"
        effect = TRANSITIONS.get(kind, TRANSITIONS["fade"]).format(dir=DIRECTIONS.get(transition.get("direction"), "l"))

        for slide in targets:
            element = slide._element
            for existing in element.findall(qn("p:transition")):
                element.remove(existing)
            node = parse_xml(f'<p:transition {nsdecls("p")} spd="{speed}">{effect}</p:transition>')
            anchor = element.find(qn("p:clrMapOvr"))
            if anchor is None:
                anchor = element.find(qn("p:cSld"))
            anchor.addnext(node)
        return self._save(prs), len(targets)

    def add_animation(self, filename: str, slide_number: int, animation: dict, object_id: Optional[str] = None) -> bytes:
        prs = self._load(filename)
        slide = self._slide(prs, slide_number)
        lines = [
            f"Animation: {animation.get('type')} - {animation.get('effect')}",
            f"Duration: {animation.get('duration') or 500}ms",
            f"Delay: {animation.get('delay') or 0}ms",
        ]
        if animation.get("direction"):
            lines.append(f"Direction: {animation['direction']}")
        if object_id:
            lines.append(f"Object: {object_id}")
        add_text(slide, "\n".join(lines), 0.5, 6.0, 9, 1.0, size=12, color="0088CC")
        return self._save(prs)

    def add_notes(self, filename: str, slide_number: int, notes: str) -> bytes:
        prs = self._load(filename)
        slide = self._slide(prs, slide_number)
        slide.notes_slide.notes_text_frame.text = notes
        return self._save(prs)

    def duplicate_slide(self, filename: str, slide_number: int, position: Optional[int] = None) -> bytes:
        """Copy shapes, background, relationships and notes; optionally move the copy (1-based position)."""
        prs = self._load(filename)
        source = self._slide(prs, slide_number)
        copy = prs.slides.add_slide(source.slide_layout)
        for shape in list(copy.shapes):
            shape._element.getparent().remove(shape._element)

        mapping = {}
        for r_id, rel in source.part.rels.items():
            if rel.reltype in (RT.SLIDE_LAYOUT, RT.NOTES_SLIDE):
                continue
            if rel.is_external:
                mapping[r_id] = copy.part.relate_to(rel.target_ref, rel.reltype, is_external=True)
            else:
                mapping[r_id] = copy.part.relate_to(rel.target_part, rel.reltype)

        tree = copy.shapes._spTree
        for shape in source.shapes:
            element = deepcopy(shape._element)
            for node in element.iter():
                for attr in (qn("r:embed"), qn("r:link"), qn("r:id")):
                    if node.get(attr) in mapping:
                        node.set(attr, mapping[node.get(attr)])
            tree.insert_element_before(element, "p:extLst")

        background = source._element.cSld.find(qn("p:bg"))
        if background is not None:
            copy._element.cSld.insert(0, deepcopy(background))
        if source.has_notes_slide:
            copy.notes_slide.notes_text_frame.text = source.notes_slide.notes_text_frame.text

        if position:
            _move_slide(prs, len(prs.slides) - 1, max(0, min(position - 1, len(prs.slides) - 1)))
        return self._save(prs)

    def reorder_slides(self, filename: str, slide_order: list[int]) -> bytes:
        prs = self._load(filename)
        slide_ids = prs.slides._sldIdLst
        current = list(slide_ids)
        if sorted(slide_order) != list(range(1, len(current) + 1)):
            raise ValueError(
                f"slideOrder must be a permutation of 1..{len(current)}, got {slide_order}"
            )
        for element in current:
            slide_ids.remove(element)
        for number in slide_order:
            slide_ids.append(current[number - 1])
        return self._save(prs)

    def export_pdf(self, filename: str) -> bytes:
        prs = self._new()
        slide = self._blank_slide(prs)
        add_title(slide, "PDF Export Information", y=1)
        add_text(slide,
                 f"Source: {filename}\n\nPDF export requires:\n- LibreOffice\n- Microsoft PowerPoint\n"
                 "- Online conversion services", 1, 2, 8, 3, size=16)
        return self._save(prs)

    def add_media(self, filename: str, slide_number: int, media_path: str, media_type: str,
                  position: Optional[dict] = None, size: Optional[dict] = None) -> bytes:
        prs = self._load(filename)
        slide = self._slide(prs, slide_number)
        position = position or {}
        size = size or {}
        x, y = _num(position.get("x"), 1), _num(position.get("y"), 2)
        w, h = _num(size.get("width"), 6), _num(size.get("height"), 3.5)

        if media_type == "video":
            mime_type = mimetypes.guess_type(media_path)[0] or "video/mp4"
            slide.shapes.add_movie(media_stream(media_path), Inches(x), Inches(y), Inches(w), Inches(h),
                                   mime_type=mime_type)
        else:
            add_box(slide, x, y, w, 0.8, fill="E8F5E9", line="00AA00")
            add_text(slide, f"🔊 Audio: {media_path}", x + 0.1, y + 0.15, w - 0.2, 0.5, size=16, color="00AA00")
            add_text(slide, "Audio placeholder - insert the audio file in PowerPoint to play it in the show.",
                     x, y + 0.9, w, 0.4, size=10, italic=True, color=NOTE_COLOR)
        return self._save(prs)

    def add_slide(self, filename: str, slide: dict, position: Optional[int] = None) -> tuple[bytes, int]:
        """Returns (bytes, 1-based slide number of the new slide)."""
        prs = self._load(filename)
        self._build_slide(prs, slide)
        number = len(prs.slides)
        if position:
            number = max(1, min(position, len(prs.slides)))
            _move_slide(prs, len(prs.slides) - 1, number - 1)
        return self._save(prs), number

    def define_master(self, filename: str, master_slide: dict) -> bytes:
        prs = self._load(filename)
        background = master_slide.get("background") or {}
        if background.get("color"):
            fill = prs.slide_master.background.fill
            fill.solid()
            fill.fore_color.rgb = _parse_color(background["color"])

        slide = self._blank_slide(prs)
        add_title(slide, f"Master Slide: {master_slide['name']}", y=1)
        fonts = master_slide.get("fonts") or {}
        info = [
            f"Background: {background.get('color') or background.get('image') or 'Default'}",
            f"Placeholders: {len(master_slide.get('placeholders') or [])}",
            f"Title Font: {fonts.get('title') or 'Default'}",
            f"Body Font: {fonts.get('body') or 'Default'}",
            f"Accent Colors: {len(master_slide.get('colors') or {})}",
        ]
        add_text(slide, "\n".join(info), 1, 2.5, 8, 2.5, size=16, color=NOTE_COLOR)
        return self._save(prs)

    def add_hyperlinks(self, filename: str, slide_number: int, links: list[dict]) -> tuple[bytes, int]:
        """Hyperlinked text on a slide: url links or slide jumps. Returns (bytes, links added)."""
        prs = self._load(filename)
        slide = self._slide(prs, slide_number)
        y = 1.5
        added = 0
        for link in links:
            box = add_text(slide, link["text"], 1, y, 8, 0.5, size=18, color="0066CC", underline=True)
            run = box.text_frame.paragraphs[0].runs[0]
            if link.get("url"):
                run.hyperlink.address = link["url"]
            elif link.get("slide"):
                target = self._slide(prs, link["slide"])
                r_id = slide.part.relate_to(target.part, RT.SLIDE)
                run._r.get_or_add_rPr().append(parse_xml(
                    f'<a:hlinkClick {nsdecls("a", "r")} r:id="{r_id}" action="ppaction://hlinksldjump"/>'
                ))
            else:
                logger.warning(f"Link {link['text']!r} has neither url nor slide")
                y += 0.5
                continue
            _set_tooltip(run._r, link.get("tooltip"))
            added += 1
            y += 0.5
        return self._save(prs), added

    def add_sections(self, filename: str, sections: list[dict]) -> bytes:
        """Section header slides plus the p14 section list PowerPoint shows in its slide pane."""
        prs = self._load(filename)
        slide_ids = prs.slides._sldIdLst
        original = list(slide_ids)
        ordered = sorted(sections, key=lambda s: s.get("startSlide") or 1)

        groups = []
        leading = original[:max((ordered[0].get("startSlide") or 1) - 1, 0)] if ordered else []
        if leading:
            groups.append(("Default Section", leading))

        for index, section in enumerate(ordered):
            start = max(section.get("startSlide") or 1, 1)
            end = (ordered[index + 1].get("startSlide") or 1) if index + 1 < len(ordered) else len(original) + 1
            members = original[start - 1:max(end - 1, start - 1)]

            header = self._blank_slide(prs)
            add_text(header, section["name"], 1, 2.5, 8, 1.2, size=44, bold=True, align="center", color="0088CC")
            add_text(header, f"Section starts at slide {start}", 1, 4, 8, 0.6, size=18, italic=True,
                     align="center", color=NOTE_COLOR)
            header_id = list(slide_ids)[-1]
            if members:
                members[0].addprevious(header_id)
            groups.append((section["name"], [header_id] + members))

        entries = "".join(
            f'<p14:section name={quoteattr(name)} id="{{{str(uuid.uuid4()).upper()}}}"><p14:sldIdLst>'
            + "".join(f'<p14:sldId id="{el.get("id")}"/>' for el in members)
            + "</p14:sldIdLst></p14:section>"
            for name, members in groups
        )
        presentation = prs.part._element
        ext_list = presentation.find(qn("p:extLst"))
        if ext_list is None:
            ext_list = parse_xml(f'<p:extLst {nsdecls("p")}/>')
            presentation.append(ext_list)
        for ext in ext_list.findall(qn("p:ext")):
            if ext.get("uri") == SECTIONS_EXT_URI:
                ext_list.remove(ext)
        ext_list.append(parse_xml(
            f'<p:ext {nsdecls("p")} uri="{SECTIONS_EXT_URI}"><p14:sectionLst xmlns:p14="{P14_NS}">'
            f'{entries}</p14:sectionLst></p:ext>'
        ))
        return self._save(prs)

    def add_morph_transition(self, filename: str, from_slide: int, to_slide: int,
                             duration: Optional[int] = None) -> bytes:
        prs = self._load(filename)
        first = self._blank_slide(prs)
        add_title(first, "Morph Transition - Slide 1", y=1)
        add_box(first, 2, 3, 2, 1.5, fill="0088CC")
        second = self._blank_slide(prs)
        add_title(second, "Morph Transition - Slide 2", y=1)
        add_box(second, 5, 3, 2, 1.5, fill="CC0088")
        add_text(second,
                 f"Note: Morph transition from slide {from_slide} to {to_slide}\n"
                 f"Duration: {duration or 1000}ms\n\nRequires PowerPoint 2016+ to apply actual morph effect.",
                 1, 5, 8, 1.5, size=14, italic=True, color=NOTE_COLOR)
        return self._save(prs)

    def add_action_buttons(self, filename: str, slide_number: int, buttons: list[dict]) -> bytes:
        """Buttons with real click actions (show jumps or a jump to a given slide)."""
        prs = self._load(filename)
        slide = self._slide(prs, slide_number)
        for button in buttons:
            x, y = _num(button.get("x"), 1), _num(button.get("y"), 5)
            w, h = _num(button.get("w"), 2), _num(button.get("h"), 0.75)
            shape = add_box(slide, x, y, w, h, fill="0088CC", line="003366", line_width=2)
            tf = shape.text_frame
            tf.vertical_anchor = MSO_ANCHOR.MIDDLE
            tf.paragraphs[0].alignment = PP_ALIGN.CENTER
            run = tf.paragraphs[0].add_run()
            run.text = button["text"]
            run.font.size = Pt(16)
            run.font.bold = True
            run.font.color.rgb = RGBColor(0xFF, 0xFF, 0xFF)

            action = button.get("action")
            if action == "customSlide":
                shape.click_action.target_slide = self._slide(prs, button.get("targetSlide") or 1)
                caption = f"Go to slide {button.get('targetSlide')}"
            else:
                jump = SHOW_JUMPS.get(action, "nextslide")
                c_nv_pr = shape._element.xpath("./p:nvSpPr/p:cNvPr")[0]
                c_nv_pr.append(parse_xml(
                    f'<a:hlinkClick {nsdecls("a", "r")} r:id="" action="ppaction://hlinkshowjump?jump={jump}"/>'
                ))
                caption = "".join(f" {c}" if c.isupper() else c for c in action or "nextSlide").strip().capitalize()
            add_text(slide, caption, x, y + h + 0.1, w, 0.3, size=10, italic=True, color=NOTE_COLOR, align="center")
        return self._save(prs)

    # ── visual placeholders ──────────────────────────────────────────

    def add_smartart(self, filename: str, smart_art: dict) -> bytes:
        """Shapes laid out per SmartArt type on a new slide."""
        prs = self._load(filename)
        slide = self._blank_slide(prs)
        kind = smart_art["type"]
        add_text(slide, f"SmartArt: {kind} - {smart_art.get('layout', '')}", 0.5, 0.3, 9, 0.6,
                 size=20, bold=True, color="0088CC")

        position = smart_art.get("position") or {}
        size = smart_art.get("size") or {}
        x, y = _num(position.get("x"), 1), _num(position.get("y"), 1.5)
        width, height = _num(size.get("width"), 8), _num(size.get("height"), 4)
        items = smart_art.get("items") or []
        colors = SMARTART_COLORS.get(smart_art.get("colorScheme") or "colorful", SMARTART_COLORS["colorful"])
        count = len(items)

        def tile(text, tx, ty, tw, th, color, font_size=14, shape=MSO_SHAPE.RECTANGLE):
            box = add_box(slide, tx, ty, tw, th, fill=color, line="333333", shape=shape)
            tf = box.text_frame
            tf.word_wrap = True
            tf.vertical_anchor = MSO_ANCHOR.MIDDLE
            p = tf.paragraphs[0]
            p.alignment = PP_ALIGN.CENTER
            run = p.add_run()
            run.text = text
            run.font.size = Pt(font_size)
            run.font.bold = True
            run.font.color.rgb = RGBColor(0xFF, 0xFF, 0xFF)

        if count and kind in ("list", "process"):
            item_w = width / count - 0.2
            for index, item in enumerate(items):
                item_x = x + index * (width / count)
                tile(item["text"], item_x, y, item_w, height * 0.6, colors[index % len(colors)])
                if kind == "process" and index < count - 1:
                    add_box(slide, item_x + item_w + 0.02, y + height * 0.25, 0.16, 0.2,
                            fill="666666", shape=MSO_SHAPE.RIGHT_ARROW)

        elif count and kind == "hierarchy":
            top = next((item for item in items if (item.get("level") or 0) == 0), None)
            children = [item for item in items if item.get("level") == 1]
            if top:
                tile(top["text"], x + width / 2 - 1, y, 2, 1, colors[0])
            for index, item in enumerate(children):
                child_w = width / len(children)
                child_x = x + index * child_w
                tile(item["text"], child_x, y + 2, child_w - 0.3, 0.8, colors[(index + 1) % len(colors)], 12)
                if top:
                    add_line(slide, x + width / 2, y + 1, child_x + (child_w - 0.3) / 2, y + 2, "333333")

        elif count and kind == "cycle":
            radius = min(width, height) / 2 - 0.6
            cx, cy = x + width / 2, y + height / 2
            for index, item in enumerate(items):
                angle = 2 * math.pi * index / count - math.pi / 2
                tile(item["text"], cx + radius * math.cos(angle) - 0.75, cy + radius * math.sin(angle) - 0.5,
                     1.5, 1, colors[index % len(colors)], 12, MSO_SHAPE.OVAL)

        elif count:
            rows = math.ceil(math.sqrt(count))
            cols = math.ceil(count / rows)
            for index, item in enumerate(items):
                row, col = divmod(index, cols)
                tile(item["text"], x + col * (width / cols), y + row * (height / rows),
                     width / cols - 0.2, height / rows - 0.2, colors[index % len(colors)], 12)

        add_note(slide, "Note: SmartArt placeholder created. Open in PowerPoint to convert to native SmartArt.\n"
                        f"Style: {smart_art.get('style') or 'flat'} | "
                        f"Color Scheme: {smart_art.get('colorScheme') or 'colorful'}")
        return self._save(prs)

    def insert_icons(self, filename: str, slide_number: int, icons: list[dict]) -> bytes:
        prs = self._load(filename)
        slide = self._slide(prs, slide_number)
        for icon in icons:
            position = icon.get("position") or {}
            size = icon.get("size") or {}
            x, y = _num(position.get("x"), 1), _num(position.get("y"), 1)
            w, h = _num(size.get("width"), 1), _num(size.get("height"), 1)
            color = icon.get("color") or "0078D4"
            add_box(slide, x, y, w, h, fill=color, line=color, line_width=2, shape=MSO_SHAPE.ROUNDED_RECTANGLE,
                    rotation=icon.get("rotation") or 0, transparency=20)
            add_text(slide, icon["name"], x, y + h + 0.1, w, 0.3, size=10, color="333333", align="center")
            if icon.get("category"):
                badge = add_box(slide, x + w - 0.6, y - 0.2, 0.6, 0.2, fill="666666")
                run = badge.text_frame.paragraphs[0].add_run()
                run.text = icon["category"]
                run.font.size = Pt(8)
                run.font.color.rgb = RGBColor(0xFF, 0xFF, 0xFF)
        add_note(slide, "Note: Icon placeholders created. Open in PowerPoint and use Insert > Icons "
                        "to replace with actual Microsoft icons.")
        return self._save(prs)

    def insert_3d_models(self, filename: str, slide_number: int, models: list[dict]) -> bytes:
        prs = self._load(filename)
        slide = self._slide(prs, slide_number)
        for model in models:
            position = model.get("position") or {}
            size = model.get("size") or {}
            x, y = _num(position.get("x"), 1), _num(position.get("y"), 1)
            w, h = _num(size.get("width"), 3), _num(size.get("height"), 3)
            add_box(slide, x, y, w, h, fill="E8E8E8", line="7719AA", line_width=2)
            add_text(slide, "🗿", x + w / 2 - 0.4, y + h / 2 - 0.5, 0.8, 0.8, size=48)

            rotation = model.get("rotation")
            animation = model.get("animation")
            info = [f"Model: {os.path.basename(model['path']) or 'model'}"]
            if rotation:
                info.append(f"Rotation: X:{rotation.get('x', 0)}° Y:{rotation.get('y', 0)}° Z:{rotation.get('z', 0)}°")
            if animation:
                info.append(f"Animation: {animation.get('type')} ({animation.get('duration') or 0}s)")
            if model.get("altText"):
                info.append(model["altText"])
            add_text(slide, "\n".join(info), x, y + h + 0.2, w, 0.8, size=10, color="333333", align="center")
        add_note(slide, "Note: 3D model placeholders created. Open in PowerPoint and use Insert > 3D Models "
                        "to add actual .glb/.fbx files.")
        return self._save(prs)

    def add_zoom(self, filename: str, zooms: list[dict], slide_number: Optional[int] = None) -> bytes:
        """Zoom tiles; slide and summary tiles jump to their target slide when clicked."""
        prs = self._load(filename)
        if slide_number:
            slide = self._slide(prs, slide_number)
        else:
            slide = self._blank_slide(prs)
            add_text(slide, "Zoom Links", 0.5, 0.3, 9, 0.6, size=24, bold=True, color="D83B01")

        for index, zoom in enumerate(zooms):
            position = zoom.get("position") or {}
            size = zoom.get("size") or {}
            x, y = _num(position.get("x"), 0.5 + (index % 3) * 3), _num(position.get("y"), 1.5 + (index // 3) * 2.5)
            w, h = _num(size.get("width"), 2.5), _num(size.get("height"), 2)

            kind = zoom.get("type", "slide")
            if kind == "summary":
                targets = zoom.get("targetSlides") or []
                target_info = f"Slides: {', '.join(str(t) for t in targets) or 'All'}"
                target = targets[0] if targets else None
            elif kind == "section":
                target_info = f"Section: {zoom.get('targetSection') or '?'}"
                target = None
            else:
                target = zoom.get("targetSlide")
                target_info = f"Slide: {target or '?'}"

            tile = add_box(slide, x, y, w, h, fill="F3F2F1" if zoom.get("useBackground") else "FFFFFF",
                           line="D83B01", line_width=3)
            if target and 1 <= target <= len(prs.slides):
                tile.click_action.target_slide = prs.slides[target - 1]
            add_text(slide, "🔍", x + w - 0.5, y + 0.1, 0.45, 0.45, size=24)
            add_text(slide, f"{kind.upper()} ZOOM\n{target_info}", x, y + 0.3, w, h - 0.6, size=14, bold=True,
                     color="333333", align="center", valign="middle")
            if zoom.get("showReturnToZoom"):
                add_text(slide, "↩️", x + 0.1, y + h - 0.4, 0.4, 0.35, size=16)

        add_note(slide, "Note: Zoom link placeholders created. Open in PowerPoint and use Insert > Zoom "
                        "to create interactive zoom links.")
        return self._save(prs)

    def configure_recording(self, filename: str, recording: dict) -> bytes:
        prs = self._load(filename)
        slide = self._blank_slide(prs)
        add_title(slide, "Recording Configuration", size=28, color="C43E1C")
        slides = recording.get("slides") or []
        settings = [
            f"Recording Type: {str(recording.get('type', 'narration')).upper()}",
            f"Quality: {recording.get('quality') or 'HD'}",
            f"Slides to Record: {', '.join(str(s) for s in slides) if slides else 'All slides'}",
            "",
            "Features:",
            f"{_check(recording.get('includeNarration'))} Include Narration",
            f"{_check(recording.get('includeTimings'))} Save Slide Timings",
            f"{_check(recording.get('includeInkAnnotations'))} Include Ink Annotations",
            "",
            f"Screen Area: {recording.get('screenArea') or 'fullScreen'}",
        ]
        area = recording.get("customArea")
        if area:
            settings.append(f"Custom Area: {area.get('width')}x{area.get('height')} at ({area.get('x')}, {area.get('y')})")
        add_text(slide, "\n".join(settings), 1, 1.8, 7, 4.5, size=16, color="333333", line_spacing=20)
        add_box(slide, 8.5, 0.4, 0.8, 0.8, fill="FF0000", line="8B0000", line_width=2, shape=MSO_SHAPE.OVAL)
        add_text(slide, "REC", 8.4, 1.3, 1, 0.4, size=14, bold=True, color="FF0000")
        add_note(slide, "Note: Recording configuration saved. In PowerPoint, go to Slide Show > "
                        "Record Slide Show to start recording.")
        return self._save(prs)

    def embed_live_web(self, filename: str, slide_number: int, web_pages: list[dict]) -> bytes:
        """Browser-style frames whose URL bar and content area link to the page."""
        prs = self._load(filename)
        slide = self._slide(prs, slide_number)
        for page in web_pages:
            position = page.get("position") or {}
            size = page.get("size") or {}
            x, y = _num(position.get("x"), 1), _num(position.get("y"), 1.5)
            w, h = _num(size.get("width"), 8), _num(size.get("height"), 4)

            add_box(slide, x, y - 0.3, w, 0.3, fill="E1E1E1", line="999999")
            for index, dot in enumerate(("FF5F56", "FFBD2E", "27C93F")):
                add_box(slide, x + 0.1 + index * 0.15, y - 0.23, 0.1, 0.1, fill=dot, shape=MSO_SHAPE.OVAL)
            add_box(slide, x + 0.6, y - 0.25, w - 0.7, 0.2, fill="FFFFFF", line="CCCCCC")
            url_box = add_text(slide, page["url"], x + 0.65, y - 0.27, w - 0.8, 0.2, size=8, color=NOTE_COLOR)
            url_box.text_frame.paragraphs[0].runs[0].hyperlink.address = page["url"]

            content = add_box(slide, x, y, w, h, fill="FFFFFF", line="999999", line_width=2)
            content.click_action.hyperlink.address = page["url"]
            add_text(slide, "🌐", x + w / 2 - 0.5, y + h / 2 - 0.9, 1, 1, size=64)
            add_text(slide, "LIVE WEB CONTENT", x + w / 2 - 1.5, y + h / 2 + 0.5, 3, 0.4, size=16, bold=True,
                     color="0078D4", align="center")
            settings = [
                f"Refresh: {page['refreshInterval']}s" if page.get("refreshInterval") else "No auto-refresh",
                "Interactive" if page.get("allowInteraction") else "View only",
            ]
            add_text(slide, " | ".join(settings), x, y + h + 0.1, w, 0.3, size=10, color=NOTE_COLOR, align="center")
        add_note(slide, "Note: Live web page placeholders created. Click a frame during the show to open the page.")
        return self._save(prs)

    def apply_designer(self, filename: str, preferences: Optional[dict] = None,
                       slide_number: Optional[int] = None) -> bytes:
        prs = self._load(filename)
        slide = self._blank_slide(prs)
        add_title(slide, "PowerPoint Designer", size=28, color="B4009E")
        preferences = preferences or {}
        palette = preferences.get("colorPalette") or []
        settings = [
            "Design Preferences:",
            "",
            f"Style: {preferences.get('style') or 'auto'}",
            f"Layout: {preferences.get('layout') or 'auto'}",
            f"Color Palette: {len(palette)} colors" if palette else "Color Palette: Auto",
            "",
            f"Target Slide: {slide_number or 'All slides'}",
        ]
        add_text(slide, "\n".join(settings), 1, 1.8, 5, 4, size=18, color="333333", line_spacing=24)
        if palette:
            add_text(slide, "Color Palette:", 6.5, 1.8, 3, 0.4, size=16, bold=True, color="333333")
            for index, color in enumerate(palette[:6]):
                add_box(slide, 6.5 + (index % 3) * 0.8, 2.3 + (index // 3) * 0.8, 0.7, 0.7, fill=color, line="333333")
        add_note(slide, "Note: Designer preferences saved. Open this presentation in PowerPoint (Microsoft 365) "
                        "and the Designer pane will suggest design ideas.", y=6)
        return self._save(prs)

    def add_collaboration_comments(self, filename: str, comments: list[dict]) -> bytes:
        prs = self._load(filename)
        slide = self._blank_slide(prs)
        add_text(slide, "Collaboration Comments", 0.5, 0.3, 9, 0.6, size=24, bold=True, color="7719AA")
        add_text(slide, f"Total Comments: {len(comments)}", 0.5, 0.9, 9, 0.4, size=16, color=NOTE_COLOR)

        y = 1.5
        for comment in comments[:8]:
            resolved = " [RESOLVED]" if comment.get("resolved") else ""
            text = f"Slide {comment.get('slideNumber')} - {comment.get('author') or 'Anonymous'}{resolved}: {comment['text']}"
            add_box(slide, 0.5, y, 9, 0.6, fill="E8E8E8" if comment.get("resolved") else "FFF4CE", line="7719AA")
            add_text(slide, text, 0.6, y + 0.05, 7.8, 0.5, size=11, color="333333")
            if comment.get("replies"):
                add_text(slide, f"💬 {len(comment['replies'])}", 8.4, y + 0.05, 0.6, 0.4, size=10)
            if comment.get("mentions"):
                add_text(slide, f"@{len(comment['mentions'])}", 9.0, y + 0.05, 0.5, 0.4, size=10, bold=True,
                         color="7719AA")
            y += 0.7
        if len(comments) > 8:
            add_text(slide, f"... and {len(comments) - 8} more comments", 0.5, y, 9, 0.4, size=12, italic=True,
                     color="999999")
        add_note(slide, "Note: Comment metadata saved. Open in PowerPoint and use Review > Comments "
                        "to view and manage threaded comments.")
        return self._save(prs)

    def configure_presenter_coach(self, filename: str, settings: dict) -> bytes:
        prs = self._load(filename)
        slide = self._blank_slide(prs)
        add_title(slide, "Presenter Coach Settings", size=28, color="107C10")
        pace = f" ({settings['targetPace']} WPM)" if settings.get("targetPace") else ""
        features = [
            "Enabled Features:",
            "",
            f"{_check(settings.get('enableFeedback') is not False)} Real-time Feedback",
            f"{_check(settings.get('checkPacing'))} Pacing Analysis{pace}",
            f"{_check(settings.get('checkFillerWords'))} Filler Word Detection (um, uh, like)",
            f"{_check(settings.get('checkProfanity'))} Profanity Check",
            f"{_check(settings.get('checkCulturalSensitivity'))} Cultural Sensitivity",
            f"{_check(settings.get('checkOriginalPhrases'))} Original Phrasing (avoid clichés)",
            f"{_check(settings.get('checkReadingFromSlide'))} Detect Reading Verbatim",
        ]
        add_text(slide, "\n".join(features), 1, 1.8, 8, 4.5, size=16, color="333333", line_spacing=22)
        add_text(slide, "🎤", 8.5, 0.4, 1, 1, size=48)
        add_note(slide, "Note: Presenter Coach settings configured. In PowerPoint (Microsoft 365), "
                        "go to Slide Show > Rehearse with Coach.")
        return self._save(prs)

    def configure_subtitles(self, filename: str, subtitles: dict) -> bytes:
        prs = self._load(filename)
        slide = self._blank_slide(prs)
        add_title(slide, "Live Subtitles Configuration", size=28, color="0078D4")
        if not subtitles.get("enable"):
            add_text(slide, "Subtitles: DISABLED", 1, 2, 8, 0.6, size=24, bold=True, color="CC0000")
        else:
            translations = subtitles.get("translationLanguages") or []
            settings = [
                "Subtitle Settings:",
                "",
                f"Display Language: {subtitles.get('language') or 'Auto-detect'}",
                f"Spoken Language: {subtitles.get('spokenLanguage') or 'Same as display'}",
                f"Position: {subtitles.get('position') or 'bottom'}",
                f"Font Size: {subtitles.get('fontSize') or 'medium'}",
                f"Background: {subtitles.get('backgroundColor') or 'Semi-transparent black'}",
                f"Text Color: {subtitles.get('textColor') or 'White'}",
            ]
            if subtitles.get("showTimestamps"):
                settings.append("✓ Show Timestamps")
            if translations:
                settings.append(f"Translation Languages: {', '.join(translations)}")
            add_text(slide, "\n".join(settings), 1, 1.8, 8, 3.5, size=16, color="333333", line_spacing=22)

            preview_y = 1.5 if subtitles.get("position") == "top" else 5.5
            add_box(slide, 1, preview_y, 8, 0.6, fill=subtitles.get("backgroundColor") or "000000", transparency=30)
            font_size = {"small": 12, "large": 18}.get(subtitles.get("fontSize"), 14)
            add_text(slide, "[Live subtitles will appear here during presentation]", 1, preview_y, 8, 0.6,
                     size=font_size, color=subtitles.get("textColor") or "FFFFFF", align="center", valign="middle")
        add_note(slide, "Note: Subtitle configuration saved. In PowerPoint during Slide Show, use "
                        "Slide Show > Always Use Subtitles. Requires Microsoft 365 and microphone access.")
        return self._save(prs)

    def add_ink_annotations(self, filename: str, slide_number: int, annotations: list[dict]) -> tuple[bytes, int]:
        """Pen and highlighter strokes as freeform paths. Returns (bytes, strokes drawn)."""
        prs = self._load(filename)
        slide = self._slide(prs, slide_number)
        drawn = 0
        for annotation in annotations:
            kind = annotation.get("type", "pen")
            points = annotation.get("points") or []
            if kind == "eraser" or len(points) < 2:
                continue
            color = annotation.get("color") or ("FFFF00" if kind == "highlighter" else "000000")
            # local units of 1/1000 inch, the builder rounds to integers
            builder = slide.shapes.build_freeform(points[0]["x"] * 1000, points[0]["y"] * 1000, scale=EMU_PER_INCH / 1000)
            builder.add_line_segments([(p["x"] * 1000, p["y"] * 1000) for p in points[1:]], close=False)
            stroke = builder.convert_to_shape()
            stroke.fill.background()
            stroke.line.color.rgb = _parse_color(color)
            stroke.line.width = Pt(annotation.get("thickness") or 2)
            if kind == "highlighter":
                line_fill = stroke._element.spPr.find(qn("a:ln")).find(qn("a:solidFill"))
                if line_fill is not None and len(line_fill):
                    line_fill[0].append(parse_xml(f'<a:alpha {nsdecls("a")} val="50000"/>'))
            drawn += 1

        counts: dict[str, int] = {}
        for annotation in annotations:
            counts[annotation.get("type", "pen")] = counts.get(annotation.get("type", "pen"), 0) + 1
        legend = "Annotations: " + ", ".join(f"{kind}: {n}" for kind, n in counts.items())
        add_text(slide, legend, 0.5, 6.9, 9, 0.4, size=11, color=NOTE_COLOR)
        return self._save(prs), drawn

    def configure_grid_guides(self, filename: str, grid: Optional[dict] = None, guides: Optional[dict] = None,
                              smart_guides: Optional[bool] = None, slide_number: Optional[int] = None) -> bytes:
        prs = self._load(filename)
        slide = self._blank_slide(prs)
        add_text(slide, "Grid & Guides Configuration", 0.5, 0.3, 9, 0.6, size=24, bold=True, color="0078D4")

        settings = []
        if grid:
            settings.append("Grid Settings:")
            settings.append(f"  Display: {'ON' if grid.get('show') else 'OFF'}")
            if grid.get("snapToGrid"):
                settings.append("  Snap to Grid: ENABLED")
            if grid.get("spacing"):
                settings.append(f'  Spacing: {grid["spacing"]}" intervals')
            settings.append("")
        if guides:
            settings.append("Guides:")
            for axis in ("vertical", "horizontal"):
                values = guides.get(axis) or []
                if values:
                    settings.append(f'  {axis.capitalize()} Guides: {len(values)} ({", ".join(f"{v}" for v in values)}")')
            settings.append(f"  Display: {'ON' if guides.get('showGuides') is not False else 'OFF'}")
            if guides.get("snapToGuides"):
                settings.append("  Snap to Guides: ENABLED")
            settings.append("")
        if smart_guides is not None:
            settings.append(f"Smart Guides: {'ENABLED' if smart_guides else 'DISABLED'}")
        settings.append(f"Applied to: {f'Slide {slide_number}' if slide_number else 'Master Slide'}")
        add_text(slide, "\n".join(settings), 1, 1.2, 8, 3.2, size=13, color="333333")

        if grid and grid.get("show"):
            spacing = max(_num(grid.get("spacing"), 0.5), 0.1)
            x = 1.0
            while x <= 9:
                add_line(slide, x, 4.5, x, 6.5, "CCCCCC", 0.5, MSO_LINE_DASH_STYLE.ROUND_DOT)
                x += spacing
            y = 4.5
            while y <= 6.5:
                add_line(slide, 1, y, 9, y, "CCCCCC", 0.5, MSO_LINE_DASH_STYLE.ROUND_DOT)
                y += spacing
        for pos in (guides or {}).get("vertical") or []:
            if 1 <= pos <= 9:
                add_line(slide, pos, 4.5, pos, 6.5, "FF6600")
        for pos in (guides or {}).get("horizontal") or []:
            if 4.5 <= pos <= 6.5:
                add_line(slide, 1, pos, 9, pos, "FF6600")

        add_note(slide, "Note: Grid and guide settings saved. In PowerPoint, go to View > Show > Grid/Guides "
                        "to toggle display.", y=6.8)
        return self._save(prs)

    def create_custom_show(self, filename: str, shows: list[dict]) -> bytes:
        """Real custom shows (p:custShowLst) plus a description slide."""
        prs = self._load(filename)
        presentation = prs.part._element
        slide_ids = list(prs.slides._sldIdLst)

        cust_show_list = presentation.find(qn("p:custShowLst"))
        if cust_show_list is None:
            cust_show_list = parse_xml(f'<p:custShowLst {nsdecls("p")}/>')
            anchor = None
            for tag in ("p:notesSz", "p:smartTags", "p:embeddedFontLst"):
                found = presentation.find(qn(tag))
                if found is not None:
                    anchor = found
            if anchor is not None:
                anchor.addnext(cust_show_list)
            else:
                presentation.append(cust_show_list)

        names = {show["name"] for show in shows}
        for existing in list(cust_show_list):
            if existing.get("name") in names:
                cust_show_list.remove(existing)
        next_id = max((int(el.get("id", 0)) for el in cust_show_list), default=-1) + 1

        for show in shows:
            members = "".join(
                f'<p:sld r:id="{slide_ids[n - 1].rId}"/>' for n in show.get("slides") or []
                if 1 <= n <= len(slide_ids)
            )
            cust_show_list.append(parse_xml(
                f'<p:custShow {nsdecls("p", "r")} name={quoteattr(show["name"])} id="{next_id}">'
                f'<p:sldLst>{members}</p:sldLst></p:custShow>'
            ))
            next_id += 1

        slide = self._blank_slide(prs)
        add_text(slide, "Custom Slide Shows", 0.5, 0.3, 9, 0.6, size=24, bold=True, color="7719AA")
        add_text(slide, f"{len(shows)} Custom Show(s) Defined", 0.5, 0.9, 9, 0.4, size=16, color=NOTE_COLOR)
        y = 1.5
        for show in shows:
            if y > 6:
                break
            slides = show.get("slides") or []
            add_box(slide, 0.5, y, 9, 0.5, fill="7719AA")
            add_text(slide, show["name"], 0.6, y + 0.05, 7, 0.4, size=16, bold=True, color="FFFFFF")
            add_text(slide, f"{len(slides)} slides", 8.3, y + 0.05, 1.2, 0.4, size=12, color="FFFFFF")
            y += 0.6
            details = [f"Slides: {', '.join(str(s) for s in slides)}"]
            if show.get("description"):
                details.append(f"Description: {show['description']}")
            add_text(slide, "\n".join(details), 1, y, 8, 0.6, size=12, color="333333")
            y += 0.3 + (0.4 if show.get("description") else 0)
        add_note(slide, "Note: Custom shows are listed under Slide Show > Custom Slide Show in PowerPoint.")
        return self._save(prs)

    def manage_animation_pane(self, filename: str, slide_number: int, animations: list[dict]) -> bytes:
        prs = self._load(filename)
        self._slide(prs, slide_number)
        slide = self._blank_slide(prs)
        add_text(slide, f"Slide {slide_number} - Animation Sequence", 0.5, 0.3, 9, 0.6, size=22, bold=True,
                 color="C43E1C")
        add_text(slide, "Animation Pane:", 0.5, 1, 9, 0.4, size=16, bold=True, color="333333")

        ordered = sorted(animations, key=lambda a: a.get("order") or 0)
        y = 1.5
        for index, anim in enumerate(ordered[:10]):
            order = anim.get("order") or index + 1
            trigger = anim.get("trigger") or "onClick"
            delay = anim.get("delay") or 0
            effect = anim.get("effect", "")
            if anim.get("objectId"):
                effect += f" ({anim['objectId']})"
            timing = f"Trigger: {trigger} | Duration: {anim.get('duration') or 0.5}s"
            if delay:
                timing += f" | Delay: {delay}s"
            details = [effect, timing]
            if anim.get("repeat"):
                details.append(f"Repeat: {anim['repeat']}")
            if anim.get("rewind"):
                details.append("Rewind when done")

            badge = add_box(slide, 0.5, y, 0.4, 0.4, fill="C43E1C")
            badge.text_frame.paragraphs[0].alignment = PP_ALIGN.CENTER
            run = badge.text_frame.paragraphs[0].add_run()
            run.text = str(order)
            run.font.size = Pt(14)
            run.font.bold = True
            run.font.color.rgb = RGBColor(0xFF, 0xFF, 0xFF)
            add_text(slide, " | ".join(details), 1, y, 8.3, 0.4, size=10, color="333333", valign="middle")
            add_text(slide, TRIGGER_ICONS.get(trigger, "▶️"), 9.3, y, 0.5, 0.4, size=12)
            y += 0.5
        if len(ordered) > 10:
            add_text(slide, f"... and {len(ordered) - 10} more animations", 0.5, y, 9, 0.4, size=11, italic=True,
                     color="999999")
        add_note(slide, "Note: Animation sequence saved. In PowerPoint, go to Animations > Animation Pane "
                        "to view and manage timing, order and triggers.")
        return self._save(prs)

    def customize_master(self, filename: str, master: dict) -> bytes:
        prs = self._load(filename)
        name = master.get("name") or "Custom Master"
        background = master.get("background") or {}
        if background.get("type") == "solid" and background.get("color"):
            fill = prs.slide_master.background.fill
            fill.solid()
            fill.fore_color.rgb = _parse_color(background["color"])

        slide = self._blank_slide(prs)
        add_text(slide, f"Slide Master: {name}", 0.5, 0.3, 9, 0.7, size=28, bold=True, color="0078D4")
        theme = master.get("theme") or {}
        y = 1.2
        fonts = theme.get("fonts") or {}
        if fonts:
            add_text(slide, "Fonts:", 0.5, y, 1, 0.4, size=14, bold=True, color="333333")
            info = [f"Heading: {fonts['heading']}" if fonts.get("heading") else "",
                    f"Body: {fonts['body']}" if fonts.get("body") else ""]
            add_text(slide, " | ".join(i for i in info if i), 1.5, y, 7, 0.4, size=12, color=NOTE_COLOR)
            y += 0.4
        colors = theme.get("colors") or {}
        if colors:
            add_text(slide, "Color Theme:", 0.5, y, 3, 0.4, size=14, bold=True, color="333333")
            y += 0.4
            for index, key in enumerate(ACCENTS):
                if colors.get(key):
                    add_box(slide, 1.5 + index * 1.2, y, 1, 0.5, fill=colors[key], line="333333")
                    add_text(slide, key, 1.5 + index * 1.2, y + 0.6, 1, 0.3, size=8, color=NOTE_COLOR, align="center")
            y += 1.2
        effects = theme.get("effects")
        if effects:
            # a named effect style, or {effect: enabled}
            enabled = ", ".join(k for k, on in effects.items() if on) if isinstance(effects, dict) else str(effects)
            add_text(slide, "Effects Enabled:", 0.5, y, 2, 0.4, size=14, bold=True, color="333333")
            add_text(slide, enabled or "None", 2.5, y, 6, 0.4, size=12, color=NOTE_COLOR)
            y += 0.4
        placeholders = master.get("placeholders") or []
        if placeholders:
            add_text(slide, f"Placeholders: {len(placeholders)}", 0.5, y, 4, 0.4, size=14, bold=True, color="333333")
            y += 0.4
            for placeholder in placeholders[:5]:
                pos = placeholder.get("position") or {}
                add_text(slide, f"• {placeholder.get('type')}: ({pos.get('x', 0)}, {pos.get('y', 0)})", 1, y, 8, 0.3,
                         size=11, color=NOTE_COLOR)
                y += 0.25
        add_note(slide, "Note: Slide Master customized. In PowerPoint, go to View > Slide Master to edit layouts.")
        return self._save(prs)

    def apply_theme(self, filename: str, theme: dict) -> tuple[bytes, int]:
        """Theme description slide; backgroundColor goes onto the chosen slides. Returns (bytes, slides recolored)."""
        prs = self._load(filename)
        recolored = 0
        targets = theme.get("applyToSlides") or list(range(1, len(prs.slides) + 1))
        if theme.get("backgroundColor"):
            for number in targets:
                slide = self._slide(prs, number)
                slide.background.fill.solid()
                slide.background.fill.fore_color.rgb = _parse_color(theme["backgroundColor"])
                recolored += 1

        name = theme.get("name") or os.path.basename(theme.get("customThemePath") or "") or "Custom Theme"
        slide = self._blank_slide(prs)
        add_title(slide, f"Theme: {name}", color="0078D4")
        y = 1.5
        if theme.get("variants"):
            add_text(slide, f"Variant: {theme['variants']}", 0.5, y, 9, 0.4, size=16, color=NOTE_COLOR)
            y += 0.4
        applied = theme.get("applyToSlides")
        add_text(slide, f"Slides: {', '.join(str(n) for n in applied)}" if applied else "All slides",
                 0.5, y, 9, 0.4, size=14, color=NOTE_COLOR)
        y += 0.6
        colors = theme.get("customizeColors") or {}
        if colors:
            add_text(slide, "Custom Accent Colors:", 0.5, y, 9, 0.4, size=16, bold=True, color="333333")
            y += 0.4
            for index, key in enumerate(ACCENTS):
                if colors.get(key):
                    row, col = divmod(index, 3)
                    add_box(slide, 1 + col * 2.5, y + row * 0.8, 2, 0.6, fill=colors[key], line="333333")
                    add_text(slide, key, 1 + col * 2.5, y + row * 0.8, 2, 0.6, size=12, bold=True, color="FFFFFF",
                             align="center", valign="middle")
            y += 1.8
        fonts = theme.get("customizeFonts") or {}
        if fonts:
            add_text(slide, "Custom Fonts:", 0.5, y, 9, 0.4, size=16, bold=True, color="333333")
            info = [f"Heading: {fonts['heading']}" if fonts.get("heading") else "",
                    f"Body: {fonts['body']}" if fonts.get("body") else ""]
            add_text(slide, "\n".join(i for i in info if i), 1, y + 0.4, 8, 0.7, size=14, color=NOTE_COLOR)
        add_note(slide, "Note: Theme settings applied. In PowerPoint, go to Design tab to view the theme.")
        return self._save(prs), recolored

    def save_as_template(self, filename: str, template: dict) -> bytes:
        prs = self._load(filename)
        props = prs.core_properties
        props.title = template["title"]
        props.subject = template.get("description") or ""
        props.author = AUTHOR
        category = template.get("category") or "custom"
        props.category = category

        intro = self._blank_slide(prs)
        add_title(intro, f"Template: {template['title']}", color="7719AA")
        if template.get("description"):
            add_text(intro, template["description"], 0.5, 1.3, 9, 0.5, size=16, color=NOTE_COLOR)
        add_text(intro, f"Category: {category}", 0.5, 1.8, 9, 0.4, size=14, color="999999")

        placeholders = template.get("placeholders") or []
        by_slide: dict[int, list[dict]] = {}
        for placeholder in placeholders:
            by_slide.setdefault(placeholder.get("slideNumber") or 1, []).append(placeholder)
        for number, items in by_slide.items():
            slide = self._blank_slide(prs)
            add_text(slide, f"Template Slide {number}", 0.5, 0.3, 9, 0.5, size=20, color="7719AA")
            for placeholder in items:
                position = placeholder.get("position") or {}
                size = placeholder.get("size") or {}
                x, y = _num(position.get("x"), 1), _num(position.get("y"), 1.5)
                w, h = _num(size.get("width"), 3), _num(size.get("height"), 2)
                add_box(slide, x, y, w, h, fill="F3F2F1", line="7719AA", line_width=2, dash=MSO_LINE_DASH_STYLE.DASH)
                add_text(slide, PLACEHOLDER_ICONS.get(placeholder.get("type"), "📄"), x + w / 2 - 0.3,
                         y + h / 2 - 0.7, 0.6, 0.5, size=32)
                add_text(slide, placeholder.get("label") or "", x, y + h / 2 - 0.1, w, 0.4, size=14, bold=True,
                         color="7719AA", align="center")
                if placeholder.get("instructions"):
                    add_text(slide, placeholder["instructions"], x, y + h / 2 + 0.3, w, 0.4, size=10, italic=True,
                             color=NOTE_COLOR, align="center")

        summary = self._blank_slide(prs)
        add_title(summary, "Template Summary", size=24, color="333333")
        lines = [
            f"Title: {template['title']}",
            f"Category: {category}",
            f"Placeholders: {len(placeholders)}",
            f"Protected Elements: {len(template.get('protectedElements') or [])}",
            "",
            "To use this template:",
            "1. Open the template in PowerPoint",
            "2. Replace placeholder content with your own",
            "3. Protected elements cannot be edited",
            "4. Save as a new presentation (.pptx)",
        ]
        add_text(summary, "\n".join(lines), 1, 1.5, 8, 4.5, size=14, color="333333", line_spacing=20)
        add_note(summary, "Note: Save this file as .potx (PowerPoint Template) to use as a template.")
        return self._save(prs)

    def add_table_slide(self, filename: str, title: str, data: list[list], header: bool = True) -> tuple[bytes, str]:
        """Returns (bytes, 'R rows x C columns')."""
        if not data or not data[0]:
            raise ValueError("Table data cannot be empty")
        prs = self._load(filename)
        rows, cols = len(data), max(len(row) for row in data)
        slide = self._blank_slide(prs)

        # Title
        add_title(slide, title)

        # Table
        table = slide.shapes.add_table(
            rows, cols, Inches(0.5), Inches(1.8), Inches(9), Inches(5)
        ).table

        for row_idx, row_data in enumerate(data):
            for col_idx, cell_value in enumerate(row_data):
                cell = table.rows[row_idx].cells[col_idx]
                cell.text = "" if cell_value is None else str(cell_value)

                # Style header
                if header and row_idx == 0:
                    cell.fill.solid()
                    cell.fill.fore_color.rgb = RGBColor(68, 114, 196)
                    for para in cell.text_frame.paragraphs:
                        for run in para.runs:
                            run.font.bold = True
                            run.font.color.rgb = RGBColor(255, 255, 255)

        return self._save(prs), f"{rows} rows x {cols} columns"

    def presentation_info(self, filename: str) -> dict:
        if not os.path.exists(filename):
            raise FileNotFoundError(f"File not found: {filename}")
        prs = Presentation(filename)

        slides = []
        for idx, slide in enumerate(prs.slides):
            title = None
            if slide.shapes.title is not None and slide.shapes.title.text:
                title = slide.shapes.title.text
            else:
                # textbox titles are the first text-bearing shape
                title = next((s.text_frame.text.split("\n")[0] for s in slide.shapes
                              if s.has_text_frame and s.text_frame.text.strip()), None)
            slides.append({
                "index": idx + 1,
                "title": title or f"Slide {idx + 1}",
                "shapes": len(slide.shapes),
                "hasNotes": slide.has_notes_slide and bool(slide.notes_slide.notes_text_frame.text),
            })

        width = Emu(prs.slide_width).inches
        height = Emu(prs.slide_height).inches
        return {
            "file": filename,
            "slideCount": len(prs.slides),
            "widthInches": round(width, 3),
            "heightInches": round(height, 3),
            "aspectRatio": f"{width:.1f}:{height:.1f}",
            "title": prs.core_properties.title or None,
            "author": prs.core_properties.author or None,
            "slides": slides,
        }
