'''
Excel generator - build and modify .xlsx workbooks with openpyxl.

Every method loads the named workbook (a blank one when the file does not
exist), applies one change and returns the serialized workbook bytes. Features
openpyxl cannot produce (pivot tables, sparklines, slicers, Power Query, ...)
are recorded as cell values and comments that describe them.
'''

import datetime
import io
import json
import os
import re
from copy import copy
from typing import Any, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.comments import Comment
from openpyxl.drawing.image import Image as XLImage
from openpyxl.formatting.rule import CellIsRule, ColorScaleRule, DataBarRule, FormulaRule, IconSetRule
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter, column_index_from_string, range_boundaries
from openpyxl.utils.cell import absolute_coordinate, quote_sheetname
from openpyxl.workbook.defined_name import DefinedName
from openpyxl.worksheet.datavalidation import DataValidation
from openpyxl.worksheet.formula import ArrayFormula
from openpyxl.worksheet.hyperlink import Hyperlink
from openpyxl.worksheet.page import PageMargins
from openpyxl.worksheet.pagebreak import Break
from openpyxl.worksheet.properties import PageSetupProperties
from openpyxl.worksheet.table import Table, TableColumn, TableStyleInfo

from ..errors import SheetNotFoundError, TableNotFoundError
from ..media import load_image

import logging
logger = logging.getLogger(__name__)

CREATOR = "Office Whisperer"
HEADER_FILL = "FF4472C4"
WHITE = "FFFFFFFF"
BLUE = "FF0000FF"

ICON_SETS = {
    "ThreeArrows": ("3Arrows", [0, 33, 67]),
    "ThreeFlags": ("3Flags", [0, 33, 67]),
    "FourRating": ("4Rating", [0, 25, 50, 75]),
    "FiveQuarters": ("5Quarters", [0, 20, 40, 60, 80]),
}

PAPER_SIZES = {
    "letter": 1,
    "legal": 5,
    "A4": 9,
    "A3": 8,
    "tabloid": 3,
}

VERTICAL_ALIGNMENT = {"middle": "center"}


def normalize_color(color: str) -> str:
    """ARGB hex: '#RRGGBB' and 'RRGGBB' get an opaque alpha, anything else is upper-cased."""
    if color.startswith("#"):
        return "FF" + color[1:].upper()
    if len(color) == 6:
        return "FF" + color.upper()
    return color.upper()


def _color(value: Any) -> Optional[str]:
    """Accept 'RRGGBB' strings as well as {'argb': ...} objects."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("argb") or value.get("rgb")
        if value is None:
            return None
    return normalize_color(str(value))


def _note(text: str) -> Comment:
    comment = Comment(text, CREATOR)
    comment.width = 300
    comment.height = 150
    return comment


def _formula(text: str) -> str:
    return text if text.startswith("=") else f"={text}"


def _cell_text(value: Any) -> str:
    """String form of a cell value, with integral floats printed without a fraction."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    return str(value)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()
    return str(value)


def _trim(values: tuple) -> list:
    values = list(values)
    while values and values[-1] is None:
        values.pop()
    return values


def _sort_key(value: Any) -> tuple:
    if value is None:
        return (2, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (1, _cell_text(value).lower())


def _font(spec: dict) -> Font:
    underline = spec.get("underline")
    if underline is True:
        underline = "single"
    return Font(
        name=spec.get("name"),
        size=spec.get("size"),
        bold=spec.get("bold"),
        italic=spec.get("italic"),
        underline=underline or None,
        strike=spec.get("strike"),
        color=_color(spec.get("color")),
    )


def _fill(spec: dict) -> PatternFill:
    color = _color(spec.get("fgColor") or spec.get("color") or spec.get("bgColor"))
    return PatternFill(fill_type=spec.get("pattern", "solid"), start_color=color, end_color=color)


def _alignment(spec: dict) -> Alignment:
    vertical = spec.get("vertical")
    return Alignment(
        horizontal=spec.get("horizontal"),
        vertical=VERTICAL_ALIGNMENT.get(vertical, vertical),
        wrap_text=spec.get("wrapText"),
    )


def _border(spec: dict) -> Border:
    sides = {}
    for side in ("top", "bottom", "left", "right"):
        if spec.get(side):
            sides[side] = Side(style=spec[side].get("style", "thin"), color=_color(spec[side].get("color")))
    return Border(**sides)


def apply_style(cell, style: dict) -> None:
    """Apply an {font, fill, alignment, border, numFmt} style object to one cell."""
    if style.get("font"):
        cell.font = _font(style["font"])
    if style.get("fill"):
        cell.fill = _fill(style["fill"])
    if style.get("alignment"):
        cell.alignment = _alignment(style["alignment"])
    if style.get("border"):
        cell.border = _border(style["border"])
    if style.get("numFmt"):
        cell.number_format = style["numFmt"]


def _cells(ws, cell_range: str):
    """Every cell in an A1 range (or a single cell reference)."""
    min_col, min_row, max_col, max_row = range_boundaries(cell_range)
    for row in ws.iter_rows(min_row=min_row, max_row=max_row, min_col=min_col, max_col=max_col):
        yield from row


def _column_index(ws, column: Any, header_row: int, min_col: int, max_col: int) -> int:
    """Resolve a sort column given as 1-based number, letter or header text."""
    if isinstance(column, int):
        return column
    text = str(column)
    if text.isdigit():
        return int(text)
    for col in range(min_col, max_col + 1):
        if _cell_text(ws.cell(row=header_row, column=col).value) == text:
            return col
    return column_index_from_string(text.upper())


class ExcelGenerator:
    """Workbook builder. Stateless: safe to share between concurrent calls."""

    # ── helpers ──────────────────────────────────────────────────────

    def _load(self, filename: str) -> Workbook:
        if os.path.exists(filename):
            return load_workbook(filename)
        logger.warning(f"File {filename} not found, creating new workbook")
        return Workbook()

    def _sheet(self, wb: Workbook, sheet_name: str):
        if sheet_name not in wb.sheetnames:
            raise SheetNotFoundError(sheet_name)
        return wb[sheet_name]

    def _open(self, filename: str, sheet_name: str):
        wb = self._load(filename)
        return wb, self._sheet(wb, sheet_name)

    @staticmethod
    def _save(wb: Workbook) -> bytes:
        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    # ── workbook creation ────────────────────────────────────────────

    def create_workbook(self, sheets: list[dict]) -> bytes:
        wb = Workbook()
        wb.remove(wb.active)
        wb.properties.creator = CREATOR
        wb.properties.created = datetime.datetime.now()
        wb.properties.modified = datetime.datetime.now()

        for sheet in sheets:
            ws = wb.create_sheet(title=sheet.get("name") or f"Sheet{len(wb.sheetnames) + 1}")
            columns = sheet.get("columns") or []
            keys = [col.get("key") for col in columns]

            for col_idx, col in enumerate(columns, 1):
                ws.cell(row=1, column=col_idx, value=col.get("header"))
                ws.column_dimensions[get_column_letter(col_idx)].width = col.get("width") or 15
                if col.get("style"):
                    apply_style(ws.cell(row=1, column=col_idx), col["style"])

            for row in sheet.get("data") or []:
                if isinstance(row, dict):
                    row = [row.get(key) for key in keys]
                ws.append(list(row))

            for index, row_config in enumerate(sheet.get("rows") or [], 1):
                for col_idx, value in enumerate(row_config.get("values") or [], 1):
                    ws.cell(row=index, column=col_idx, value=value)
                if row_config.get("style"):
                    for cell in ws[index]:
                        apply_style(cell, row_config["style"])

            if columns:
                for col_idx in range(1, len(columns) + 1):
                    cell = ws.cell(row=1, column=col_idx)
                    cell.font = Font(bold=True, size=12, color=WHITE)
                    cell.fill = PatternFill(fill_type="solid", start_color=HEADER_FILL, end_color=HEADER_FILL)
                    cell.alignment = Alignment(vertical="center", horizontal="center")
                ws.row_dimensions[1].height = 25

            data = sheet.get("data") or []
            if data:
                width = len(columns) if isinstance(data[0], dict) else len(data[0])
                if width:
                    ws.auto_filter.ref = f"A1:{get_column_letter(width)}1"

        if not wb.sheetnames:
            wb.create_sheet("Sheet1")
        return self._save(wb)

    def add_rows(self, filename: str, rows: list[list], sheet_name: Optional[str] = None,
                 auto_width: bool = True) -> tuple[bytes, str, int]:
        """Append rows after the last used row. Returns (bytes, sheet name, total rows)."""
        wb = self._load(filename)
        ws = self._sheet(wb, sheet_name) if sheet_name else wb.active

        next_row = ws.max_row + 1 if ws.max_row > 1 or ws.cell(row=1, column=1).value is not None else 1
        for row_data in rows:
            for col_idx, value in enumerate(row_data, 1):
                ws.cell(row=next_row, column=col_idx, value=value)
            next_row += 1

        if auto_width:
            for col_idx in range(1, ws.max_column + 1):
                max_length = 0
                for row_idx in range(1, ws.max_row + 1):
                    cell_value = ws.cell(row=row_idx, column=col_idx).value
                    if cell_value is not None:
                        max_length = max(max_length, len(str(cell_value)))
                ws.column_dimensions[get_column_letter(col_idx)].width = min(max_length + 2, 50)

        return self._save(wb), ws.title, ws.max_row

    # ── analysis placeholders ────────────────────────────────────────

    def add_pivot_table(self, filename: str, sheet_name: str, pivot_table: dict) -> bytes:
        wb, _ = self._open(filename, sheet_name)
        pivot = wb.create_sheet(title=pivot_table["name"])
        pivot["A1"] = f"Pivot Table: {pivot_table['name']}"
        pivot["A2"] = f"Data Range: {pivot_table.get('dataRange', '')}"
        pivot["A3"] = f"Rows: {', '.join(pivot_table.get('rows') or [])}"
        pivot["A4"] = f"Columns: {', '.join(pivot_table.get('columns') or [])}"
        pivot["A5"] = f"Values: {', '.join(pivot_table.get('values') or [])}"
        if pivot_table.get("filters"):
            pivot["A6"] = f"Filters: {', '.join(pivot_table['filters'])}"
        return self._save(wb)

    def add_chart(self, filename: str, sheet_name: str, chart: dict) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        position = chart.get("position") or {}
        cell = ws.cell(row=position.get("row") or 10, column=position.get("col") or 1)
        cell.value = f"[Chart: {chart.get('title', '')}]"
        cell.comment = _note(f"Type: {chart.get('type')}, Data: {chart.get('dataRange')}")
        cell.font = Font(bold=True, color=BLUE)
        return self._save(wb)

    def add_formulas(self, filename: str, sheet_name: str, formulas: list[dict]) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        for item in formulas:
            ws[item["cell"]] = _formula(item["formula"])
        return self._save(wb)

    def add_conditional_formatting(self, filename: str, sheet_name: str, cell_range: str,
                                   rules: list[dict]) -> bytes:
        wb, ws = self._open(filename, sheet_name)

        for rule in rules:
            rule_type = rule.get("type")
            fill_color = normalize_color(rule.get("color") or "FFFF0000")
            fill = PatternFill(fill_type="solid", start_color=fill_color, end_color=fill_color)

            if rule_type == "colorScale":
                gradient = rule.get("gradient") or {"start": "FFF8696B", "end": "FF63BE7B"}
                if gradient.get("middle"):
                    cf_rule = ColorScaleRule(start_type="min", start_color=normalize_color(gradient["start"]),
                                             mid_type="percentile", mid_value=50,
                                             mid_color=normalize_color(gradient["middle"]),
                                             end_type="max", end_color=normalize_color(gradient["end"]))
                else:
                    cf_rule = ColorScaleRule(start_type="min", start_color=normalize_color(gradient["start"]),
                                             end_type="max", end_color=normalize_color(gradient["end"]))
            elif rule_type == "dataBar":
                color = normalize_color(rule["color"]) if rule.get("color") else "FF638EC6"
                cf_rule = DataBarRule(start_type="min", end_type="max", color=color)
            elif rule_type == "iconSet":
                icon_style, values = ICON_SETS.get(rule.get("iconSet") or "ThreeArrows", ICON_SETS["ThreeArrows"])
                cf_rule = IconSetRule(icon_style, "percent", values)
            elif rule_type == "formulaBased":
                cf_rule = FormulaRule(formula=[rule.get("formula", "").lstrip("=")], fill=fill)
            elif rule_type == "cellValue":
                values = [str(v) for v in rule.get("values") or []]
                cf_rule = CellIsRule(operator=rule.get("operator") or "greaterThan", formula=values, fill=fill)
            else:
                raise ValueError(f"Unknown conditional formatting type: {rule_type}")

            cf_rule.priority = rule.get("priority") or 1
            ws.conditional_formatting.add(cell_range, cf_rule)

        return self._save(wb)

    def add_data_validation(self, filename: str, sheet_name: str, cell_range: str, validation: dict) -> bytes:
        wb, ws = self._open(filename, sheet_name)

        dv = DataValidation(
            type=validation.get("type"),
            allow_blank=validation.get("allowBlank") is not False,
            showErrorMessage=validation.get("showErrorMessage") is not False,
            showInputMessage=validation.get("showInputMessage") is not False,
        )
        if validation.get("type") == "list" and validation.get("values"):
            dv.formula1 = f'"{",".join(validation["values"])}"'
        elif validation.get("formula"):
            dv.formula1 = validation["formula"]
        elif validation.get("operator"):
            dv.operator = validation["operator"]
            bounds = [validation.get(key) for key in ("min", "max") if validation.get(key) is not None]
            if bounds:
                dv.formula1 = str(bounds[0])
            if len(bounds) > 1:
                dv.formula2 = str(bounds[1])

        if validation.get("errorTitle"):
            dv.errorTitle = validation["errorTitle"]
            dv.error = validation.get("error") or "Invalid value"
        if validation.get("promptTitle"):
            dv.promptTitle = validation["promptTitle"]
            dv.prompt = validation.get("prompt") or ""

        ws.add_data_validation(dv)
        dv.add(cell_range)
        return self._save(wb)

    def freeze_panes(self, filename: str, sheet_name: str, row: Optional[int] = None,
                     column: Optional[int] = None) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        if row or column:
            ws.freeze_panes = ws.cell(row=(row or 0) + 1, column=(column or 0) + 1)
        return self._save(wb)

    def filter_sort(self, filename: str, sheet_name: str, cell_range: Optional[str] = None,
                    sort_by: Optional[list[dict]] = None, auto_filter: bool = True) -> bytes:
        wb, ws = self._open(filename, sheet_name)

        if cell_range:
            min_col, min_row, max_col, max_row = range_boundaries(cell_range)
        else:
            min_col, min_row, max_col, max_row = 1, 1, ws.max_column, ws.max_row

        if auto_filter:
            if cell_range:
                ws.auto_filter.ref = cell_range
            elif ws.max_column:
                ws.auto_filter.ref = f"A1:{get_column_letter(ws.max_column)}1"

        if sort_by:
            # first row of the range is the header row
            rows = [
                [ws.cell(row=r, column=c).value for c in range(min_col, max_col + 1)]
                for r in range(min_row + 1, max_row + 1)
            ]
            for key in reversed(sort_by):
                col = _column_index(ws, key["column"], min_row, min_col, max_col) - min_col
                rows.sort(key=lambda values: _sort_key(values[col] if col < len(values) else None),
                          reverse=bool(key.get("descending")))
            for offset, values in enumerate(rows, min_row + 1):
                for col_offset, value in enumerate(values):
                    ws.cell(row=offset, column=min_col + col_offset, value=value)

            order = ", ".join(f"{s['column']} {'DESC' if s.get('descending') else 'ASC'}" for s in sort_by)
            ws["A1"].comment = _note(f"Sort by: {order}")

        return self._save(wb)

    def format_cells(self, filename: str, sheet_name: str, cell_range: str, style: dict) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        for cell in _cells(ws, cell_range):
            apply_style(cell, style)
        return self._save(wb)

    def add_named_range(self, filename: str, name: str, cell_range: str,
                        sheet_name: Optional[str] = None) -> bytes:
        wb = self._load(filename)
        if sheet_name:
            self._sheet(wb, sheet_name)
            reference = f"{quote_sheetname(sheet_name)}!{absolute_coordinate(cell_range)}"
        else:
            reference = cell_range
        wb.defined_names[name] = DefinedName(name, attr_text=reference)
        return self._save(wb)

    def protect_sheet(self, filename: str, sheet_name: str, password: Optional[str] = None,
                      options: Optional[dict] = None) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        ws.protection.sheet = True
        if password:
            ws.protection.password = password
        # options name what users may still do; openpyxl flags what is locked
        for option, allowed in (options or {}).items():
            if hasattr(ws.protection, option):
                setattr(ws.protection, option, not allowed)
        return self._save(wb)

    # ── workbook level ───────────────────────────────────────────────

    def merge_workbooks(self, files: list[str]) -> tuple[bytes, int]:
        """Copy every sheet of every readable file into one workbook.

        Returns (bytes, number of files merged). Unreadable files are logged and skipped.
        """
        merged = Workbook()
        default_sheet = merged.active
        merged_files = 0

        for path in files:
            try:
                source = load_workbook(path)
            except Exception as e:
                logger.error(f"Error merging file {path}: {e}")
                continue

            for ws in source.worksheets:
                title = ws.title
                suffix = 2
                while title in merged.sheetnames:
                    title = f"{ws.title[:27]} ({suffix})"
                    suffix += 1
                target = merged.create_sheet(title=title)

                for row in ws.iter_rows():
                    for cell in row:
                        if cell.value is None and not cell.has_style:
                            continue
                        new_cell = target.cell(row=cell.row, column=cell.column, value=cell.value)
                        if cell.has_style:
                            new_cell.font = copy(cell.font)
                            new_cell.fill = copy(cell.fill)
                            new_cell.border = copy(cell.border)
                            new_cell.alignment = copy(cell.alignment)
                            new_cell.number_format = cell.number_format
                            new_cell.protection = copy(cell.protection)

                for key, dim in ws.row_dimensions.items():
                    if dim.height:
                        target.row_dimensions[key].height = dim.height
                for key, dim in ws.column_dimensions.items():
                    if dim.width:
                        target.column_dimensions[key].width = dim.width
            merged_files += 1

        if len(merged.sheetnames) > 1:
            merged.remove(default_sheet)
        return self._save(merged), merged_files

    def find_replace(self, filename: str, find: str, replace: str, sheet_name: Optional[str] = None,
                     match_case: bool = False, match_entire_cell: bool = False,
                     search_formulas: bool = False) -> tuple[bytes, int]:
        """Replace text in string cells. Returns (bytes, number of cells changed)."""
        wb = self._load(filename)
        sheets = [self._sheet(wb, sheet_name)] if sheet_name else wb.worksheets
        pattern = re.compile(re.escape(find), 0 if match_case else re.IGNORECASE)
        changed = 0

        for ws in sheets:
            for row in ws.iter_rows():
                for cell in row:
                    value = cell.value
                    if not isinstance(value, str):
                        continue
                    if cell.data_type == "f" and not search_formulas:
                        continue

                    if match_entire_cell:
                        same = value == find if match_case else value.lower() == find.lower()
                        new_value = replace if same else value
                    else:
                        new_value = pattern.sub(lambda _: replace, value)

                    if new_value != value:
                        cell.value = new_value
                        changed += 1

        return self._save(wb), changed

    # ── export ───────────────────────────────────────────────────────

    def _read_sheet(self, excel_path: str, sheet_name: Optional[str]):
        wb = load_workbook(excel_path)
        if sheet_name:
            if sheet_name not in wb.sheetnames:
                raise SheetNotFoundError(sheet_name)
            return wb[sheet_name]
        return wb.worksheets[0]

    def convert_to_json(self, excel_path: str, sheet_name: Optional[str] = None, header: bool = True) -> str:
        ws = self._read_sheet(excel_path, sheet_name)
        rows: list[Any] = []
        headers: list[str] = []

        for index, values in enumerate(ws.iter_rows(values_only=True)):
            values = _trim(values)
            if not values:
                continue
            if index == 0 and header:
                headers = [_cell_text(h) if h is not None else f"column{i + 1}" for i, h in enumerate(values)]
                continue
            if header and headers:
                rows.append({
                    name: values[i] for i, name in enumerate(headers)
                    if i < len(values) and values[i] is not None
                })
            else:
                rows.append(values)

        return json.dumps(rows, indent=2, ensure_ascii=False, default=_json_default)

    def convert_to_csv(self, excel_path: str, sheet_name: Optional[str] = None) -> str:
        ws = self._read_sheet(excel_path, sheet_name)
        lines = []
        for values in ws.iter_rows(values_only=True):
            values = _trim(values)
            if not values:
                continue
            fields = []
            for value in values:
                text = _cell_text(value)
                if "," in text or '"' in text or "\n" in text:
                    text = '"' + text.replace('"', '""') + '"'
                fields.append(text)
            lines.append(",".join(fields) + "\n")
        return "".join(lines)

    # ── formulas and data tools ──────────────────────────────────────

    def add_sparklines(self, filename: str, sheet_name: str, data_range: str, location: str,
                       sparkline_type: str, options: Optional[dict] = None) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        cell = ws[location]
        text = f"Sparkline: {sparkline_type} chart of {data_range}"
        if options:
            text += "\nOptions: " + ", ".join(f"{k}={v}" for k, v in options.items())
        cell.comment = _note(text)
        cell.value = f"[Sparkline: {sparkline_type}]"
        return self._save(wb)

    def add_array_formulas(self, filename: str, sheet_name: str, formulas: list[dict]) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        for item in formulas:
            ref = item.get("range") or item["cell"]
            anchor = ref.split(":")[0]
            ws[anchor] = ArrayFormula(ref=ref, text=_formula(item["formula"]))
        return self._save(wb)

    def add_subtotals(self, filename: str, sheet_name: str, cell_range: str, group_by: int,
                      summary_function: str, summary_columns: list[int],
                      page_break_between_groups: bool = False,
                      summary_below_data: bool = True) -> tuple[bytes, int]:
        """Insert a "{group} Total" row per run of equal values in column `group_by`.

        Returns (bytes, number of subtotal rows).
        """
        wb, ws = self._open(filename, sheet_name)
        _, start_row, _, end_row = range_boundaries(cell_range)
        function = summary_function.upper()

        groups = []
        group_start = start_row
        current = ws.cell(row=start_row, column=group_by).value
        for row in range(start_row + 1, end_row + 2):
            value = ws.cell(row=row, column=group_by).value if row <= end_row else None
            if row > end_row or value != current:
                groups.append((current, group_start, row - 1))
                current, group_start = value, row

        # bottom-up so earlier row numbers stay valid
        for group, first, last in reversed(groups):
            if summary_below_data:
                ws.insert_rows(last + 1)
                total_row, data_first, data_last = last + 1, first, last
            else:
                ws.insert_rows(first)
                total_row, data_first, data_last = first, first + 1, last + 1

            for col in summary_columns:
                letter = get_column_letter(col)
                ws.cell(row=total_row, column=col, value=f"={function}({letter}{data_first}:{letter}{data_last})")
            ws.cell(row=total_row, column=group_by, value=f"{_cell_text(group)} Total")
            for cell in ws[total_row]:
                cell.font = Font(bold=True)
            if page_break_between_groups:
                ws.row_breaks.append(Break(id=total_row))

        return self._save(wb), len(groups)

    def add_hyperlinks(self, filename: str, sheet_name: str, links: list[dict]) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        for link in links:
            cell = ws[link["cell"]]
            if link.get("url"):
                cell.value = link.get("displayText") or link["url"]
                cell.hyperlink = Hyperlink(ref=cell.coordinate, target=link["url"], tooltip=link.get("tooltip"))
            elif link.get("sheet"):
                target = f"{quote_sheetname(link['sheet'])}!{link['range']}" if link.get("range") else \
                    f"{quote_sheetname(link['sheet'])}!A1"
                cell.value = link.get("displayText") or f"Go to {link['sheet']}"
                cell.hyperlink = Hyperlink(ref=cell.coordinate, location=target, tooltip=link.get("tooltip"))
            cell.font = Font(color="FF0000FF", underline="single")
        return self._save(wb)

    def add_advanced_chart(self, filename: str, sheet_name: str, chart: dict) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        position = chart.get("position") or {"row": 1, "col": 10}
        cell = ws.cell(row=position["row"], column=position["col"])
        cell.value = f"[{chart['type'].upper()} Chart: {chart.get('title', '')}]"
        cell.comment = _note(
            f"Chart Type: {chart['type']}\nData Range: {chart.get('dataRange')}\n\n"
            "Note: Advanced chart types require Microsoft Excel to render."
        )
        cell.font = Font(bold=True, color=BLUE)
        return self._save(wb)

    def add_slicers(self, filename: str, sheet_name: str, table_name: str, slicers: list[dict]) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        for index, slicer in enumerate(slicers):
            position = slicer.get("position") or {"row": 1 + index * 2, "col": 15}
            cell = ws.cell(row=position["row"], column=position["col"])
            cell.value = f"[Slicer: {slicer.get('caption') or slicer['columnName']}]"
            cell.comment = _note(
                f"Table: {table_name}\nColumn: {slicer['columnName']}\n\n"
                "Note: Slicers require Microsoft Excel to render."
            )
            cell.font = Font(bold=True, color="FFFF6600")
            cell.fill = PatternFill(fill_type="solid", start_color="FFFFF3E0", end_color="FFFFF3E0")
        return self._save(wb)

    def add_power_query(self, filename: str, query: dict) -> bytes:
        wb = self._load(filename)
        if query.get("sheetName"):
            self._sheet(wb, query["sheetName"])
        name = query["name"]
        sheet = wb.create_sheet(title=f"Query_{name}"[:31])

        sheet["A1"] = f"Power Query: {name}"
        sheet["A1"].font = Font(bold=True, size=14)
        source = query.get("source") or {}
        sheet["A2"] = "Source:"
        sheet["B2"] = f"{source.get('type', '')} - {source.get('location', '')}"

        transformations = query.get("transformations") or []
        if transformations:
            sheet["A4"] = "Transformations:"
            sheet["A4"].font = Font(bold=True)
            for index, step in enumerate(transformations):
                row = 5 + index
                sheet.cell(row=row, column=1, value=f"{index + 1}. {step.get('step', '')}")
                if step.get("column"):
                    sheet.cell(row=row, column=2, value=f"Column: {step['column']}")

        sheet["A1"].comment = _note(
            "Power Query requires Microsoft Excel to execute. This sheet documents the query configuration."
        )
        return self._save(wb)

    def goal_seek(self, filename: str, sheet_name: str, set_cell: str, to_value: float,
                  by_changing_cell: str) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        ws[set_cell].comment = _note(
            f"Goal Seek: Set {set_cell} to {to_value} by changing {by_changing_cell}\n\n"
            "Note: Goal Seek requires Microsoft Excel to execute."
        )
        if set_cell.upper() != "A1":
            ws["A1"].comment = _note(
                f"Goal Seek configured: Set {set_cell} = {to_value} by changing {by_changing_cell}"
            )
        return self._save(wb)

    def create_data_table(self, filename: str, sheet_name: str, table_type: str, formula_cell: str,
                          row_input_cell: Optional[str] = None, column_input_cell: Optional[str] = None,
                          output_range: Optional[str] = None) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        text = f"Data Table ({table_type}):\nFormula: {formula_cell}\n"
        if row_input_cell:
            text += f"Row Input: {row_input_cell}\n"
        if column_input_cell:
            text += f"Column Input: {column_input_cell}\n"
        text += f"Output: {output_range}\n\nNote: Data Tables require Microsoft Excel."
        ws[formula_cell].comment = _note(text)
        return self._save(wb)

    def manage_scenarios(self, filename: str, sheet_name: str, scenarios: list[dict],
                         result_cells: Optional[list[str]] = None) -> bytes:
        wb, _ = self._open(filename, sheet_name)
        title = "Scenario Summary"
        if title in wb.sheetnames:
            wb.remove(wb[title])
        summary = wb.create_sheet(title=title)

        summary["A1"] = "Scenario Manager Summary"
        summary["A1"].font = Font(bold=True, size=14)
        for col, heading in enumerate(["Scenario", "Changing Cells", "Values", "Comment"], 1):
            cell = summary.cell(row=3, column=col, value=heading)
            cell.font = Font(bold=True)
            cell.fill = PatternFill(fill_type="solid", start_color="FFD9E1F2", end_color="FFD9E1F2")

        for index, scenario in enumerate(scenarios):
            row = 4 + index
            summary.cell(row=row, column=1, value=scenario["name"])
            summary.cell(row=row, column=2, value=", ".join(scenario.get("changingCells") or []))
            summary.cell(row=row, column=3, value=", ".join(_cell_text(v) for v in scenario.get("values") or []))
            summary.cell(row=row, column=4, value=scenario.get("comment") or "")

        if result_cells:
            summary.cell(row=5 + len(scenarios), column=1, value=f"Result cells: {', '.join(result_cells)}")

        for col in range(1, 5):
            summary.column_dimensions[get_column_letter(col)].width = 20
        return self._save(wb)

    # ── tables ───────────────────────────────────────────────────────

    def create_table(self, filename: str, sheet_name: str, table_name: str, cell_range: str,
                     has_headers: bool = True, style: Optional[str] = None,
                     show_total_row: bool = False) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        min_col, min_row, max_col, max_row = range_boundaries(cell_range)

        names: list[str] = []
        for col in range(min_col, max_col + 1):
            header = ws.cell(row=min_row, column=col).value if has_headers else None
            name = _cell_text(header) or f"Column{col}"
            while name in names:
                name += "_"
            names.append(name)

        ref = cell_range
        if show_total_row:
            max_row += 1
            ref = f"{get_column_letter(min_col)}{min_row}:{get_column_letter(max_col)}{max_row}"
            ws.cell(row=max_row, column=min_col, value="Total")

        table = Table(displayName=table_name, ref=ref)
        table.headerRowCount = 1 if has_headers else 0
        table.totalsRowCount = 1 if show_total_row else None
        table.tableColumns = [TableColumn(id=i, name=name) for i, name in enumerate(names, 1)]
        if show_total_row:
            table.tableColumns[0].totalsRowLabel = "Total"
        table.tableStyleInfo = TableStyleInfo(name=style or "TableStyleMedium2", showRowStripes=True)
        ws.add_table(table)
        return self._save(wb)

    def add_table_formula(self, filename: str, sheet_name: str, table_name: str, column_name: str,
                          formula: str) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        if table_name not in ws.tables:
            raise TableNotFoundError(table_name)
        table = ws.tables[table_name]
        min_col, min_row, _, max_row = range_boundaries(table.ref)

        names = [column.name for column in table.tableColumns]
        if column_name not in names:
            raise ValueError(f'Column "{column_name}" not found in table "{table_name}"')
        col = min_col + names.index(column_name)

        # file format spells [@Col] as Table[[#This Row],[Col]]
        stored = re.sub(r"\[@\[?([^\]]+?)\]?\]", rf"{table_name}[[#This Row],[\1]]", _formula(formula))
        first = min_row + (table.headerRowCount if table.headerRowCount is not None else 1)
        last = max_row - (table.totalsRowCount or 0)
        for row in range(first, last + 1):
            ws.cell(row=row, column=col, value=stored)

        ws["A1"].comment = _note(
            f"Table Formula added to {table_name}.{column_name}: {formula}\n\n"
            "Structured references work in Microsoft Excel."
        )
        return self._save(wb)

    # ── visual placeholders ──────────────────────────────────────────

    def add_form_controls(self, filename: str, sheet_name: str, controls: list[dict]) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        for control in controls:
            cell = ws.cell(row=control["position"]["row"], column=control["position"]["col"])
            cell.value = f"[{control['type'].upper()}: {control['name']}]"
            cell.font = Font(bold=True, color=BLUE)
            cell.fill = PatternFill(fill_type="solid", start_color="FFE7E6FF", end_color="FFE7E6FF")

            text = f"Form Control: {control['type']}\nName: {control['name']}"
            if control.get("linkedCell"):
                text += f"\nLinked Cell: {control['linkedCell']}"
            if control.get("inputRange"):
                text += f"\nInput Range: {control['inputRange']}"
            if control.get("min") is not None:
                text += f"\nMin: {control['min']}, Max: {control.get('max')}"
            text += "\n\nNote: Form controls require Microsoft Excel to render and function."
            cell.comment = _note(text)
        return self._save(wb)

    def insert_images(self, filename: str, sheet_name: str, images: list[dict]) -> tuple[bytes, int]:
        """Anchor images at their cells. Returns (bytes, number inserted)."""
        wb, ws = self._open(filename, sheet_name)
        inserted = 0
        for image in images:
            try:
                picture = XLImage(load_image(image["path"]))
                size = image.get("size") or {}
                picture.width = size.get("width") or 200
                picture.height = size.get("height") or 200
                position = image["position"]
                anchor = f"{get_column_letter(position['col'])}{position['row']}"
                ws.add_image(picture, anchor)
                if image.get("description"):
                    ws[anchor].comment = _note(image["description"])
                inserted += 1
            except Exception as e:
                logger.error(f"Error adding image {image.get('path')}: {e}")
        return self._save(wb), inserted

    def insert_shapes(self, filename: str, sheet_name: str, shapes: list[dict]) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        for shape in shapes:
            cell = ws.cell(row=shape["position"]["row"], column=shape["position"]["col"])
            cell.value = f"[{shape['type'].upper()} SHAPE]"
            cell.font = Font(bold=True, color="FFFF6600")
            fill_color = (shape.get("fill") or {}).get("color")
            if fill_color:
                color = normalize_color(fill_color)
                cell.fill = PatternFill(fill_type="solid", start_color=color, end_color=color)
            size = shape.get("size") or {}
            text = f"Shape: {shape['type']}\nSize: {size.get('width')}x{size.get('height')}"
            if shape.get("text"):
                text += f"\nText: {shape['text']}"
            text += "\n\nNote: Shapes require Microsoft Excel to render."
            cell.comment = _note(text)
        return self._save(wb)

    def add_smartart(self, filename: str, sheet_name: str, smart_art: dict) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        position = smart_art.get("position") or {"row": 1, "col": 1}
        cell = ws.cell(row=position["row"], column=position["col"])
        cell.value = f"[SMARTART: {smart_art['type']} - {smart_art.get('layout', '')}]"
        cell.font = Font(bold=True, size=12, color="FF008000")
        cell.fill = PatternFill(fill_type="solid", start_color="FFE2EFDA", end_color="FFE2EFDA")

        text = f"SmartArt: {smart_art['type']}\nLayout: {smart_art.get('layout', '')}\nItems:\n"
        for index, item in enumerate(smart_art.get("items") or []):
            text += f"{index + 1}. {item.get('text', '')}\n"
        text += "\nNote: SmartArt requires Microsoft Excel to render."
        cell.comment = _note(text)
        return self._save(wb)

    # ── printing ─────────────────────────────────────────────────────

    def configure_page_setup(self, filename: str, sheet_name: str, page_setup: dict) -> bytes:
        wb, ws = self._open(filename, sheet_name)

        ws.page_setup.orientation = page_setup.get("orientation") or "portrait"
        ws.page_setup.paperSize = PAPER_SIZES.get(page_setup.get("paperSize"), 9)

        fit = page_setup.get("fitToPage")
        if fit:
            ws.sheet_properties.pageSetUpPr = PageSetupProperties(fitToPage=True)
            if isinstance(fit, dict):
                ws.page_setup.fitToWidth = fit.get("width")
                ws.page_setup.fitToHeight = fit.get("height")
        if page_setup.get("scale"):
            ws.page_setup.scale = page_setup["scale"]

        margins = page_setup.get("margins")
        if margins:
            ws.page_margins = PageMargins(
                left=margins.get("left") or 0.7,
                right=margins.get("right") or 0.7,
                top=margins.get("top") or 0.75,
                bottom=margins.get("bottom") or 0.75,
                header=margins.get("header") or 0.3,
                footer=margins.get("footer") or 0.3,
            )

        if page_setup.get("centerHorizontally") is not None:
            ws.print_options.horizontalCentered = page_setup["centerHorizontally"]
        if page_setup.get("centerVertically") is not None:
            ws.print_options.verticalCentered = page_setup["centerVertically"]
        if page_setup.get("printArea"):
            ws.print_area = page_setup["printArea"]

        titles = page_setup.get("printTitles") or {}
        if titles.get("rows"):
            ws.print_title_rows = titles["rows"]
        if titles.get("columns"):
            ws.print_title_cols = titles["columns"]

        return self._save(wb)

    def set_header_footer(self, filename: str, sheet_name: str, header: Optional[dict] = None,
                          footer: Optional[dict] = None, different_first_page: bool = False,
                          different_odd_even: bool = False) -> bytes:
        wb, ws = self._open(filename, sheet_name)

        def fill(part, spec):
            part.left.text = spec.get("left") or None
            part.center.text = spec.get("center") or None
            part.right.text = spec.get("right") or None

        if header:
            fill(ws.oddHeader, header)
            if different_first_page:
                fill(ws.firstHeader, header)
            if different_odd_even:
                fill(ws.evenHeader, header)
        if footer:
            fill(ws.oddFooter, footer)
            if different_first_page:
                fill(ws.firstFooter, footer)
            if different_odd_even:
                fill(ws.evenFooter, footer)

        ws.HeaderFooter.differentFirst = bool(different_first_page)
        ws.HeaderFooter.differentOddEven = bool(different_odd_even)
        return self._save(wb)

    def add_page_breaks(self, filename: str, sheet_name: str, horizontal_breaks: Optional[list[int]] = None,
                        vertical_breaks: Optional[list[int]] = None) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        for row in horizontal_breaks or []:
            ws.row_breaks.append(Break(id=row))
        for col in vertical_breaks or []:
            ws.col_breaks.append(Break(id=col))

        if horizontal_breaks or vertical_breaks:
            rows = ", ".join(str(r) for r in horizontal_breaks or []) or "None"
            cols = ", ".join(str(c) for c in vertical_breaks or []) or "None"
            ws["A1"].comment = _note(
                f"Page Breaks:\nHorizontal (rows): {rows}\nVertical (columns): {cols}\n\n"
                "Note: Page breaks are set but may require Microsoft Excel for full support."
            )
        return self._save(wb)

    # ── collaboration ────────────────────────────────────────────────

    def enable_track_changes(self, filename: str, enable: bool, highlight_changes: bool = False) -> bytes:
        wb = self._load(filename)
        if wb.worksheets:
            wb.worksheets[0]["A1"].comment = _note(
                f"Track Changes: {'ENABLED' if enable else 'DISABLED'}\n"
                f"Highlight Changes: {'Yes' if highlight_changes else 'No'}\n\n"
                "Note: Track Changes requires Microsoft Excel to function."
            )
        return self._save(wb)

    def share_workbook(self, filename: str, share: bool, allow_changes: bool = False,
                       password: Optional[str] = None) -> bytes:
        wb = self._load(filename)
        if wb.worksheets:
            wb.worksheets[0]["A1"].comment = _note(
                f"Workbook Sharing: {'ENABLED' if share else 'DISABLED'}\n"
                f"Allow Changes: {'Yes' if allow_changes else 'No'}\n"
                f"{'Protected with password' if password else 'No password'}\n\n"
                "Note: Workbook sharing requires Microsoft Excel."
            )
        if password:
            wb.security.workbookPassword = password
            wb.security.lockStructure = True
        return self._save(wb)

    def add_comments(self, filename: str, sheet_name: str, comments: list[dict]) -> bytes:
        wb, ws = self._open(filename, sheet_name)
        for item in comments:
            author = item.get("author")
            text = f"{author}: {item['text']}" if author else item["text"]
            comment = Comment(text, author or CREATOR)
            comment.width = 300
            comment.height = 100
            ws[item["cell"]].comment = comment
        return self._save(wb)
