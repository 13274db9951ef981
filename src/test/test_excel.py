"""Tests for the Excel generator and tool handlers."""

import io
import json

import pytest
from openpyxl import load_workbook

from office_whisperer.errors import SheetNotFoundError, TableNotFoundError
from office_whisperer.generators import ExcelGenerator
from office_whisperer.generators.excel import normalize_color


def reload(data):
    return load_workbook(io.BytesIO(data))


@pytest.fixture
def generator():
    return ExcelGenerator()


# ── workbook creation ──────────────────────────────────────────────────────


class TestCreateWorkbook:

    def test_headers_then_data(self, generator):
        wb = reload(generator.create_workbook([{
            "name": "Budget",
            "columns": [{"header": "Item", "key": "item"}, {"header": "Cost", "key": "cost", "width": 20}],
            "data": [{"item": "Rent", "cost": 1200}, ["Food", 300]],
        }]))
        ws = wb["Budget"]
        assert [c.value for c in ws[1]] == ["Item", "Cost"]
        assert [c.value for c in ws[2]] == ["Rent", 1200]
        assert [c.value for c in ws[3]] == ["Food", 300]
        assert ws["A1"].font.bold
        assert ws.auto_filter.ref == "A1:B1"
        assert ws.column_dimensions["B"].width == 20

    def test_sheets_in_order(self, generator):
        wb = reload(generator.create_workbook([{"name": "One"}, {"name": "Two"}]))
        assert wb.sheetnames == ["One", "Two"]

    def test_no_sheets_still_valid(self, generator):
        assert reload(generator.create_workbook([])).sheetnames == ["Sheet1"]

    def test_row_styles(self, generator):
        wb = reload(generator.create_workbook([{
            "name": "Styled",
            "rows": [{"values": ["Total", 10], "style": {"font": {"bold": True, "color": "#FF0000"}}}],
        }]))
        cell = wb["Styled"]["A1"]
        assert cell.value == "Total"
        assert cell.font.bold
        assert cell.font.color.rgb == "FFFF0000"


class TestNormalizeColor:

    @pytest.mark.parametrize("color,expected", [
        ("#ff0000", "FFFF0000"),
        ("00ff00", "FF00FF00"),
        ("800000ff", "800000FF"),
    ])
    def test_argb(self, color, expected):
        assert normalize_color(color) == expected


# ── editing ────────────────────────────────────────────────────────────────


class TestEditing:

    def test_add_rows_appends_after_last_row(self, generator, sample_workbook):
        data, sheet, total = generator.add_rows(sample_workbook, [["East", "Widget", 40]], "Sales")
        assert (sheet, total) == ("Sales", 5)
        assert reload(data)["Sales"]["A5"].value == "East"

    def test_unknown_sheet(self, generator, sample_workbook):
        with pytest.raises(SheetNotFoundError, match='Sheet "Nope" not found'):
            generator.freeze_panes(sample_workbook, "Nope", row=1)

    def test_freeze_panes(self, generator, sample_workbook):
        ws = reload(generator.freeze_panes(sample_workbook, "Sales", row=1, column=1))["Sales"]
        assert ws.freeze_panes == "B2"

    def test_sort_by_header_text(self, generator, sample_workbook):
        data = generator.filter_sort(sample_workbook, "Sales", sort_by=[{"column": "Amount", "descending": True}])
        ws = reload(data)["Sales"]
        assert [ws.cell(row=r, column=3).value for r in range(2, 5)] == [250, 100, 75]
        assert ws["A1"].value == "Region"
        assert ws.auto_filter.ref == "A1:C1"

    def test_formulas_get_equals_sign(self, generator, sample_workbook):
        ws = reload(generator.add_formulas(sample_workbook, "Sales", [{"cell": "C5", "formula": "SUM(C2:C4)"}]))["Sales"]
        assert ws["C5"].value == "=SUM(C2:C4)"

    def test_named_range(self, generator, sample_workbook):
        wb = reload(generator.add_named_range(sample_workbook, "Amounts", "C2:C4", "Sales"))
        assert "Amounts" in wb.defined_names
        assert "$C$2:$C$4" in wb.defined_names["Amounts"].attr_text

    def test_protect_sheet(self, generator, sample_workbook):
        ws = reload(generator.protect_sheet(sample_workbook, "Sales", "secret", {"sort": True}))["Sales"]
        assert ws.protection.sheet
        assert ws.protection.sort is False


class TestFindReplace:

    def test_case_insensitive_by_default(self, generator, sample_workbook):
        data, changed = generator.find_replace(sample_workbook, "gadget", "Gizmo")
        assert changed == 2
        ws = reload(data)["Sales"]
        assert ws["B3"].value == "Gizmo"

    def test_match_case(self, generator, sample_workbook):
        _, changed = generator.find_replace(sample_workbook, "gadget", "Gizmo", match_case=True)
        assert changed == 0

    def test_entire_cell(self, generator, sample_workbook):
        _, changed = generator.find_replace(sample_workbook, "North", "N", match_entire_cell=True)
        assert changed == 2

    def test_numbers_untouched(self, generator, sample_workbook):
        data, _ = generator.find_replace(sample_workbook, "100", "x")
        assert reload(data)["Sales"]["C2"].value == 100


class TestTables:

    def test_create_table(self, generator, sample_workbook):
        ws = reload(generator.create_table(sample_workbook, "Sales", "SalesTable", "A1:C4"))["Sales"]
        table = ws.tables["SalesTable"]
        assert table.ref == "A1:C4"
        assert [c.name for c in table.tableColumns] == ["Region", "Product", "Amount"]

    def test_total_row_extends_range(self, generator, sample_workbook):
        ws = reload(generator.create_table(sample_workbook, "Sales", "T", "A1:C4", show_total_row=True))["Sales"]
        assert ws.tables["T"].ref == "A1:C5"
        assert ws["A5"].value == "Total"

    def test_table_formula_structured_reference(self, generator, sample_workbook, tmp_path):
        path = tmp_path / "table.xlsx"
        path.write_bytes(generator.create_table(sample_workbook, "Sales", "SalesTable", "A1:C4"))
        ws = reload(generator.add_table_formula(str(path), "Sales", "SalesTable", "Amount", "=[@Amount]*2"))["Sales"]
        assert ws["C2"].value == "=SalesTable[[#This Row],[Amount]]*2"
        assert ws["C4"].value == ws["C2"].value

    def test_missing_table(self, generator, sample_workbook):
        with pytest.raises(TableNotFoundError, match='Table "Ghost" not found'):
            generator.add_table_formula(sample_workbook, "Sales", "Ghost", "Amount", "=1")


class TestMerge:

    def test_merges_readable_files(self, generator, sample_workbook, tmp_path):
        bad = tmp_path / "bad.xlsx"
        bad.write_bytes(b"not a workbook")
        data, merged = generator.merge_workbooks([sample_workbook, str(bad), sample_workbook])
        assert merged == 2
        wb = reload(data)
        assert wb.sheetnames == ["Sales", "Sales (2)"]
        assert wb["Sales (2)"]["C3"].value == 250


# ── export ─────────────────────────────────────────────────────────────────


class TestExport:

    def test_json_keyed_by_header(self, generator, sample_workbook):
        rows = json.loads(generator.convert_to_json(sample_workbook))
        assert rows[0] == {"Region": "North", "Product": "Widget", "Amount": 100}
        assert len(rows) == 3

    def test_json_without_header(self, generator, sample_workbook):
        rows = json.loads(generator.convert_to_json(sample_workbook, header=False))
        assert rows[0] == ["Region", "Product", "Amount"]

    def test_csv(self, generator, sample_workbook):
        lines = generator.convert_to_csv(sample_workbook).splitlines()
        assert lines[0] == "Region,Product,Amount"
        assert lines[2] == "South,Gadget,250"

    def test_csv_quoting(self, generator, tmp_path):
        path = tmp_path / "quotes.xlsx"
        path.write_bytes(generator.create_workbook([{"name": "Q", "data": [['Smith, John', 'say "hi"']]}]))
        assert generator.convert_to_csv(str(path)) == '"Smith, John","say ""hi"""\n'


# ── tool handlers ──────────────────────────────────────────────────────────


class TestExcelTools:

    def test_create_excel(self, call_tool, tmp_path):
        text = call_tool("create_excel", filename="new.xlsx", outputPath=str(tmp_path),
                         sheets=[{"name": "Data", "data": [[1, 2]]}])
        assert "📊 **File:** " + str(tmp_path / "new.xlsx") in text
        assert "📝 **Sheets:** 1" in text
        assert load_workbook(tmp_path / "new.xlsx")["Data"]["B1"].value == 2

    def test_edit_in_place(self, call_tool, sample_workbook):
        call_tool("excel_add_rows", filename=sample_workbook, rows=[["West", "Widget", 10]], sheetName="Sales")
        assert load_workbook(sample_workbook)["Sales"]["A5"].value == "West"

    def test_edit_to_output_directory(self, call_tool, sample_workbook, tmp_path):
        out = tmp_path / "out"
        call_tool("excel_freeze_panes", filename=sample_workbook, sheetName="Sales", row=1, outputPath=str(out))
        assert load_workbook(out / "sales.xlsx")["Sales"].freeze_panes == "A2"
        assert load_workbook(sample_workbook)["Sales"].freeze_panes is None

    def test_find_replace_reports_count(self, call_tool, sample_workbook):
        text = call_tool("excel_find_replace", filename=sample_workbook, find="North", replace="N")
        assert "🔢 **Cells changed:** 2" in text

    def test_to_json_default_path(self, call_tool, sample_workbook, tmp_path):
        text = call_tool("excel_to_json", excelPath=sample_workbook)
        target = tmp_path / "sales.json"
        assert str(target) in text
        assert json.loads(target.read_text())[1]["Region"] == "South"

    def test_to_csv_explicit_path(self, call_tool, sample_workbook, tmp_path):
        target = tmp_path / "export" / "sales.csv"
        call_tool("excel_to_csv", excelPath=sample_workbook, outputPath=str(target))
        assert target.read_text().startswith("Region,Product,Amount\n")

    def test_merge_reports_counts(self, call_tool, sample_workbook, tmp_path):
        text = call_tool("excel_merge_workbooks", files=[sample_workbook, str(tmp_path / "missing.xlsx")],
                         outputFilename="merged.xlsx", outputPath=str(tmp_path))
        assert "🔗 **Source files:** 2" in text
        assert "✔️ **Merged:** 1" in text
        assert (tmp_path / "merged.xlsx").exists()

    def test_sheet_not_found_raises(self, call_tool, sample_workbook):
        with pytest.raises(SheetNotFoundError):
            call_tool("excel_format_cells", filename=sample_workbook, sheetName="Other",
                      range="A1", style={"font": {"bold": True}})
