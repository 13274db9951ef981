'''
Excel tools: 38 handlers over ExcelGenerator.
'''

from ..registry import tool
from ..schema import (FILENAME, OUTPUT_PATH, SHEET_NAME, array, boolean, integer, number, obj,
                      object_schema, string)
from .base import DocumentTools, count, size_kb

import logging
logger = logging.getLogger(__name__)

CELL_POSITION = obj({"row": integer(), "col": integer()}, required=["row", "col"])
COLUMN_REF = {"anyOf": [{"type": "string"}, {"type": "integer"}],
              "description": "1-based column number, column letter or header text"}
COLOR = string("#RRGGBB, RRGGBB or AARRGGBB")

CELL_STYLE = obj({
    "font": obj({"name": string(), "size": number(), "bold": boolean(), "italic": boolean(),
                 "underline": boolean(), "strike": boolean(), "color": COLOR}),
    "fill": obj({"type": string(), "pattern": string(), "fgColor": COLOR}),
    "alignment": obj({"horizontal": string(), "vertical": string(), "wrapText": boolean()}),
    "border": obj({side: obj({"style": string(), "color": COLOR}) for side in ("top", "bottom", "left", "right")}),
    "numFmt": string("Number format, e.g. '#,##0.00'"),
})

SHEET = obj({
    "name": string(),
    "columns": array(obj({"header": string(), "key": string(), "width": number(), "style": CELL_STYLE})),
    "data": array(description="Rows as arrays, or objects keyed by column key"),
    "rows": array(obj({"values": array(), "style": CELL_STYLE})),
})

HEADER_FOOTER_TEXT = obj({"left": string(), "center": string(), "right": string()},
                         description="Sections; Excel codes like &P (page) and &D (date) are allowed")


def _edit_schema(properties: dict, required: list, sheet: bool = True) -> dict:
    base = {"filename": FILENAME}
    if sheet:
        base["sheetName"] = SHEET_NAME
    base.update(properties)
    base["outputPath"] = OUTPUT_PATH
    return object_schema(base, required=["filename"] + (["sheetName"] if sheet else []) + required)


class ExcelTools(DocumentTools):

    # ── core workbook tools ─────────────────────────────────────────

    @tool("create_excel", "📊 Create Excel workbook with sheets, data, formulas, and charts", object_schema({
        "filename": string('Output filename (e.g., "report.xlsx")'),
        "sheets": array(SHEET, "Array of sheet configurations"),
        "outputPath": string("Optional output directory"),
    }, required=["filename", "sheets"]))
    def create_excel(self, args: dict) -> str:
        path = self.created(args, args["filename"])
        _, size = self.save(path, lambda: self.generator.create_workbook(args["sheets"]))
        return (f"✅ **Excel workbook created!**\n\n📊 **File:** {path}\n"
                f"📝 **Sheets:** {len(args['sheets'])}\n💾 **Size:** {size_kb(size)}")

    @tool("excel_add_pivot_table", "📈 Add pivot table with rows, columns, values, and filters", _edit_schema({
        "pivotTable": obj({
            "name": string(), "dataRange": string(), "rows": array(string()),
            "columns": array(string()), "values": array(string()), "filters": array(string()),
        }, required=["name"]),
    }, ["pivotTable"]))
    def excel_add_pivot_table(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_pivot_table(self.source(args), args["sheetName"], args["pivotTable"]))
        return f"✅ **Pivot table added!**\n\n📈 **Name:** {args['pivotTable']['name']}\n📊 **File:** {path}"

    @tool("excel_add_chart", "📉 Add chart (line/bar/pie/scatter/area) with customization", _edit_schema({
        "chart": obj({"type": string(enum=["line", "bar", "pie", "scatter", "area", "column", "doughnut"]),
                      "title": string(), "dataRange": string(), "position": CELL_POSITION}, required=["type"]),
    }, ["chart"]))
    def excel_add_chart(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_chart(self.source(args), args["sheetName"], args["chart"]))
        chart = args["chart"]
        return (f"✅ **Chart added!**\n\n📉 **Type:** {chart['type']}\n📊 **Title:** {chart.get('title', '')}\n"
                f"📁 **File:** {path}")

    @tool("excel_add_formula", "🔢 Add formulas (VLOOKUP, SUMIF, INDEX/MATCH, IF, etc)", _edit_schema({
        "formulas": array(obj({"cell": string(), "formula": string()}, required=["cell", "formula"])),
    }, ["formulas"]))
    def excel_add_formula(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_formulas(self.source(args), args["sheetName"], args["formulas"]))
        return f"✅ **Formulas added!**\n\n🔢 **Count:** {len(args['formulas'])}\n📁 **File:** {path}"

    @tool("excel_conditional_formatting", "🎨 Apply conditional formatting (color scales, data bars, icon sets)",
          _edit_schema({
              "range": string("Cell range, e.g. A2:A100"),
              "rules": array(obj({
                  "type": string(enum=["colorScale", "dataBar", "iconSet", "formulaBased", "cellValue"]),
                  "formula": string(), "priority": integer(), "color": COLOR,
                  "gradient": obj({"start": COLOR, "middle": COLOR, "end": COLOR}),
                  "iconSet": string(enum=["ThreeArrows", "ThreeFlags", "FourRating", "FiveQuarters"]),
                  "operator": string(), "values": array(),
              }, required=["type"])),
          }, ["range", "rules"]))
    def excel_conditional_formatting(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_conditional_formatting(
            self.source(args), args["sheetName"], args["range"], args["rules"]))
        return (f"✅ **Conditional formatting applied!**\n\n🎨 **Range:** {args['range']}\n"
                f"📊 **Rules:** {len(args['rules'])}\n📁 **File:** {path}")

    @tool("excel_data_validation", "✅ Add dropdown lists and validation rules", _edit_schema({
        "range": string(),
        "validation": obj({
            "type": string(enum=["list", "whole", "decimal", "date", "time", "textLength", "custom"]),
            "formula": string(), "values": array(string()), "operator": string(),
            "min": number(), "max": number(), "allowBlank": boolean(),
            "showErrorMessage": boolean(), "errorTitle": string(), "error": string(),
            "showInputMessage": boolean(), "promptTitle": string(), "prompt": string(),
        }, required=["type"]),
    }, ["range", "validation"]))
    def excel_data_validation(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_data_validation(
            self.source(args), args["sheetName"], args["range"], args["validation"]))
        return (f"✅ **Data validation added!**\n\n✅ **Type:** {args['validation']['type']}\n"
                f"📍 **Range:** {args['range']}\n📁 **File:** {path}")

    @tool("excel_freeze_panes", "❄️ Freeze rows/columns for scrolling", _edit_schema({
        "row": integer("Rows to freeze from the top"),
        "column": integer("Columns to freeze from the left"),
    }, []))
    def excel_freeze_panes(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.freeze_panes(
            self.source(args), args["sheetName"], args.get("row"), args.get("column")))
        return (f"✅ **Panes frozen!**\n\n❄️ **Row:** {args.get('row') or 0}\n"
                f"❄️ **Column:** {args.get('column') or 0}\n📁 **File:** {path}")

    @tool("excel_filter_sort", "🔍 Apply AutoFilter and sorting", _edit_schema({
        "range": string("Range whose first row holds the headers"),
        "sortBy": array(obj({"column": COLUMN_REF, "descending": boolean()}, required=["column"])),
        "autoFilter": boolean("Add an AutoFilter (default true)"),
    }, []))
    def excel_filter_sort(self, args: dict) -> str:
        path = self.target(args)
        auto_filter = args.get("autoFilter", True)
        self.save(path, lambda: self.generator.filter_sort(
            self.source(args), args["sheetName"], args.get("range"), args.get("sortBy"), auto_filter))
        text = f"✅ **Filter/Sort applied!**\n\n🔍 **AutoFilter:** {'Yes' if auto_filter else 'No'}\n"
        if args.get("sortBy"):
            text += f"🔀 **Sort keys:** {len(args['sortBy'])}\n"
        return text + f"📁 **File:** {path}"

    @tool("excel_format_cells", "✨ Format cells (fonts, colors, borders, alignment, number formats)", _edit_schema({
        "range": string(),
        "style": CELL_STYLE,
    }, ["range", "style"]))
    def excel_format_cells(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.format_cells(
            self.source(args), args["sheetName"], args["range"], args["style"]))
        return f"✅ **Cells formatted!**\n\n✨ **Range:** {args['range']}\n📁 **File:** {path}"

    @tool("excel_named_range", "🏷️ Create and manage named ranges", object_schema({
        "filename": FILENAME,
        "name": string(),
        "range": string(),
        "sheetName": SHEET_NAME,
        "outputPath": OUTPUT_PATH,
    }, required=["filename", "name", "range"]))
    def excel_named_range(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_named_range(
            self.source(args), args["name"], args["range"], args.get("sheetName")))
        return (f"✅ **Named range created!**\n\n🏷️ **Name:** {args['name']}\n"
                f"📍 **Range:** {args['range']}\n📁 **File:** {path}")

    @tool("excel_protect_sheet", "🔒 Protect worksheets with passwords", _edit_schema({
        "password": string(),
        "options": obj({name: boolean() for name in (
            "selectLockedCells", "selectUnlockedCells", "formatCells", "formatColumns", "formatRows",
            "insertColumns", "insertRows", "insertHyperlinks", "deleteColumns", "deleteRows",
            "sort", "autoFilter", "pivotTables")}, description="Actions users may still perform"),
    }, []))
    def excel_protect_sheet(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.protect_sheet(
            self.source(args), args["sheetName"], args.get("password"), args.get("options")))
        password = "🔑 **Password:** Set" if args.get("password") else "🔓 **Password:** None"
        return f"✅ **Sheet protected!**\n\n🔒 **Sheet:** {args['sheetName']}\n{password}\n📁 **File:** {path}"

    @tool("excel_merge_workbooks", "🔗 Merge multiple Excel files", object_schema({
        "files": array(string(), "Workbooks to merge, in order"),
        "outputFilename": string(),
        "outputPath": string("Optional output directory"),
    }, required=["files", "outputFilename"]))
    def excel_merge_workbooks(self, args: dict) -> str:
        path = self.created(args, args["outputFilename"])
        files = [self.paths.source(f) for f in args["files"]]
        (_, merged), _ = self.save(path, lambda: self.generator.merge_workbooks(files))
        return (f"✅ **Workbooks merged!**\n\n🔗 **Source files:** {len(args['files'])}\n"
                f"✔️ **Merged:** {merged}\n📁 **Output:** {path}")

    @tool("excel_find_replace", "🔎 Find and replace values/formulas", object_schema({
        "filename": FILENAME,
        "sheetName": string("Limit to one sheet (default: all sheets)"),
        "find": string(),
        "replace": string(),
        "matchCase": boolean(),
        "matchEntireCell": boolean(),
        "searchFormulas": boolean(),
        "outputPath": OUTPUT_PATH,
    }, required=["filename", "find", "replace"]))
    def excel_find_replace(self, args: dict) -> str:
        path = self.target(args)
        (_, changed), _ = self.save(path, lambda: self.generator.find_replace(
            self.source(args), args["find"], args["replace"], args.get("sheetName"),
            bool(args.get("matchCase")), bool(args.get("matchEntireCell")), bool(args.get("searchFormulas"))))
        return (f"✅ **Find & Replace complete!**\n\n🔎 **Find:** \"{args['find']}\"\n"
                f"🔄 **Replace:** \"{args['replace']}\"\n🔢 **Cells changed:** {changed}\n📁 **File:** {path}")

    @tool("excel_to_json", "📋 Export Excel to JSON format", object_schema({
        "excelPath": string(),
        "sheetName": string("Sheet to export (default: first sheet)"),
        "outputPath": string("Output file path (default: excelPath with .json)"),
        "header": boolean("Use the first row as object keys (default true)"),
    }, required=["excelPath"]))
    def excel_to_json(self, args: dict) -> str:
        path = self.converted(args, "excelPath", r"\.xlsx?", ".json")
        _, size = self.save(path, lambda: self.generator.convert_to_json(
            self.source(args, "excelPath"), args.get("sheetName"), args.get("header", True)))
        return (f"✅ **Converted to JSON!**\n\n📊 **Source:** {args['excelPath']}\n📋 **Output:** {path}\n"
                f"💾 **Size:** {size_kb(size)}")

    @tool("excel_to_csv", "📄 Convert Excel to CSV format", object_schema({
        "excelPath": string(),
        "sheetName": string("Sheet to export (default: first sheet)"),
        "outputPath": string("Output file path (default: excelPath with .csv)"),
    }, required=["excelPath"]))
    def excel_to_csv(self, args: dict) -> str:
        path = self.converted(args, "excelPath", r"\.xlsx?", ".csv")
        _, size = self.save(path, lambda: self.generator.convert_to_csv(
            self.source(args, "excelPath"), args.get("sheetName")))
        return (f"✅ **Converted to CSV!**\n\n📊 **Source:** {args['excelPath']}\n📝 **Output:** {path}\n"
                f"💾 **Size:** {size_kb(size)}")

    # ── formulas and analysis ───────────────────────────────────────

    @tool("excel_add_sparklines", "📈 Add sparklines (mini charts in cells)", _edit_schema({
        "dataRange": string(),
        "location": string("Cell that shows the sparkline"),
        "type": string(enum=["line", "column", "winLoss"]),
        "options": obj({"showMarkers": boolean(), "showHighPoint": boolean(), "showLowPoint": boolean(),
                        "showFirstPoint": boolean(), "showLastPoint": boolean(), "showNegativePoints": boolean(),
                        "color": COLOR}),
    }, ["dataRange", "location", "type"]))
    def excel_add_sparklines(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_sparklines(
            self.source(args), args["sheetName"], args["dataRange"], args["location"], args["type"],
            args.get("options")))
        return (f"✅ **Sparklines added!**\n\n📈 **Type:** {args['type']}\n📍 **Location:** {args['location']}\n"
                f"📊 **Data:** {args['dataRange']}\n📁 **File:** {path}")

    @tool("excel_array_formulas", "🔢 Add dynamic array formulas (FILTER, SORT, UNIQUE, SEQUENCE)", _edit_schema({
        "formulas": array({**obj({"cell": string(), "range": string("Spill range, e.g. D2:D20"),
                                  "formula": string()}, required=["formula"]),
                           "anyOf": [{"required": ["cell"]}, {"required": ["range"]}]}),
    }, ["formulas"]))
    def excel_array_formulas(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_array_formulas(self.source(args), args["sheetName"], args["formulas"]))
        return f"✅ **Array formulas added!**\n\n🔢 **Count:** {len(args['formulas'])}\n📁 **File:** {path}"

    @tool("excel_add_subtotals", "📊 Add subtotals with grouping", _edit_schema({
        "range": string("Data range without the header row"),
        "groupBy": integer("1-based column to group by"),
        "summaryFunction": string(enum=["SUM", "COUNT", "AVERAGE", "MAX", "MIN"]),
        "summaryColumns": array(integer(), "1-based columns to summarize"),
        "replaceExisting": boolean(),
        "pageBreakBetweenGroups": boolean(),
        "summaryBelowData": boolean("Total rows below each group (default true)"),
    }, ["range", "groupBy", "summaryFunction", "summaryColumns"]))
    def excel_add_subtotals(self, args: dict) -> str:
        path = self.target(args)
        (_, groups), _ = self.save(path, lambda: self.generator.add_subtotals(
            self.source(args), args["sheetName"], args["range"], args["groupBy"], args["summaryFunction"],
            args["summaryColumns"], bool(args.get("pageBreakBetweenGroups")), args.get("summaryBelowData", True)))
        return (f"✅ **Subtotals added!**\n\n📊 **Function:** {args['summaryFunction'].upper()}\n"
                f"🗂️ **Groups:** {groups}\n📁 **File:** {path}")

    @tool("excel_add_hyperlinks", "🔗 Add hyperlinks to cells (URLs or sheet locations)", _edit_schema({
        "links": array(obj({"cell": string(), "url": string(), "sheet": string(), "range": string(),
                            "tooltip": string(), "displayText": string()}, required=["cell"])),
    }, ["links"]))
    def excel_add_hyperlinks(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_hyperlinks(self.source(args), args["sheetName"], args["links"]))
        return f"✅ **Hyperlinks added!**\n\n🔗 **Count:** {len(args['links'])}\n📁 **File:** {path}"

    @tool("excel_advanced_chart", "📊 Add advanced chart (waterfall, funnel, treemap, sunburst, histogram...)",
          _edit_schema({
              "chart": obj({
                  "type": string(enum=["waterfall", "funnel", "treemap", "sunburst", "histogram",
                                       "boxWhisker", "pareto"]),
                  "title": string(), "dataRange": string(), "categories": string(), "values": string(),
                  "position": CELL_POSITION,
              }, required=["type"]),
          }, ["chart"]))
    def excel_advanced_chart(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_advanced_chart(self.source(args), args["sheetName"], args["chart"]))
        chart = args["chart"]
        return (f"✅ **Advanced chart added!**\n\n📊 **Type:** {chart['type']}\n"
                f"📝 **Title:** {chart.get('title', '')}\n📁 **File:** {path}")

    @tool("excel_add_slicers", "🎛️ Add slicers for tables and pivot tables", _edit_schema({
        "tableName": string(),
        "slicers": array(obj({"columnName": string(), "caption": string(), "position": CELL_POSITION,
                              "style": string()}, required=["columnName"])),
    }, ["tableName", "slicers"]))
    def excel_add_slicers(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_slicers(
            self.source(args), args["sheetName"], args["tableName"], args["slicers"]))
        return (f"✅ **Slicers added!**\n\n🎛️ **Table:** {args['tableName']}\n"
                f"🔢 **Count:** {len(args['slicers'])}\n📁 **File:** {path}")

    @tool("excel_power_query", "🔄 Document a Power Query (source and transformation steps)", object_schema({
        "filename": FILENAME,
        "query": obj({
            "name": string(), "sheetName": string(),
            "source": obj({"type": string(enum=["csv", "json", "web", "database", "excel"]), "location": string()}),
            "transformations": array(obj({"step": string(), "column": string()})),
        }, required=["name"]),
        "outputPath": OUTPUT_PATH,
    }, required=["filename", "query"]))
    def excel_power_query(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_power_query(self.source(args), args["query"]))
        query = args["query"]
        return (f"✅ **Power Query added!**\n\n🔄 **Query:** {query['name']}\n"
                f"🧩 **Steps:** {count(query.get('transformations'))}\n📁 **File:** {path}")

    @tool("excel_goal_seek", "🎯 Configure Goal Seek", _edit_schema({
        "setCell": string(),
        "toValue": number(),
        "byChangingCell": string(),
    }, ["setCell", "toValue", "byChangingCell"]))
    def excel_goal_seek(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.goal_seek(
            self.source(args), args["sheetName"], args["setCell"], args["toValue"], args["byChangingCell"]))
        return (f"✅ **Goal Seek configured!**\n\n🎯 **Set:** {args['setCell']} = {args['toValue']}\n"
                f"🔧 **By changing:** {args['byChangingCell']}\n📁 **File:** {path}")

    @tool("excel_data_table", "📋 Create one- or two-variable data table (what-if analysis)", _edit_schema({
        "range": string("Output range of the data table"),
        "formula": string("Cell holding the formula"),
        "type": string(enum=["oneVariable", "twoVariable"]),
        "rowInputCell": string(),
        "columnInputCell": string(),
    }, ["range", "formula"]))
    def excel_data_table(self, args: dict) -> str:
        path = self.target(args)
        table_type = args.get("type") or ("twoVariable" if args.get("rowInputCell") and args.get("columnInputCell")
                                          else "oneVariable")
        self.save(path, lambda: self.generator.create_data_table(
            self.source(args), args["sheetName"], table_type, args["formula"],
            args.get("rowInputCell"), args.get("columnInputCell"), args["range"]))
        return (f"✅ **Data table created!**\n\n📋 **Type:** {table_type}\n📍 **Range:** {args['range']}\n"
                f"📁 **File:** {path}")

    @tool("excel_scenarios", "🎬 Manage what-if scenarios with a summary sheet", _edit_schema({
        "scenarios": array(obj({"name": string(), "changingCells": array(string()), "values": array(),
                                "comment": string()}, required=["name"])),
        "resultCells": array(string()),
    }, ["scenarios"]))
    def excel_scenarios(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.manage_scenarios(
            self.source(args), args["sheetName"], args["scenarios"], args.get("resultCells")))
        return f"✅ **Scenarios created!**\n\n🎬 **Count:** {len(args['scenarios'])}\n📁 **File:** {path}"

    # ── tables ──────────────────────────────────────────────────────

    @tool("excel_create_table", "📑 Create formatted Excel table", _edit_schema({
        "table": obj({"name": string(), "range": string(), "hasHeaders": boolean(),
                      "style": string("e.g. TableStyleMedium2"), "showTotalRow": boolean()},
                     required=["name", "range"]),
    }, ["table"]))
    def excel_create_table(self, args: dict) -> str:
        path = self.target(args)
        table = args["table"]
        self.save(path, lambda: self.generator.create_table(
            self.source(args), args["sheetName"], table["name"], table["range"], table.get("hasHeaders", True),
            table.get("style"), bool(table.get("showTotalRow"))))
        return (f"✅ **Table created!**\n\n📑 **Name:** {table['name']}\n📍 **Range:** {table['range']}\n"
                f"📁 **File:** {path}")

    @tool("excel_table_formula", "🧮 Add calculated column formula with structured references", _edit_schema({
        "tableName": string(),
        "columnName": string(),
        "formula": string("e.g. =[@Price]*[@Quantity]"),
    }, ["tableName", "columnName", "formula"]))
    def excel_table_formula(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_table_formula(
            self.source(args), args["sheetName"], args["tableName"], args["columnName"], args["formula"]))
        return (f"✅ **Table formula added!**\n\n🧮 **Column:** {args['tableName']}[{args['columnName']}]\n"
                f"🔢 **Formula:** {args['formula']}\n📁 **File:** {path}")

    # ── visual elements ─────────────────────────────────────────────

    @tool("excel_form_controls", "🎚️ Add form controls (buttons, checkboxes, dropdowns...)", _edit_schema({
        "controls": array(obj({
            "type": string(enum=["button", "checkbox", "radio", "dropdown", "listbox", "scrollbar", "spinner"]),
            "name": string(), "position": CELL_POSITION, "linkedCell": string(), "inputRange": string(),
            "min": number(), "max": number(),
        }, required=["type", "name", "position"])),
    }, ["controls"]))
    def excel_form_controls(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_form_controls(self.source(args), args["sheetName"], args["controls"]))
        return f"✅ **Form controls added!**\n\n🎚️ **Count:** {len(args['controls'])}\n📁 **File:** {path}"

    @tool("excel_insert_images", "🖼️ Insert images (file path or URL) into cells", _edit_schema({
        "images": array(obj({"path": string("File path or http(s) URL"), "position": CELL_POSITION,
                             "size": obj({"width": number(), "height": number()}),
                             "description": string()}, required=["path", "position"])),
    }, ["images"]))
    def excel_insert_images(self, args: dict) -> str:
        path = self.target(args)
        images = [dict(image, path=self.media(image["path"])) for image in args["images"]]
        (_, inserted), _ = self.save(path, lambda: self.generator.insert_images(
            self.source(args), args["sheetName"], images))
        return (f"✅ **Images inserted!**\n\n🖼️ **Inserted:** {inserted} of {len(args['images'])}\n"
                f"📁 **File:** {path}")

    @tool("excel_insert_shapes", "🔷 Insert shapes (rectangles, circles, arrows...)", _edit_schema({
        "shapes": array(obj({"type": string(), "position": CELL_POSITION,
                             "size": obj({"width": number(), "height": number()}),
                             "fill": obj({"color": COLOR}), "text": string()}, required=["type", "position"])),
    }, ["shapes"]))
    def excel_insert_shapes(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.insert_shapes(self.source(args), args["sheetName"], args["shapes"]))
        return f"✅ **Shapes inserted!**\n\n🔷 **Count:** {len(args['shapes'])}\n📁 **File:** {path}"

    @tool("excel_smartart", "🧩 Add SmartArt diagram", _edit_schema({
        "smartArt": obj({"type": string(enum=["process", "hierarchy", "cycle", "relationship", "matrix",
                                              "pyramid", "list"]),
                         "layout": string(), "items": array(obj({"text": string(), "level": integer()})),
                         "position": CELL_POSITION}, required=["type"]),
    }, ["smartArt"]))
    def excel_smartart(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_smartart(self.source(args), args["sheetName"], args["smartArt"]))
        smart_art = args["smartArt"]
        return (f"✅ **SmartArt added!**\n\n🧩 **Type:** {smart_art['type']}\n"
                f"📝 **Items:** {count(smart_art.get('items'))}\n📁 **File:** {path}")

    # ── printing ────────────────────────────────────────────────────

    @tool("excel_page_setup", "🖨️ Configure page setup (orientation, margins, print area)", _edit_schema({
        "pageSetup": obj({
            "orientation": string(enum=["portrait", "landscape"]),
            "paperSize": string(enum=["letter", "legal", "A4", "A3", "tabloid"]),
            "fitToPage": {"anyOf": [{"type": "boolean"},
                                    obj({"width": integer(), "height": integer()})]},
            "scale": integer(),
            "margins": obj({k: number() for k in ("top", "bottom", "left", "right", "header", "footer")}),
            "centerHorizontally": boolean(), "centerVertically": boolean(),
            "printArea": string(),
            "printTitles": obj({"rows": string("e.g. 1:1"), "columns": string("e.g. A:A")}),
        }),
    }, ["pageSetup"]))
    def excel_page_setup(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.configure_page_setup(
            self.source(args), args["sheetName"], args["pageSetup"]))
        setup = args["pageSetup"]
        return (f"✅ **Page setup configured!**\n\n🖨️ **Orientation:** {setup.get('orientation') or 'portrait'}\n"
                f"📄 **Paper:** {setup.get('paperSize') or 'A4'}\n📁 **File:** {path}")

    @tool("excel_header_footer", "📄 Set print headers and footers", _edit_schema({
        "headerFooter": obj({"header": HEADER_FOOTER_TEXT, "footer": HEADER_FOOTER_TEXT,
                             "differentFirstPage": boolean(), "differentOddEven": boolean()}),
    }, ["headerFooter"]))
    def excel_header_footer(self, args: dict) -> str:
        path = self.target(args)
        spec = args["headerFooter"]
        self.save(path, lambda: self.generator.set_header_footer(
            self.source(args), args["sheetName"], spec.get("header"), spec.get("footer"),
            bool(spec.get("differentFirstPage")), bool(spec.get("differentOddEven"))))
        return (f"✅ **Header/footer set!**\n\n📄 **Header:** {'Yes' if spec.get('header') else 'No'}\n"
                f"📄 **Footer:** {'Yes' if spec.get('footer') else 'No'}\n📁 **File:** {path}")

    @tool("excel_page_breaks", "📃 Insert manual page breaks", _edit_schema({
        "breaks": obj({"horizontal": array(integer(), "Row numbers"),
                       "vertical": array(integer(), "Column numbers")}),
    }, ["breaks"]))
    def excel_page_breaks(self, args: dict) -> str:
        path = self.target(args)
        breaks = args["breaks"]
        self.save(path, lambda: self.generator.add_page_breaks(
            self.source(args), args["sheetName"], breaks.get("horizontal"), breaks.get("vertical")))
        return (f"✅ **Page breaks added!**\n\n➖ **Horizontal:** {count(breaks.get('horizontal'))}\n"
                f"➗ **Vertical:** {count(breaks.get('vertical'))}\n📁 **File:** {path}")

    # ── collaboration ───────────────────────────────────────────────

    @tool("excel_track_changes", "📝 Enable or disable track changes", _edit_schema({
        "enable": boolean(),
        "highlightChanges": boolean(),
    }, ["enable"], sheet=False))
    def excel_track_changes(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.enable_track_changes(
            self.source(args), args["enable"], bool(args.get("highlightChanges"))))
        return (f"✅ **Track changes {'enabled' if args['enable'] else 'disabled'}!**\n\n"
                f"🖍️ **Highlight:** {'Yes' if args.get('highlightChanges') else 'No'}\n📁 **File:** {path}")

    @tool("excel_share_workbook", "👥 Share workbook for collaboration", _edit_schema({
        "enable": boolean(),
        "allowChanges": boolean(),
        "password": string(),
    }, ["enable"], sheet=False))
    def excel_share_workbook(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.share_workbook(
            self.source(args), args["enable"], bool(args.get("allowChanges")), args.get("password")))
        return (f"✅ **Workbook sharing {'enabled' if args['enable'] else 'disabled'}!**\n\n"
                f"✏️ **Allow changes:** {'Yes' if args.get('allowChanges') else 'No'}\n📁 **File:** {path}")

    @tool("excel_add_comments", "💬 Add cell comments", _edit_schema({
        "comments": array(obj({"cell": string(), "text": string(), "author": string()},
                              required=["cell", "text"])),
    }, ["comments"]))
    def excel_add_comments(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_comments(self.source(args), args["sheetName"], args["comments"]))
        return f"✅ **Comments added!**\n\n💬 **Count:** {len(args['comments'])}\n📁 **File:** {path}"

    @tool("excel_add_rows", "➕ Append rows to an existing worksheet", object_schema({
        "filename": FILENAME,
        "rows": array(array(), "Rows of cell values"),
        "sheetName": string("Target sheet (default: active sheet)"),
        "autoWidth": boolean("Fit column widths to content (default true)"),
        "outputPath": OUTPUT_PATH,
    }, required=["filename", "rows"]))
    def excel_add_rows(self, args: dict) -> str:
        path = self.target(args)
        (_, sheet, total), _ = self.save(path, lambda: self.generator.add_rows(
            self.source(args), args["rows"], args.get("sheetName"), args.get("autoWidth", True)))
        return (f"✅ **Rows added!**\n\n📊 **Sheet:** {sheet}\n➕ **Added:** {len(args['rows'])}\n"
                f"📈 **Total rows:** {total}\n📁 **File:** {path}")
