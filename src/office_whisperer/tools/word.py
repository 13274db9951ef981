'''
Word tools: 37 handlers over WordGenerator.
'''

import os

from ..generators.word import AUTHOR
from ..registry import tool
from ..schema import FILENAME, OUTPUT_PATH, array, boolean, integer, number, obj, object_schema, string
from .base import DocumentTools, count, size_kb

import logging
logger = logging.getLogger(__name__)

RUN = obj({"text": string(), "bold": boolean(), "italics": boolean(), "underline": boolean(),
           "size": number("Half-points"), "color": string(), "font": string()})

ELEMENT = obj({
    "type": string(enum=["paragraph", "table", "image", "pageBreak", "toc"]),
    "text": string(),
    "children": array(RUN, "Text runs"),
    "heading": string(enum=["Heading1", "Heading2", "Heading3", "Heading4", "Heading5", "Heading6"]),
    "alignment": string(enum=["left", "center", "right", "justified"]),
    "bullet": obj({"level": integer()}),
    "spacing": obj({"before": integer(), "after": integer(), "line": integer()}),
    "rows": array(description="Table rows: arrays of cell text or {cells:[{text, shading}]}"),
    "path": string("Image file or URL"),
    "transformation": obj({"width": number(), "height": number()}),
    "title": string(),
}, required=["type"])

HEADER_FOOTER = obj({"type": string(enum=["default", "first", "even"]), "children": array(ELEMENT)})

SECTION = obj({
    "properties": obj({"page": obj({"size": obj({"width": integer(), "height": integer()}),
                                    "margin": obj({k: integer() for k in ("top", "right", "bottom", "left")})},
                                   description="Sizes in twips")}),
    "headers": array(HEADER_FOOTER),
    "footers": array(HEADER_FOOTER),
    "children": array(ELEMENT),
})

STYLES = obj({
    "default": obj({"document": obj({"run": obj({"font": string(), "size": number("Half-points")}),
                                     "paragraph": obj({"spacing": obj({"line": integer()})})})}),
    "paragraphStyles": array(obj({
        "id": string(), "name": string(), "basedOn": string(), "next": string(),
        "run": obj({"font": string(), "size": number(), "bold": boolean(), "italics": boolean(),
                    "color": string()}),
        "paragraph": obj({"spacing": obj({"before": integer(), "after": integer(), "line": integer()}),
                          "alignment": string()}),
    })),
})

ITEMS = array(obj({"text": string(), "level": integer()}, required=["text"]))


def _edit_schema(properties: dict, required: list) -> dict:
    return object_schema({"filename": FILENAME, **properties, "outputPath": OUTPUT_PATH},
                         required=["filename"] + required)


class WordTools(DocumentTools):

    # ── core document tools ─────────────────────────────────────────

    @tool("create_word", "📝 Create Word document with paragraphs, tables, images, and formatting", object_schema({
        "filename": string('Output filename (e.g., "report.docx")'),
        "title": string(),
        "sections": array(SECTION),
        "styles": STYLES,
        "outputPath": string("Optional output directory"),
    }, required=["filename", "sections"]))
    def create_word(self, args: dict) -> str:
        path = self.created(args, args["filename"])
        _, size = self.save(path, lambda: self.generator.create_document(
            args["sections"], args.get("title"), args.get("styles")))
        return (f"✅ **Word document created!**\n\n📄 **File:** {path}\n"
                f"📑 **Sections:** {len(args['sections'])}\n💾 **Size:** {size_kb(size)}")

    @tool("word_add_toc", "📑 Add table of contents", _edit_schema({
        "title": string(),
        "hyperlinks": boolean(),
        "levels": integer("Heading levels to include (default 3)"),
    }, []))
    def word_add_toc(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_table_of_contents(
            self.source(args), args.get("title"), args.get("hyperlinks", True), args.get("levels") or 3))
        return f"✅ **Table of Contents added!**\n\n📑 **Title:** {args.get('title') or 'Table of Contents'}\n📁 **File:** {path}"

    @tool("word_mail_merge", "✉️ Mail merge with data source", object_schema({
        "templatePath": string("Template with {{field}} placeholders"),
        "dataSource": array(obj(), "One record per output document"),
        "outputPath": string("Optional output directory"),
        "outputFilename": string("Base name; documents are <base>_<n>.docx"),
    }, required=["templatePath", "dataSource"]))
    def word_mail_merge(self, args: dict) -> str:
        documents = self.generator.mail_merge(self.source(args, "templatePath"), args["dataSource"])
        base = args.get("outputFilename") or "merged"
        for index, data in enumerate(documents, 1):
            self.write_text(self.created(args, f"{base}_{index}.docx"), data)
        directory = self.paths.in_directory("", args.get("outputPath"))
        return f"✅ **Mail merge complete!**\n\n✉️ **Documents created:** {len(documents)}\n📁 **Output:** {directory}"

    @tool("word_find_replace", "🔍 Find and replace text with formatting", _edit_schema({
        "find": string(),
        "replace": string(),
        "matchCase": boolean(),
        "matchWholeWord": boolean(),
        "formatting": obj({"bold": boolean(), "italics": boolean(), "underline": boolean(),
                           "color": string(), "highlight": string(), "size": number()}),
    }, ["find", "replace"]))
    def word_find_replace(self, args: dict) -> str:
        path = self.target(args)
        (_, replaced), _ = self.save(path, lambda: self.generator.find_replace(
            self.source(args), args["find"], args["replace"], bool(args.get("matchCase")),
            bool(args.get("matchWholeWord")), args.get("formatting")))
        return (f"✅ **Find & Replace complete!**\n\n🔍 **Find:** \"{args['find']}\"\n"
                f"🔄 **Replace:** \"{args['replace']}\"\n🔢 **Replacements:** {replaced}\n📁 **File:** {path}")

    @tool("word_add_comment", "💬 Add comments and track changes", _edit_schema({
        "text": string("Text the comment refers to"),
        "comment": string(),
        "author": string(),
    }, ["text", "comment"]))
    def word_add_comment(self, args: dict) -> str:
        path = self.target(args)
        author = args.get("author") or AUTHOR
        self.save(path, lambda: self.generator.add_comment(self.source(args), args["text"], args["comment"], author))
        return f"✅ **Comment added!**\n\n💬 **Author:** {author}\n📁 **File:** {path}"

    @tool("word_format_styles", "🎨 Apply and customize styles/themes", _edit_schema({
        "styles": STYLES,
    }, ["styles"]))
    def word_format_styles(self, args: dict) -> str:
        path = self.target(args)
        (_, added), _ = self.save(path, lambda: self.generator.format_styles(self.source(args), args["styles"]))
        return f"✅ **Styles applied!**\n\n🎨 **Custom styles added:** {added}\n📁 **File:** {path}"

    @tool("word_insert_image", "🖼️ Insert and position images with wrapping", _edit_schema({
        "imagePath": string("Image file or URL"),
        "position": obj(),
        "size": obj({"width": number("Pixels"), "height": number("Pixels")}),
        "wrapping": string(),
    }, ["imagePath"]))
    def word_insert_image(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.insert_image(
            self.source(args), self.media(args["imagePath"]), args.get("size")))
        return f"✅ **Image inserted!**\n\n🖼️ **Source:** {args['imagePath']}\n📁 **File:** {path}"

    @tool("word_add_header_footer", "📄 Customize headers/footers per section", _edit_schema({
        "type": string(enum=["header", "footer"]),
        "content": array(ELEMENT),
        "sectionType": string(enum=["default", "first", "even"]),
    }, ["type", "content"]))
    def word_add_header_footer(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_header_footer(
            self.source(args), args["type"], args["content"], args.get("sectionType") or "default"))
        return f"✅ **{args['type'].capitalize()} added!**\n\n📄 **Type:** {args['type']}\n📁 **File:** {path}"

    @tool("word_compare_documents", "🔄 Compare two documents and show differences", object_schema({
        "originalPath": string(),
        "revisedPath": string(),
        "outputPath": string("Optional output directory for comparison.docx"),
        "author": string(),
    }, required=["originalPath", "revisedPath"]))
    def word_compare_documents(self, args: dict) -> str:
        directory = args.get("outputPath") or os.path.dirname(args["originalPath"])
        path = self.paths.in_directory("comparison.docx", directory)
        (_, stats), _ = self.save(path, lambda: self.generator.compare_documents(
            self.source(args, "originalPath"), self.source(args, "revisedPath"), args.get("author") or AUTHOR))
        return (f"✅ **Documents compared!**\n\n🔄 **Original:** {args['originalPath']}\n"
                f"🔄 **Revised:** {args['revisedPath']}\n"
                f"➕ **Added:** {stats['added']}  ➖ **Removed:** {stats['removed']}\n📁 **Report:** {path}")

    @tool("word_to_pdf", "📑 Export Word document to PDF", _edit_schema({}, []))
    def word_to_pdf(self, args: dict) -> str:
        path = self.converted_in_place(args, r"\.docx?")
        self.save(path, lambda: self.generator.convert_to_pdf(args["filename"]))
        return (f"✅ **PDF conversion info!**\n\n📑 **Source:** {args['filename']}\n📄 **Output:** {path}\n\n"
                "Note: Actual PDF conversion requires LibreOffice or similar tools.")

    @tool("word_merge_documents", "🔗 Merge multiple Word documents", object_schema({
        "documents": array(string(), "Documents to merge, in order"),
        "outputPath": string("Output file path (default: merged.docx)"),
    }, required=["documents"]))
    def word_merge_documents(self, args: dict) -> str:
        path = self.paths.file_or_default(args.get("outputPath"), "merged.docx")
        documents = [self.paths.source(d) for d in args["documents"]]
        (_, merged), _ = self.save(path, lambda: self.generator.merge_documents(documents))
        return (f"✅ **Documents merged!**\n\n🔗 **Source documents:** {len(args['documents'])}\n"
                f"✔️ **Merged:** {merged}\n📁 **Output:** {path}")

    # ── review and references ───────────────────────────────────────

    @tool("word_track_changes", "📝 Enable or disable track changes", _edit_schema({
        "enable": boolean(),
        "author": string(),
        "showMarkup": boolean(),
        "trackFormatting": boolean(),
        "trackMoves": boolean(),
    }, ["enable"]))
    def word_track_changes(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.enable_track_changes(
            self.source(args), args["enable"], args.get("author")))
        return (f"✅ **Track changes {'enabled' if args['enable'] else 'disabled'}!**\n\n"
                f"👤 **Author:** {args.get('author') or AUTHOR}\n📁 **File:** {path}")

    @tool("word_add_footnotes", "📌 Add footnotes and endnotes", _edit_schema({
        "footnotes": array(obj({"text": string(), "note": string(),
                                "type": string(enum=["footnote", "endnote"])}, required=["text", "note"])),
    }, ["footnotes"]))
    def word_add_footnotes(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_footnotes(self.source(args), args["footnotes"]))
        return f"✅ **Footnotes added!**\n\n📌 **Count:** {len(args['footnotes'])}\n📁 **File:** {path}"

    @tool("word_add_bookmarks", "🔖 Add bookmarks for navigation", _edit_schema({
        "bookmarks": array(obj({"name": string(), "text": string("Text to bookmark")},
                               required=["name", "text"])),
    }, ["bookmarks"]))
    def word_add_bookmarks(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_bookmarks(self.source(args), args["bookmarks"]))
        names = ", ".join(b["name"] for b in args["bookmarks"])
        return f"✅ **Bookmarks added!**\n\n🔖 **Bookmarks:** {names}\n📁 **File:** {path}"

    @tool("word_section_breaks", "📃 Insert section breaks", _edit_schema({
        "breaks": array(obj({"position": integer("1-based paragraph ending the section"),
                             "type": string(enum=["nextPage", "continuous", "evenPage", "oddPage"])})),
    }, ["breaks"]))
    def word_section_breaks(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_section_breaks(self.source(args), args["breaks"]))
        return f"✅ **Section breaks added!**\n\n📃 **Count:** {len(args['breaks'])}\n📁 **File:** {path}"

    @tool("word_text_boxes", "🔲 Add text boxes", _edit_schema({
        "textBoxes": array(obj({"text": string(), "position": obj(), "width": number(), "height": number(),
                                "wrapping": string(), "border": obj(), "fill": obj()}, required=["text"])),
    }, ["textBoxes"]))
    def word_text_boxes(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_text_boxes(self.source(args), args["textBoxes"]))
        return f"✅ **Text boxes added!**\n\n🔲 **Count:** {len(args['textBoxes'])}\n📁 **File:** {path}"

    @tool("word_cross_references", "🔗 Add cross-references to bookmarks", _edit_schema({
        "references": array(obj({"bookmarkName": string(),
                                 "referenceType": string(enum=["pageNumber", "text", "above/below"]),
                                 "insertText": string()}, required=["bookmarkName"])),
    }, ["references"]))
    def word_cross_references(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_cross_references(self.source(args), args["references"]))
        return f"✅ **Cross-references added!**\n\n🔗 **Count:** {len(args['references'])}\n📁 **File:** {path}"

    @tool("word_bibliography", "📚 Generate bibliography (APA, MLA, Chicago, Harvard, IEEE)", _edit_schema({
        "sources": array(obj({
            "type": string(enum=["book", "article", "website", "journal", "conference"]),
            "author": string(), "title": string(), "year": {"anyOf": [{"type": "string"}, {"type": "integer"}]},
            "publisher": string(), "volume": string(), "issue": string(), "pages": string(), "url": string(),
        }, required=["title"])),
        "style": string(enum=["APA", "MLA", "Chicago", "Harvard", "IEEE"]),
    }, ["sources"]))
    def word_bibliography(self, args: dict) -> str:
        path = self.target(args)
        style = args.get("style") or "APA"
        self.save(path, lambda: self.generator.add_bibliography(self.source(args), args["sources"], style))
        return (f"✅ **Bibliography added!**\n\n📚 **Style:** {style}\n🔢 **Sources:** {len(args['sources'])}\n"
                f"📁 **File:** {path}")

    @tool("word_insert_citations", "📝 Insert citations", _edit_schema({
        "citations": array(obj({"sourceTag": string(), "prefix": string(), "suffix": string(),
                                "pageNumber": {"anyOf": [{"type": "string"}, {"type": "integer"}]},
                                "position": integer("1-based paragraph to cite in")},
                               required=["sourceTag"])),
    }, ["citations"]))
    def word_insert_citations(self, args: dict) -> str:
        path = self.target(args)
        (_, inline), _ = self.save(path, lambda: self.generator.insert_citations(self.source(args), args["citations"]))
        return (f"✅ **Citations inserted!**\n\n📝 **Count:** {len(args['citations'])}\n"
                f"📍 **Inline:** {inline}\n📁 **File:** {path}")

    @tool("word_create_index", "📇 Create index", _edit_schema({
        "entries": array(obj({"mainEntry": string(), "subEntry": string(),
                              "pageNumber": {"anyOf": [{"type": "string"}, {"type": "integer"}]}},
                             required=["mainEntry"])),
        "title": string(),
        "columns": integer(),
        "insertAt": string(enum=["newPage", "currentPosition"]),
    }, ["entries"]))
    def word_create_index(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.create_index(
            self.source(args), args["entries"], args.get("title") or "Index", args.get("columns") or 2,
            args.get("insertAt") or "newPage"))
        return f"✅ **Index created!**\n\n📇 **Entries:** {len(args['entries'])}\n📁 **File:** {path}"

    @tool("word_mark_index_entry", "🏷️ Mark text for the index", _edit_schema({
        "text": string(),
        "mainEntry": string(),
        "subEntry": string(),
        "crossReference": string(),
    }, ["text", "mainEntry"]))
    def word_mark_index_entry(self, args: dict) -> str:
        path = self.target(args)
        (_, marked), _ = self.save(path, lambda: self.generator.mark_index_entry(
            self.source(args), args["text"], args["mainEntry"], args.get("subEntry"), args.get("crossReference")))
        return (f"✅ **Index entry marked!**\n\n🏷️ **Entry:** {args['mainEntry']}\n"
                f"📍 **Occurrences:** {marked}\n📁 **File:** {path}")

    # ── forms and controls ──────────────────────────────────────────

    @tool("word_form_fields", "📋 Add form fields (text, checkbox, dropdown, date)", _edit_schema({
        "fields": array(obj({"type": string(enum=["text", "checkbox", "dropdown", "date", "number"]),
                             "name": string(), "label": string(), "required": boolean(),
                             "maxLength": integer(), "options": array(string()), "defaultValue": {},
                             "helpText": string()}, required=["type", "name"])),
        "protectForm": boolean(),
    }, ["fields"]))
    def word_form_fields(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_form_fields(
            self.source(args), args["fields"], bool(args.get("protectForm"))))
        return (f"✅ **Form fields added!**\n\n📋 **Count:** {len(args['fields'])}\n"
                f"🔒 **Protected:** {'Yes' if args.get('protectForm') else 'No'}\n📁 **File:** {path}")

    @tool("word_content_controls", "🎛️ Add content controls", _edit_schema({
        "controls": array(obj({
            "type": string(enum=["richText", "plainText", "picture", "dropDownList", "comboBox",
                                 "datePicker", "checkbox"]),
            "title": string(), "tag": string(), "placeholder": string(), "options": array(string()),
            "dateFormat": string(),
        }, required=["type", "title"])),
    }, ["controls"]))
    def word_content_controls(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_content_controls(self.source(args), args["controls"]))
        return f"✅ **Content controls added!**\n\n🎛️ **Count:** {len(args['controls'])}\n📁 **File:** {path}"

    @tool("word_smartart", "🧩 Insert SmartArt graphic", _edit_schema({
        "smartArt": obj({"type": string(enum=["list", "process", "cycle", "hierarchy", "relationship",
                                              "matrix", "pyramid"]),
                         "layout": string(), "items": ITEMS, "style": string(), "colorScheme": string()},
                        required=["type"]),
    }, ["smartArt"]))
    def word_smartart(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.insert_smartart(self.source(args), args["smartArt"]))
        smart_art = args["smartArt"]
        return (f"✅ **SmartArt inserted!**\n\n🧩 **Type:** {smart_art['type']}\n"
                f"📝 **Items:** {count(smart_art.get('items'))}\n📁 **File:** {path}")

    @tool("word_equations", "➗ Insert mathematical equations", _edit_schema({
        "equations": array(obj({"latex": string(), "mathml": string(), "text": string(),
                                "inline": boolean()})),
    }, ["equations"]))
    def word_equations(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_equations(self.source(args), args["equations"]))
        return f"✅ **Equations inserted!**\n\n➗ **Count:** {len(args['equations'])}\n📁 **File:** {path}"

    @tool("word_insert_symbols", "Ω Insert special characters and symbols", _edit_schema({
        "symbols": array(obj({"character": string(), "font": string()}, required=["character"])),
    }, ["symbols"]))
    def word_insert_symbols(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.insert_symbols(self.source(args), args["symbols"]))
        characters = " ".join(s["character"] for s in args["symbols"])
        return f"✅ **Symbols inserted!**\n\nΩ **Symbols:** {characters}\n📁 **File:** {path}"

    # ── accessibility and metadata ──────────────────────────────────

    @tool("word_check_accessibility", "♿ Check document accessibility", _edit_schema({
        "checks": obj({name: boolean() for name in (
            "altText", "headingStructure", "colorContrast", "tableHeaders", "readingOrder")}),
        "autoFix": boolean(),
    }, []))
    def word_check_accessibility(self, args: dict) -> str:
        path = self.target(args)
        (_, issues), _ = self.save(path, lambda: self.generator.check_accessibility(
            self.source(args), args.get("checks"), bool(args.get("autoFix"))))
        text = f"✅ **Accessibility check complete!**\n\n⚠️ **Issues:** {len(issues)}\n"
        for issue in issues:
            text += f"  • {issue}\n"
        return text + f"📁 **File:** {path}"

    @tool("word_set_alt_text", "🏷️ Set alternative text for images", _edit_schema({
        "images": array(obj({"imageIndex": integer("1-based picture index"), "altText": string(),
                             "title": string()}, required=["imageIndex", "altText"])),
    }, ["images"]))
    def word_set_alt_text(self, args: dict) -> str:
        path = self.target(args)
        (_, applied), _ = self.save(path, lambda: self.generator.set_alt_text(self.source(args), args["images"]))
        return (f"✅ **Alt text set!**\n\n🏷️ **Applied:** {applied} of {len(args['images'])}\n"
                f"📁 **File:** {path}")

    @tool("word_digital_signature", "🔏 Add, remove or verify a digital signature", _edit_schema({
        "action": string(enum=["add", "remove", "verify"]),
        "certificatePath": string(),
        "reason": string(),
        "location": string(),
    }, ["action"]))
    def word_digital_signature(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_digital_signature(
            self.source(args), args["action"], args.get("certificatePath"), args.get("reason"),
            args.get("location")))
        return f"✅ **Digital signature processed!**\n\n🔏 **Action:** {args['action']}\n📁 **File:** {path}"

    @tool("word_protect_document", "🔒 Protect document", _edit_schema({
        "protectionType": string(enum=["readOnly", "comments", "trackedChanges", "forms"]),
        "password": string(),
        "allowedEditing": array(string()),
        "users": array(string()),
    }, ["protectionType"]))
    def word_protect_document(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.protect_document(
            self.source(args), args["protectionType"], args.get("password"), args.get("allowedEditing"),
            args.get("users")))
        return (f"✅ **Document protected!**\n\n🔒 **Type:** {args['protectionType']}\n"
                f"🔑 **Password:** {'Set' if args.get('password') else 'None'}\n📁 **File:** {path}")

    @tool("word_master_document", "📚 Create master document with subdocuments", _edit_schema({
        "subdocuments": array(obj({"path": string(), "title": string(), "lockForEditing": boolean()},
                                  required=["path"])),
        "generateTOC": boolean(),
    }, ["subdocuments"]))
    def word_master_document(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.create_master_document(
            self.source(args), args["subdocuments"], bool(args.get("generateTOC"))))
        return f"✅ **Master document created!**\n\n📚 **Subdocuments:** {len(args['subdocuments'])}\n📁 **File:** {path}"

    @tool("word_document_info", "ℹ️ Set document properties", _edit_schema({
        "properties": obj({"title": string(), "author": string(), "subject": string(),
                           "keywords": array(string()), "category": string(), "company": string(),
                           "manager": string(), "comments": string()}),
    }, ["properties"]))
    def word_document_info(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.set_document_info(self.source(args), args["properties"]))
        props = args["properties"]
        return (f"✅ **Document properties set!**\n\nℹ️ **Title:** {props.get('title') or 'Not set'}\n"
                f"👤 **Author:** {props.get('author') or 'Not set'}\n📁 **File:** {path}")

    @tool("word_add_captions", "🏷️ Add numbered captions to figures, tables and equations", _edit_schema({
        "captions": array(obj({"type": string(enum=["figure", "table", "equation", "custom"]),
                               "label": string(), "text": string(),
                               "numberingFormat": string(enum=["1, 2, 3", "I, II, III", "a, b, c"]),
                               "includeChapterNumber": boolean(), "position": string(enum=["above", "below"])},
                              required=["type", "text"])),
    }, ["captions"]))
    def word_add_captions(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_captions(self.source(args), args["captions"]))
        return f"✅ **Captions added!**\n\n🏷️ **Count:** {len(args['captions'])}\n📁 **File:** {path}"

    @tool("word_advanced_hyperlinks", "🔗 Add hyperlinks (URLs, email, bookmarks) with screen tips", _edit_schema({
        "links": array(obj({"text": string(), "url": string(), "emailAddress": string(), "bookmark": string(),
                            "screenTip": string()}, required=["text"])),
    }, ["links"]))
    def word_advanced_hyperlinks(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_advanced_hyperlinks(self.source(args), args["links"]))
        return f"✅ **Hyperlinks added!**\n\n🔗 **Count:** {len(args['links'])}\n📁 **File:** {path}"

    @tool("word_drop_cap", "🔠 Add drop cap to a paragraph", _edit_schema({
        "paragraphIndex": integer("0-based paragraph index"),
        "style": string(enum=["dropped", "inMargin"]),
        "lines": integer("Lines to drop (default 3)"),
        "distance": number("Distance from text in points"),
    }, ["paragraphIndex"]))
    def word_drop_cap(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_drop_cap(
            self.source(args), args["paragraphIndex"], args.get("style") or "dropped", args.get("lines") or 3,
            args.get("distance") or 0))
        return (f"✅ **Drop cap added!**\n\n🔠 **Paragraph:** {args['paragraphIndex']}\n"
                f"📏 **Lines:** {args.get('lines') or 3}\n📁 **File:** {path}")

    @tool("word_watermark", "💧 Add text or image watermark", _edit_schema({
        "watermark": obj({"type": string(enum=["text", "image"]), "text": string(), "fontSize": number(),
                          "color": string(), "opacity": number(), "diagonal": boolean(), "imagePath": string()},
                         required=["type"]),
    }, ["watermark"]))
    def word_watermark(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_watermark(self.source(args), args["watermark"]))
        watermark = args["watermark"]
        label = watermark.get("text") or watermark.get("imagePath") or ""
        return f"✅ **Watermark added!**\n\n💧 **Type:** {watermark['type']}\n📝 **Content:** {label}\n📁 **File:** {path}"

    @tool("word_add_content", "➕ Append a heading, paragraph, bullets, image, table or page break", _edit_schema({
        "contentType": string(enum=["heading", "paragraph", "bullets", "image", "table", "pageBreak"]),
        "text": string(),
        "level": integer("Heading level 1-4"),
        "items": array(string()),
        "imagePath": string("Image file or URL"),
        "imageWidthInches": number(),
        "tableData": array(array()),
        "tableHeader": boolean("Style the first row as a header (default true)"),
    }, ["contentType"]))
    def word_add_content(self, args: dict) -> str:
        path = self.target(args)
        image_path = self.media(args["imagePath"]) if args.get("imagePath") else None
        (_, details), _ = self.save(path, lambda: self.generator.add_content(
            self.source(args), args["contentType"], args.get("text"), args.get("level") or 1, args.get("items"),
            image_path, args.get("imageWidthInches") or 5.0, args.get("tableData"), args.get("tableHeader", True)))
        text = f"✅ **Content added!**\n\n➕ **Type:** {args['contentType']}\n"
        for key, value in details.items():
            text += f"🔹 **{key.capitalize()}:** {value}\n"
        return text + f"📁 **File:** {path}"
