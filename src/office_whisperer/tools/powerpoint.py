'''
PowerPoint tools: 33 handlers over PowerPointGenerator.
'''

import json

from ..registry import tool
from ..schema import FILENAME, OUTPUT_PATH, SLIDE_NUMBER, array, boolean, integer, number, obj, object_schema, string
from .base import DocumentTools, count, size_kb

import logging
logger = logging.getLogger(__name__)

DIMENSION = {"anyOf": [{"type": "number"}, {"type": "string"}], "description": "Inches, or a percentage like '50%'"}
POSITION = obj({"x": DIMENSION, "y": DIMENSION})
SIZE = obj({"width": DIMENSION, "height": DIMENSION})
THEMES = ["default", "light", "dark", "colorful"]

CONTENT = obj({
    "type": string(enum=["text", "image", "shape", "table", "chart"]),
    "x": DIMENSION, "y": DIMENSION, "w": DIMENSION, "h": DIMENSION,
    "text": string(), "fontSize": number(), "fontFace": string(), "bold": boolean(), "italic": boolean(),
    "underline": boolean(), "color": string(), "align": string(enum=["left", "center", "right", "justify"]),
    "valign": string(enum=["top", "middle", "bottom"]),
    "bullet": {"anyOf": [{"type": "boolean"}, obj({"type": string(), "code": string()})]},
    "path": string("Image file or URL"),
    "shape": string(enum=["rectangle", "ellipse", "triangle", "arrow", "line"]),
    "fill": {"anyOf": [{"type": "string"}, obj({"color": string()})]},
    "line": obj({"color": string(), "width": number()}),
    "rows": array(array()), "colW": array(number()), "rowH": number(),
    "chartType": string(enum=["bar", "line", "pie", "scatter", "area"]),
    "data": array(obj({"name": string(), "labels": array(), "values": array(number())})),
    "title": string(),
}, required=["type"])

SLIDE = obj({
    "title": string(), "subtitle": string(), "content": array(CONTENT), "notes": string(),
    "backgroundColor": string(), "backgroundImage": string(), "layout": string(),
})


def _edit_schema(properties: dict, required: list) -> dict:
    return object_schema({"filename": FILENAME, **properties, "outputPath": OUTPUT_PATH},
                         required=["filename"] + required)


class PowerPointTools(DocumentTools):

    # ── core presentation tools ─────────────────────────────────────

    @tool("create_powerpoint", "🎬 Create PowerPoint presentation with slides, text, images, and charts",
          object_schema({
              "filename": string('Output filename (e.g., "deck.pptx")'),
              "title": string(),
              "theme": string(enum=THEMES),
              "author": string(),
              "company": string(),
              "slides": array(SLIDE),
              "outputPath": string("Optional output directory"),
          }, required=["filename", "slides"]))
    def create_powerpoint(self, args: dict) -> str:
        path = self.created(args, args["filename"])
        theme = args.get("theme") or "default"
        _, size = self.save(path, lambda: self.generator.create_presentation(
            args["slides"], args.get("title"), theme, args.get("author"), args.get("company")))
        return (f"✅ **PowerPoint created!**\n\n🎬 **File:** {path}\n🎨 **Theme:** {theme}\n"
                f"📊 **Slides:** {len(args['slides'])}\n💾 **Size:** {size_kb(size)}")

    @tool("ppt_add_transition", "✨ Add slide transitions (fade, push, wipe, etc)", _edit_schema({
        "slideNumber": integer("1-based slide (default: every slide)"),
        "transition": obj({"type": string(enum=["fade", "push", "wipe", "split", "reveal", "randomBars",
                                                "circle", "dissolve"]),
                           "duration": integer("Milliseconds"),
                           "direction": string(enum=["left", "right", "up", "down"])}, required=["type"]),
    }, ["transition"]))
    def ppt_add_transition(self, args: dict) -> str:
        path = self.target(args)
        (_, changed), _ = self.save(path, lambda: self.generator.add_transition(
            self.source(args), args["transition"], args.get("slideNumber")))
        return (f"✅ **Transition added!**\n\n✨ **Type:** {args['transition']['type']}\n"
                f"📊 **Slides:** {changed}\n📁 **File:** {path}")

    @tool("ppt_add_animation", "🎭 Add animations to objects (entrance, emphasis, exit)", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "objectId": string(),
        "animation": obj({"type": string(enum=["entrance", "emphasis", "exit", "motion"]),
                          "effect": string(), "duration": integer(), "delay": integer(),
                          "direction": string()}, required=["effect"]),
    }, ["slideNumber", "animation"]))
    def ppt_add_animation(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_animation(
            self.source(args), args["slideNumber"], args["animation"], args.get("objectId")))
        return (f"✅ **Animation added!**\n\n🎭 **Effect:** {args['animation']['effect']}\n"
                f"📊 **Slide:** {args['slideNumber']}\n📁 **File:** {path}")

    @tool("ppt_add_notes", "📝 Add/edit speaker notes", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "notes": string(),
    }, ["slideNumber", "notes"]))
    def ppt_add_notes(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_notes(self.source(args), args["slideNumber"], args["notes"]))
        return f"✅ **Speaker notes added!**\n\n📝 **Slide:** {args['slideNumber']}\n📁 **File:** {path}"

    @tool("ppt_duplicate_slide", "📋 Duplicate slides", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "position": integer("1-based position of the copy (default: end)"),
    }, ["slideNumber"]))
    def ppt_duplicate_slide(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.duplicate_slide(
            self.source(args), args["slideNumber"], args.get("position")))
        return (f"✅ **Slide duplicated!**\n\n📋 **Source:** Slide {args['slideNumber']}\n"
                f"📍 **Position:** {args.get('position') or 'end'}\n📁 **File:** {path}")

    @tool("ppt_reorder_slides", "🔀 Reorder slide sequence", _edit_schema({
        "slideOrder": array(integer(), "New order as 1-based slide numbers, e.g. [3, 1, 2]"),
    }, ["slideOrder"]))
    def ppt_reorder_slides(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.reorder_slides(self.source(args), args["slideOrder"]))
        order = ", ".join(str(n) for n in args["slideOrder"])
        return f"✅ **Slides reordered!**\n\n🔀 **New order:** {order}\n📁 **File:** {path}"

    @tool("ppt_export_pdf", "📑 Export presentation to PDF", _edit_schema({}, []))
    def ppt_export_pdf(self, args: dict) -> str:
        path = self.converted_in_place(args, r"\.pptx?")
        self.save(path, lambda: self.generator.export_pdf(args["filename"]))
        return (f"✅ **PDF export info!**\n\n📑 **Source:** {args['filename']}\n📄 **Output:** {path}\n\n"
                "Note: Actual PDF conversion requires LibreOffice or PowerPoint.")

    @tool("ppt_add_media", "🎥 Embed video/audio", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "mediaPath": string("Media file or URL"),
        "mediaType": string(enum=["video", "audio"]),
        "position": obj({"x": number(), "y": number()}),
        "size": obj({"width": number(), "height": number()}),
    }, ["slideNumber", "mediaPath", "mediaType"]))
    def ppt_add_media(self, args: dict) -> str:
        path = self.target(args)
        media = self.media(args["mediaPath"])
        self.save(path, lambda: self.generator.add_media(
            self.source(args), args["slideNumber"], media, args["mediaType"], args.get("position"),
            args.get("size")))
        return (f"✅ **Media embedded!**\n\n🎥 **Type:** {args['mediaType']}\n📊 **Slide:** {args['slideNumber']}\n"
                f"📁 **File:** {path}")

    @tool("ppt_add_slide", "➕ Add a slide to an existing presentation", _edit_schema({
        "slide": SLIDE,
        "position": integer("1-based position (default: end)"),
    }, ["slide"]))
    def ppt_add_slide(self, args: dict) -> str:
        path = self.target(args)
        (_, number), _ = self.save(path, lambda: self.generator.add_slide(
            self.source(args), args["slide"], args.get("position")))
        title = args["slide"].get("title") or "(untitled)"
        return f"✅ **Slide added!**\n\n➕ **Slide:** {number}\n📝 **Title:** {title}\n📁 **File:** {path}"

    # ── design and navigation ───────────────────────────────────────

    @tool("ppt_define_master", "🎨 Define master slide layout", _edit_schema({
        "masterSlide": obj({"name": string(), "background": obj({"color": string(), "image": string()}),
                            "placeholders": array(obj()), "fonts": obj({"title": string(), "body": string()}),
                            "colors": obj()}, required=["name"]),
    }, ["masterSlide"]))
    def ppt_define_master(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.define_master(self.source(args), args["masterSlide"]))
        return f"✅ **Master slide defined!**\n\n🎨 **Name:** {args['masterSlide']['name']}\n📁 **File:** {path}"

    @tool("ppt_add_hyperlinks", "🔗 Add hyperlinks to URLs or other slides", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "links": array(obj({"text": string(), "url": string(), "slide": integer("Target slide"),
                            "tooltip": string()}, required=["text"])),
    }, ["slideNumber", "links"]))
    def ppt_add_hyperlinks(self, args: dict) -> str:
        path = self.target(args)
        (_, added), _ = self.save(path, lambda: self.generator.add_hyperlinks(
            self.source(args), args["slideNumber"], args["links"]))
        return (f"✅ **Hyperlinks added!**\n\n🔗 **Links:** {added} of {len(args['links'])}\n"
                f"📊 **Slide:** {args['slideNumber']}\n📁 **File:** {path}")

    @tool("ppt_add_sections", "📂 Organize slides into sections", _edit_schema({
        "sections": array(obj({"name": string(), "startSlide": integer()}, required=["name"])),
    }, ["sections"]))
    def ppt_add_sections(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_sections(self.source(args), args["sections"]))
        names = ", ".join(s["name"] for s in args["sections"])
        return f"✅ **Sections added!**\n\n📂 **Sections:** {names}\n📁 **File:** {path}"

    @tool("ppt_morph_transition", "🔮 Add morph transition between slides", _edit_schema({
        "fromSlide": integer(),
        "toSlide": integer(),
        "duration": integer("Milliseconds"),
    }, ["fromSlide", "toSlide"]))
    def ppt_morph_transition(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_morph_transition(
            self.source(args), args["fromSlide"], args["toSlide"], args.get("duration")))
        return (f"✅ **Morph transition added!**\n\n🔮 **From:** Slide {args['fromSlide']}\n"
                f"🎯 **To:** Slide {args['toSlide']}\n📁 **File:** {path}")

    @tool("ppt_action_buttons", "🔘 Add interactive action buttons", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "buttons": array(obj({
            "text": string(),
            "action": string(enum=["nextSlide", "previousSlide", "firstSlide", "lastSlide", "endShow",
                                   "customSlide"]),
            "targetSlide": integer(), "x": number(), "y": number(), "w": number(), "h": number(),
        }, required=["text", "action"])),
    }, ["slideNumber", "buttons"]))
    def ppt_action_buttons(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_action_buttons(
            self.source(args), args["slideNumber"], args["buttons"]))
        return (f"✅ **Action buttons added!**\n\n🔘 **Count:** {len(args['buttons'])}\n"
                f"📊 **Slide:** {args['slideNumber']}\n📁 **File:** {path}")

    # ── visual elements ─────────────────────────────────────────────

    @tool("ppt_smartart", "🧩 Add SmartArt diagram slide", _edit_schema({
        "smartArt": obj({"type": string(enum=["list", "process", "cycle", "hierarchy", "relationship",
                                              "matrix", "pyramid"]),
                         "layout": string(), "items": array(obj({"text": string(), "level": integer()})),
                         "colorScheme": string(enum=["colorful", "accent1", "accent2", "accent3", "accent4",
                                                     "accent5", "accent6"]),
                         "style": string(), "position": POSITION, "size": SIZE}, required=["type"]),
    }, ["smartArt"]))
    def ppt_smartart(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_smartart(self.source(args), args["smartArt"]))
        smart_art = args["smartArt"]
        return (f"✅ **SmartArt added!**\n\n🧩 **Type:** {smart_art['type']}\n"
                f"📝 **Items:** {count(smart_art.get('items'))}\n📁 **File:** {path}")

    @tool("ppt_insert_icons", "⭐ Insert icons", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "icons": array(obj({"name": string(), "category": string(), "position": POSITION, "size": SIZE,
                            "color": string(), "rotation": number()}, required=["name"])),
    }, ["slideNumber", "icons"]))
    def ppt_insert_icons(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.insert_icons(self.source(args), args["slideNumber"], args["icons"]))
        return (f"✅ **Icons inserted!**\n\n⭐ **Count:** {len(args['icons'])}\n"
                f"📊 **Slide:** {args['slideNumber']}\n📁 **File:** {path}")

    @tool("ppt_insert_3d_models", "🧊 Insert 3D model placeholders", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "models": array(obj({"path": string(), "position": POSITION, "size": SIZE,
                             "rotation": obj({"x": number(), "y": number(), "z": number()}),
                             "animation": obj({"type": string(), "duration": integer()}),
                             "altText": string()}, required=["path"])),
    }, ["slideNumber", "models"]))
    def ppt_insert_3d_models(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.insert_3d_models(
            self.source(args), args["slideNumber"], args["models"]))
        return (f"✅ **3D models inserted!**\n\n🧊 **Count:** {len(args['models'])}\n"
                f"📊 **Slide:** {args['slideNumber']}\n📁 **File:** {path}")

    @tool("ppt_add_zoom", "🔍 Add summary, slide or section zoom", _edit_schema({
        "slideNumber": integer("Slide to place the zoom on (default: a new slide)"),
        "zoom": {"anyOf": [
            obj({"type": string(enum=["slide", "summary", "section"])}),
            array(obj({"type": string(enum=["slide", "summary", "section"])})),
        ], "description": "One zoom or a list: {type, targetSlide, targetSlides, targetSection, position, "
                          "size, useBackground, showReturnToZoom}"},
    }, ["zoom"]))
    def ppt_add_zoom(self, args: dict) -> str:
        path = self.target(args)
        zooms = args["zoom"] if isinstance(args["zoom"], list) else [args["zoom"]]
        self.save(path, lambda: self.generator.add_zoom(self.source(args), zooms, args.get("slideNumber")))
        kinds = ", ".join(z.get("type", "slide") for z in zooms)
        return f"✅ **Zoom added!**\n\n🔍 **Type:** {kinds}\n📁 **File:** {path}"

    # ── show and delivery ───────────────────────────────────────────

    @tool("ppt_configure_recording", "🎙️ Configure slide show recording", _edit_schema({
        "recording": obj({"type": string(enum=["narration", "screen", "camera", "all"]),
                          "quality": string(), "slides": array(integer()), "includeNarration": boolean(),
                          "includeTimings": boolean(), "includeInkAnnotations": boolean(),
                          "screenArea": string(), "customArea": obj()}),
    }, ["recording"]))
    def ppt_configure_recording(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.configure_recording(self.source(args), args["recording"]))
        return (f"✅ **Recording configured!**\n\n🎙️ **Type:** {args['recording'].get('type') or 'narration'}\n"
                f"📁 **File:** {path}")

    @tool("ppt_embed_live_web", "🌐 Embed live web pages", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "webPages": array(obj({"url": string(), "position": POSITION, "size": SIZE,
                               "refreshInterval": integer("Seconds"), "allowInteraction": boolean()},
                              required=["url"])),
    }, ["slideNumber", "webPages"]))
    def ppt_embed_live_web(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.embed_live_web(
            self.source(args), args["slideNumber"], args["webPages"]))
        return (f"✅ **Web pages embedded!**\n\n🌐 **Count:** {len(args['webPages'])}\n"
                f"📊 **Slide:** {args['slideNumber']}\n📁 **File:** {path}")

    @tool("ppt_apply_designer", "🎨 Apply Designer preferences", _edit_schema({
        "preferences": obj({"style": string(), "layout": string(), "colorPalette": array(string())}),
        "slideNumber": integer(),
    }, ["preferences"]))
    def ppt_apply_designer(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.apply_designer(
            self.source(args), args["preferences"], args.get("slideNumber")))
        return (f"✅ **Designer preferences applied!**\n\n🎨 **Style:** {args['preferences'].get('style') or 'auto'}\n"
                f"📁 **File:** {path}")

    @tool("ppt_collaboration_comments", "💬 Add collaboration comments", _edit_schema({
        "comments": array(obj({"slideNumber": integer(), "author": string(), "text": string(),
                               "resolved": boolean(), "replies": array(), "mentions": array(string())},
                              required=["text"])),
    }, ["comments"]))
    def ppt_collaboration_comments(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.add_collaboration_comments(self.source(args), args["comments"]))
        return f"✅ **Comments added!**\n\n💬 **Count:** {len(args['comments'])}\n📁 **File:** {path}"

    @tool("ppt_presenter_coach", "🎤 Configure Presenter Coach", _edit_schema({
        "settings": obj({name: boolean() for name in (
            "enableFeedback", "checkPacing", "checkFillerWords", "checkProfanity",
            "checkCulturalSensitivity", "checkOriginalPhrases", "checkReadingFromSlide")} | {
            "targetPace": integer("Words per minute")}),
    }, ["settings"]))
    def ppt_presenter_coach(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.configure_presenter_coach(self.source(args), args["settings"]))
        enabled = sum(1 for value in args["settings"].values() if value is True)
        return f"✅ **Presenter Coach configured!**\n\n🎤 **Checks enabled:** {enabled}\n📁 **File:** {path}"

    @tool("ppt_configure_subtitles", "💬 Configure live subtitles", _edit_schema({
        "subtitles": obj({"enable": boolean(), "language": string(), "spokenLanguage": string(),
                          "position": string(), "fontSize": number(), "backgroundColor": string(),
                          "textColor": string(), "showTimestamps": boolean(),
                          "translationLanguages": array(string())}),
    }, ["subtitles"]))
    def ppt_configure_subtitles(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.configure_subtitles(self.source(args), args["subtitles"]))
        subtitles = args["subtitles"]
        return (f"✅ **Subtitles configured!**\n\n💬 **Enabled:** {'Yes' if subtitles.get('enable', True) else 'No'}\n"
                f"🌐 **Language:** {subtitles.get('language') or 'en-US'}\n📁 **File:** {path}")

    @tool("ppt_ink_annotations", "🖊️ Add ink annotations", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "annotations": array(obj({"type": string(enum=["pen", "highlighter", "eraser"]),
                                  "points": array(obj({"x": number(), "y": number()}, required=["x", "y"])),
                                  "color": string(), "thickness": number()}, required=["type", "points"])),
    }, ["slideNumber", "annotations"]))
    def ppt_ink_annotations(self, args: dict) -> str:
        path = self.target(args)
        (_, drawn), _ = self.save(path, lambda: self.generator.add_ink_annotations(
            self.source(args), args["slideNumber"], args["annotations"]))
        return (f"✅ **Ink annotations added!**\n\n🖊️ **Strokes:** {drawn} of {len(args['annotations'])}\n"
                f"📊 **Slide:** {args['slideNumber']}\n📁 **File:** {path}")

    @tool("ppt_grid_guides", "📐 Configure grid and guides", _edit_schema({
        "settings": obj({
            "grid": obj({"show": boolean(), "snapToGrid": boolean(), "spacing": number("Inches")}),
            "guides": obj({"vertical": array(number()), "horizontal": array(number()),
                           "showGuides": boolean(), "snapToGuides": boolean()}),
            "smartGuides": boolean(),
            "slideNumber": integer(),
        }),
    }, ["settings"]))
    def ppt_grid_guides(self, args: dict) -> str:
        path = self.target(args)
        settings = args["settings"]
        self.save(path, lambda: self.generator.configure_grid_guides(
            self.source(args), settings.get("grid"), settings.get("guides"), settings.get("smartGuides"),
            settings.get("slideNumber")))
        return f"✅ **Grid and guides configured!**\n\n📐 **Grid:** {'Yes' if settings.get('grid') else 'No'}\n📁 **File:** {path}"

    @tool("ppt_custom_show", "🎞️ Create custom slide shows", _edit_schema({
        "shows": array(obj({"name": string(), "slides": array(integer()), "description": string()},
                           required=["name", "slides"])),
    }, ["shows"]))
    def ppt_custom_show(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.create_custom_show(self.source(args), args["shows"]))
        names = ", ".join(s["name"] for s in args["shows"])
        return f"✅ **Custom shows created!**\n\n🎞️ **Shows:** {names}\n📁 **File:** {path}"

    @tool("ppt_animation_pane", "🎬 Manage animation sequence", _edit_schema({
        "slideNumber": SLIDE_NUMBER,
        "animations": array(obj({"order": integer(), "effect": string(), "objectId": string(),
                                 "trigger": string(enum=["onClick", "withPrevious", "afterPrevious", "onPageClick"]),
                                 "duration": integer(), "delay": integer(), "repeat": integer(),
                                 "rewind": boolean()}, required=["effect"])),
    }, ["slideNumber", "animations"]))
    def ppt_animation_pane(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.manage_animation_pane(
            self.source(args), args["slideNumber"], args["animations"]))
        return (f"✅ **Animation sequence updated!**\n\n🎬 **Animations:** {len(args['animations'])}\n"
                f"📊 **Slide:** {args['slideNumber']}\n📁 **File:** {path}")

    @tool("ppt_customize_master", "🖌️ Customize slide master", _edit_schema({
        "master": obj({"name": string(), "background": obj({"type": string(), "color": string()}),
                       "theme": obj({"fonts": obj({"heading": string(), "body": string()}), "colors": obj(),
                                     "effects": string()}),
                       "placeholders": array(obj({"type": string(), "position": POSITION}))}),
    }, ["master"]))
    def ppt_customize_master(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.customize_master(self.source(args), args["master"]))
        return f"✅ **Slide master customized!**\n\n🖌️ **Name:** {args['master'].get('name') or 'Custom Master'}\n📁 **File:** {path}"

    @tool("ppt_apply_theme", "🎨 Apply theme with custom colors and fonts", _edit_schema({
        "theme": obj({"name": string(), "customThemePath": string(), "variants": string(),
                      "applyToSlides": array(integer()), "backgroundColor": string(),
                      "customizeColors": obj({accent: string() for accent in (
                          "accent1", "accent2", "accent3", "accent4", "accent5", "accent6")}),
                      "customizeFonts": obj({"heading": string(), "body": string()})}),
    }, ["theme"]))
    def ppt_apply_theme(self, args: dict) -> str:
        path = self.target(args)
        (_, recolored), _ = self.save(path, lambda: self.generator.apply_theme(self.source(args), args["theme"]))
        return (f"✅ **Theme applied!**\n\n🎨 **Theme:** {args['theme'].get('name') or 'Custom Theme'}\n"
                f"🖼️ **Slides recolored:** {recolored}\n📁 **File:** {path}")

    @tool("ppt_save_as_template", "📐 Save presentation as a template", _edit_schema({
        "template": obj({"title": string(), "description": string(), "category": string(),
                         "placeholders": array(obj({"slideNumber": integer(), "type": string(),
                                                    "label": string(), "instructions": string(),
                                                    "position": POSITION, "size": SIZE})),
                         "protectedElements": array(string())}, required=["title"]),
    }, ["template"]))
    def ppt_save_as_template(self, args: dict) -> str:
        path = self.target(args)
        self.save(path, lambda: self.generator.save_as_template(self.source(args), args["template"]))
        template = args["template"]
        return (f"✅ **Template saved!**\n\n📐 **Title:** {template['title']}\n"
                f"🧩 **Placeholders:** {count(template.get('placeholders'))}\n📁 **File:** {path}")

    @tool("ppt_add_table_slide", "📋 Add a slide with a data table", _edit_schema({
        "title": string(),
        "data": array(array(), "Table rows; the first row is the header by default"),
        "header": boolean("Style the first row as a header (default true)"),
    }, ["title", "data"]))
    def ppt_add_table_slide(self, args: dict) -> str:
        path = self.target(args)
        (_, shape), _ = self.save(path, lambda: self.generator.add_table_slide(
            self.source(args), args["title"], args["data"], args.get("header", True)))
        return f"✅ **Table slide added!**\n\n📋 **Title:** {args['title']}\n📐 **Size:** {shape}\n📁 **File:** {path}"

    @tool("ppt_presentation_info", "ℹ️ Summarize a presentation (slide count, size, titles)", object_schema({
        "filename": FILENAME,
    }, required=["filename"]))
    def ppt_presentation_info(self, args: dict) -> str:
        info = self.generator.presentation_info(self.source(args))
        return json.dumps(info, indent=2, ensure_ascii=False)
