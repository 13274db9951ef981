"""Shared fixtures for the Office Whisperer test suite."""

import asyncio
import os
import sys

import pytest

# Ensure src/ is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from office_whisperer.generators import ExcelGenerator, OutlookGenerator, PowerPointGenerator, WordGenerator
from office_whisperer.paths import OutputPaths
from office_whisperer.server import Dispatcher
from office_whisperer.tools import build_registry


# ---------------------------------------------------------------------------
# Paths and registry
# ---------------------------------------------------------------------------

@pytest.fixture
def paths(tmp_path):
    """OutputPaths without confinement; tests pass absolute tmp_path locations."""
    return OutputPaths()


@pytest.fixture
def sandbox(tmp_path):
    """OutputPaths confined to tmp_path / "data"."""
    return OutputPaths(str(tmp_path / "data"))


@pytest.fixture
def registry(paths):
    return build_registry(
        excel=ExcelGenerator(),
        word=WordGenerator(),
        powerpoint=PowerPointGenerator(),
        outlook=OutlookGenerator(),
        paths=paths,
    )


@pytest.fixture
def dispatcher(registry):
    return Dispatcher(registry)


@pytest.fixture
def call_tool(registry):
    """Run a tool handler directly and return its status text."""
    def _call(name, **arguments):
        return registry.get(name).handler(arguments)
    return _call


# ---------------------------------------------------------------------------
# Async helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def rpc(dispatcher):
    """Send one request dict through the dispatcher and return the response dict."""
    def _rpc(raw):
        return asyncio.run(dispatcher.handle_raw(raw))
    return _rpc


# ---------------------------------------------------------------------------
# Sample documents
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_workbook(tmp_path):
    """Workbook with a header row and three data rows on sheet "Sales"."""
    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.title = "Sales"
    ws.append(["Region", "Product", "Amount"])
    ws.append(["North", "Widget", 100])
    ws.append(["South", "Gadget", 250])
    ws.append(["North", "Gadget", 75])
    path = tmp_path / "sales.xlsx"
    wb.save(path)
    return str(path)


@pytest.fixture
def sample_document(tmp_path):
    from docx import Document

    doc = Document()
    doc.add_heading("Quarterly Report", 1)
    doc.add_paragraph("The quarterly numbers are in. Revenue grew this quarter.")
    doc.add_paragraph("Prepared by the finance team.")
    path = tmp_path / "report.docx"
    doc.save(path)
    return str(path)


@pytest.fixture
def sample_presentation(tmp_path):
    """Three-slide deck built by the generator."""
    data = PowerPointGenerator().create_presentation(
        [{"title": "Intro"}, {"title": "Agenda", "notes": "Keep it short"}, {"title": "Wrap-up"}],
        title="Deck",
    )
    path = tmp_path / "deck.pptx"
    path.write_bytes(data)
    return str(path)
