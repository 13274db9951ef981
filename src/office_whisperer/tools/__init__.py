from typing import Any

from ..paths import OutputPaths
from ..registry import ToolRegistry
from .excel import ExcelTools
from .outlook import OutlookTools
from .powerpoint import PowerPointTools
from .word import WordTools


def build_registry(excel: Any, word: Any, powerpoint: Any, outlook: Any, paths: OutputPaths) -> ToolRegistry:
    """Registry with every tool, in catalog order: Excel, Word, PowerPoint, Outlook."""
    registry = ToolRegistry()
    registry.register_all(ExcelTools(excel, paths))
    registry.register_all(WordTools(word, paths))
    registry.register_all(PowerPointTools(powerpoint, paths))
    registry.register_all(OutlookTools(outlook, paths))
    return registry


__all__ = ["ExcelTools", "OutlookTools", "PowerPointTools", "WordTools", "build_registry"]
