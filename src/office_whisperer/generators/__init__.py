from .excel import ExcelGenerator
from .outlook import OutlookGenerator
from .powerpoint import PowerPointGenerator
from .word import WordGenerator

__all__ = ["ExcelGenerator", "OutlookGenerator", "PowerPointGenerator", "WordGenerator"]
