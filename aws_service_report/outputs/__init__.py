"""Report rendering and Excel output modules."""

from .base import BaseOutputGenerator, OutputContext, OutputError
from .excel_generator import XLSX_CONTENT_TYPE, ExcelGenerator
from .report_builder import (ReportRenderer, coverage_band_style,
                             coverage_percentage)
from .report_model import CellStyle, Report, SheetSpec

__all__ = [
    'BaseOutputGenerator',
    'CellStyle',
    'ExcelGenerator',
    'OutputContext',
    'OutputError',
    'Report',
    'ReportRenderer',
    'SheetSpec',
    'XLSX_CONTENT_TYPE',
    'coverage_band_style',
    'coverage_percentage',
]
