"""Format-independent description of the rendered report."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pandas as pd

# Colours as RGB hex, without alpha.
GREEN_STRONG = "00B050"
GREEN_LIGHT = "92D050"
ORANGE = "FFC000"
RED = "C00000"
GREY = "7F7F7F"
LINK_BLUE = "0563C1"
WHITE = "FFFFFF"
PALE_YELLOW = "FFF2CC"

AVAILABLE_MARK = "✓"
UNAVAILABLE_MARK = "✗"
NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class CellStyle:
    """Presentation attributes for a single cell."""

    font_color: Optional[str] = None
    bold: bool = False
    italic: bool = False
    underline: bool = False
    size: Optional[float] = None
    fill_color: Optional[str] = None
    horizontal: Optional[str] = None
    vertical: Optional[str] = None
    wrap_text: bool = False
    number_format: Optional[str] = None


NA_STYLE = CellStyle(font_color=GREY, italic=True)
LINK_STYLE = CellStyle(font_color=LINK_BLUE, underline=True)
CENTERED = CellStyle(horizontal="center", vertical="center")


@dataclass
class SheetSpec:
    """One worksheet: a header row plus data rows and view settings.

    Cell coordinates in ``cell_styles`` and ``hyperlinks`` are 0-based
    ``(data_row, column)`` positions within ``frame``.
    """

    name: str
    frame: pd.DataFrame = field(default_factory=pd.DataFrame)
    title: Optional[str] = None
    start_row: int = 0
    header_style: Optional[CellStyle] = None
    header_height: Optional[float] = None
    column_styles: Dict[int, CellStyle] = field(default_factory=dict)
    cell_styles: Dict[Tuple[int, int], CellStyle] = field(default_factory=dict)
    hyperlinks: Dict[Tuple[int, int], str] = field(default_factory=dict)
    column_widths: Dict[int, float] = field(default_factory=dict)
    freeze_panes: Optional[str] = None
    auto_filter: bool = False
    placeholder: Optional[str] = None
    placeholder_style: Optional[CellStyle] = None
    placeholder_range: str = "A1:E5"

    @property
    def header_row(self) -> int:
        """1-based worksheet row holding the header."""
        return self.start_row + 1

    def style_for(self, row: int, column: int) -> Optional[CellStyle]:
        return self.cell_styles.get((row, column), self.column_styles.get(column))


@dataclass
class Report:
    """Ordered set of sheets making up one report."""

    sheets: List[SheetSpec] = field(default_factory=list)

    @property
    def sheet_names(self) -> List[str]:
        return [sheet.name for sheet in self.sheets]

    def sheet(self, name: str) -> SheetSpec:
        for candidate in self.sheets:
            if candidate.name == name:
                return candidate
        raise KeyError(name)
