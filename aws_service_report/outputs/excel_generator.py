"""Excel output generator for the AWS Service Report."""

from io import BytesIO

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from .base import BaseOutputGenerator, OutputContext, OutputError
from .report_model import CellStyle, Report, SheetSpec

XLSX_CONTENT_TYPE = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
)


class ExcelGenerator(BaseOutputGenerator):
    """Serialize a rendered Report into an in-memory .xlsx workbook."""

    def __init__(self, context: OutputContext):
        """Initialize Excel generator.

        Args:
            context: Output context with workbook metadata
        """
        super().__init__(context)

    def generate(self, data: Report) -> bytes:
        """Write every sheet of the report with its formatting.

        Args:
            data: Rendered report

        Returns:
            Workbook bytes

        Raises:
            OutputError: If Excel generation fails
        """
        if not isinstance(data, Report) or not data.sheets:
            raise OutputError("Report has no sheets to write")

        try:
            buffer = BytesIO()
            with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
                for sheet in data.sheets:
                    self._write_sheet(writer, sheet)
                writer.book.properties.creator = self.context.creator

            content = buffer.getvalue()
        except Exception as e:
            raise OutputError(f"Excel generation failed: {e}") from e

        self._log_excel_details(data, len(content))
        return content

    def _write_sheet(self, writer: pd.ExcelWriter, sheet: SheetSpec):
        """Write one sheet's data and apply its formatting."""
        if sheet.placeholder is not None:
            worksheet = writer.book.create_sheet(title=sheet.name)
            self._write_placeholder(worksheet, sheet)
            return

        sheet.frame.to_excel(
            writer, sheet_name=sheet.name, index=False, startrow=sheet.start_row
        )
        worksheet = writer.sheets[sheet.name]

        if sheet.title:
            self._write_title(worksheet, sheet)
        self._format_headers(worksheet, sheet)
        self._format_cells(worksheet, sheet)
        self._apply_view_settings(worksheet, sheet)

    def _write_title(self, worksheet, sheet: SheetSpec):
        last_column = get_column_letter(max(len(sheet.frame.columns), 1))
        worksheet.merge_cells(f"A1:{last_column}1")
        cell = worksheet.cell(row=1, column=1, value=sheet.title)
        cell.font = Font(bold=True, size=14)
        cell.alignment = Alignment(horizontal="center")

    def _write_placeholder(self, worksheet, sheet: SheetSpec):
        worksheet.merge_cells(sheet.placeholder_range)
        cell = worksheet.cell(row=1, column=1, value=sheet.placeholder)
        if sheet.placeholder_style:
            self._apply_style(cell, sheet.placeholder_style)

    def _format_headers(self, worksheet, sheet: SheetSpec):
        """Style the header row and set its height."""
        header_row = sheet.header_row
        if sheet.header_style:
            for col in range(1, len(sheet.frame.columns) + 1):
                cell = worksheet.cell(row=header_row, column=col)
                self._apply_style(cell, sheet.header_style)
        if sheet.header_height:
            worksheet.row_dimensions[header_row].height = sheet.header_height

    def _format_cells(self, worksheet, sheet: SheetSpec):
        """Apply per-column and per-cell styles plus hyperlinks to data rows."""
        first_data_row = sheet.header_row + 1
        column_count = len(sheet.frame.columns)

        for row_index in range(len(sheet.frame)):
            for col_index in range(column_count):
                style = sheet.style_for(row_index, col_index)
                link = sheet.hyperlinks.get((row_index, col_index))
                if style is None and link is None:
                    continue
                cell = worksheet.cell(
                    row=first_data_row + row_index, column=col_index + 1
                )
                if link:
                    cell.hyperlink = link
                if style is not None:
                    self._apply_style(cell, style)

    def _apply_view_settings(self, worksheet, sheet: SheetSpec):
        """Column widths, frozen panes and the auto-filter range."""
        for col_index, width in sheet.column_widths.items():
            worksheet.column_dimensions[get_column_letter(col_index + 1)].width = width

        if sheet.freeze_panes:
            worksheet.freeze_panes = sheet.freeze_panes

        if sheet.auto_filter and len(sheet.frame.columns):
            last_column = get_column_letter(len(sheet.frame.columns))
            last_row = sheet.header_row + len(sheet.frame)
            worksheet.auto_filter.ref = (
                f"A{sheet.header_row}:{last_column}{last_row}"
            )

    @staticmethod
    def _apply_style(cell, style: CellStyle):
        """Translate a CellStyle into openpyxl font, fill and alignment."""
        cell.font = Font(
            color=style.font_color,
            bold=style.bold,
            italic=style.italic,
            underline="single" if style.underline else None,
            size=style.size,
        )
        if style.fill_color:
            cell.fill = PatternFill(
                start_color=style.fill_color,
                end_color=style.fill_color,
                fill_type="solid",
            )
        if style.horizontal or style.vertical or style.wrap_text:
            cell.alignment = Alignment(
                horizontal=style.horizontal,
                vertical=style.vertical,
                wrap_text=style.wrap_text,
            )
        if style.number_format:
            cell.number_format = style.number_format

    def _log_excel_details(self, report: Report, size_bytes: int):
        """Log a per-sheet summary of the generated workbook."""
        self.logger.info("Generated Excel workbook", size_bytes=size_bytes)
        for sheet in report.sheets:
            if sheet.placeholder is not None:
                self.logger.info(f"  - {sheet.name}: placeholder ({sheet.placeholder})")
            else:
                self.logger.info(
                    f"  - {sheet.name}: {len(sheet.frame)} rows × "
                    f"{len(sheet.frame.columns)} columns"
                )
