"""Builds the four-sheet report description from the canonical model."""

from typing import Dict, List, Optional, Tuple

import pandas as pd

from ..core.utils import format_datetime_in_zone, to_utc_datetime
from ..processors.models import CanonicalModel, Service
from .base import BaseOutputGenerator, OutputContext, OutputError
from .report_model import (AVAILABLE_MARK, CENTERED, GREEN_LIGHT,
                           GREEN_STRONG, GREY, LINK_STYLE, NA_STYLE,
                           NOT_AVAILABLE, ORANGE, PALE_YELLOW, RED,
                           UNAVAILABLE_MARK, WHITE, CellStyle, Report,
                           SheetSpec)

SUMMARY_SHEET = "Summary"
REGIONS_SHEET = "Regions"
SERVICES_SHEET = "Services"
COVERAGE_SHEET = "Service Coverage"

COVERAGE_PLACEHOLDER = "Service-by-region mapping not available in source data"
PERCENT_FORMAT = '0.0"%"'


def coverage_percentage(region_count: int, total_regions: int) -> float:
    """Share of regions offering a service, x100, rounded to one decimal.

    Returns 0.0 when there are no regions.
    """
    if total_regions <= 0:
        return 0.0
    return round(region_count / total_regions * 100, 1)


def coverage_band_style(percentage: float) -> CellStyle:
    """Font style for a coverage percentage cell."""
    if percentage >= 100:
        band = dict(font_color=GREEN_STRONG, bold=True)
    elif percentage >= 75:
        band = dict(font_color=GREEN_LIGHT)
    elif percentage >= 50:
        band = dict(font_color=ORANGE)
    elif percentage > 0:
        band = dict(font_color=RED)
    else:
        band = dict(font_color=GREY, italic=True)
    return CellStyle(
        horizontal="center", vertical="center", number_format=PERCENT_FORMAT, **band
    )


def format_launch_date(value: Optional[str]) -> Tuple[str, bool]:
    """Render a launch date as ``YYYY-MM-DD``.

    Returns:
        Tuple of (display text, is_placeholder). Unparseable values pass
        through as raw text.
    """
    if not value:
        return NOT_AVAILABLE, True
    parsed = to_utc_datetime(value)
    if parsed is None:
        return str(value), False
    return parsed.strftime("%Y-%m-%d"), False


def sorted_services(services) -> List[Service]:
    """Services ordered by case-insensitive display name, then code."""
    return sorted(services, key=lambda service: service.sort_key)


def _header_style(fill_color: str, **overrides) -> CellStyle:
    attributes = dict(
        font_color=WHITE,
        bold=True,
        fill_color=fill_color,
        horizontal="center",
        vertical="center",
    )
    attributes.update(overrides)
    return CellStyle(**attributes)


class ReportRenderer(BaseOutputGenerator):
    """Lays out Summary, Regions, Services and Service Coverage sheets.

    Rendering is a pure function of the canonical model and the output
    context; nothing here touches S3 or the clock.
    """

    def __init__(self, context: OutputContext):
        super().__init__(context)

    def generate(self, data: CanonicalModel) -> Report:
        """Render the report.

        Args:
            data: Canonical model for this run

        Returns:
            Report with the four sheets in fixed order

        Raises:
            OutputError: If the model cannot be rendered
        """
        if not isinstance(data, CanonicalModel):
            raise OutputError(
                f"Expected CanonicalModel, got {type(data).__name__}"
            )

        try:
            report = Report(
                sheets=[
                    self.build_summary_sheet(data),
                    self.build_regions_sheet(data),
                    self.build_services_sheet(data),
                    self.build_coverage_sheet(data),
                ]
            )
        except OutputError:
            raise
        except Exception as e:
            raise OutputError(f"Report rendering failed: {e}") from e

        for sheet in report.sheets:
            self.logger.debug(
                "Rendered sheet", sheet=sheet.name, rows=len(sheet.frame)
            )
        return report

    def build_summary_sheet(self, model: CanonicalModel) -> SheetSpec:
        metadata = model.metadata
        tz_name = self.context.timezone_name

        data_timestamp = (
            format_datetime_in_zone(metadata.timestamp, tz_name)
            if metadata.timestamp
            else NOT_AVAILABLE
        )
        mapping_count = model.mapping_entry_count

        rows = [
            ("Report Generated", format_datetime_in_zone(self.context.generated_at, tz_name)),
            ("Data Source", self.context.source_location),
            ("Schema Version", metadata.schema_version or "Unknown"),
            ("Data Timestamp", data_timestamp),
            (None, None),
            ("Total AWS Regions", model.region_count),
            ("Total AWS Services", model.service_count),
            (
                "Service-by-Region Mappings",
                mapping_count if mapping_count is not None else NOT_AVAILABLE,
            ),
        ]
        frame = pd.DataFrame(rows, columns=["Field", "Value"], dtype=object)

        cell_styles = {}
        if mapping_count is None:
            cell_styles[(len(rows) - 1, 1)] = NA_STYLE
        if data_timestamp == NOT_AVAILABLE:
            cell_styles[(3, 1)] = NA_STYLE

        return SheetSpec(
            name=SUMMARY_SHEET,
            frame=frame,
            title="AWS Service Report - Summary",
            start_row=2,
            header_style=_header_style("4472C4", size=12, horizontal=None),
            column_styles={
                0: CellStyle(vertical="center"),
                1: CellStyle(vertical="center", horizontal="left"),
            },
            cell_styles=cell_styles,
            column_widths={0: 30, 1: 60},
        )

    def build_regions_sheet(self, model: CanonicalModel) -> SheetSpec:
        columns = [
            "Region Code",
            "Region Name",
            "Availability Zones",
            "Service Count",
            "Launch Date",
            "Blog URL",
        ]
        rows = []
        cell_styles: Dict[Tuple[int, int], CellStyle] = {}
        hyperlinks: Dict[Tuple[int, int], str] = {}

        for index, region in enumerate(model.regions):
            launch_date, launch_missing = format_launch_date(region.launch_date)
            if launch_missing:
                cell_styles[(index, 4)] = NA_STYLE

            if region.blog_url:
                blog_value = region.blog_url
                hyperlinks[(index, 5)] = region.blog_url
                cell_styles[(index, 5)] = LINK_STYLE
            else:
                blog_value = NOT_AVAILABLE
                cell_styles[(index, 5)] = NA_STYLE

            rows.append(
                [
                    region.code,
                    region.name or "Unknown",
                    region.availability_zone_count,
                    model.service_count_for_region(region.code),
                    launch_date,
                    blog_value,
                ]
            )

        return SheetSpec(
            name=REGIONS_SHEET,
            frame=pd.DataFrame(rows, columns=columns),
            header_style=_header_style("70AD47"),
            header_height=20,
            column_styles={2: CENTERED, 3: CENTERED},
            cell_styles=cell_styles,
            hyperlinks=hyperlinks,
            column_widths={0: 20, 1: 35, 2: 20, 3: 15, 4: 20, 5: 50},
            freeze_panes="A2",
            auto_filter=True,
        )

    def build_services_sheet(self, model: CanonicalModel) -> SheetSpec:
        columns = ["Service Code", "Service Name", "Available Regions", "Coverage %"]
        total_regions = model.region_count
        rows = []
        cell_styles: Dict[Tuple[int, int], CellStyle] = {}

        for index, service in enumerate(sorted_services(model.services)):
            region_count = model.region_count_for_service(service.code)
            percentage = coverage_percentage(region_count, total_regions)
            cell_styles[(index, 3)] = coverage_band_style(percentage)
            rows.append([service.code, service.display_name, region_count, percentage])

        return SheetSpec(
            name=SERVICES_SHEET,
            frame=pd.DataFrame(rows, columns=columns),
            header_style=_header_style(ORANGE),
            header_height=20,
            column_styles={2: CENTERED},
            cell_styles=cell_styles,
            column_widths={0: 30, 1: 60, 2: 18, 3: 12},
            freeze_panes="A2",
            auto_filter=True,
        )

    def build_coverage_sheet(self, model: CanonicalModel) -> SheetSpec:
        if not model.has_coverage:
            return SheetSpec(
                name=COVERAGE_SHEET,
                placeholder=COVERAGE_PLACEHOLDER,
                placeholder_style=CellStyle(
                    size=14,
                    italic=True,
                    horizontal="center",
                    vertical="center",
                    fill_color=PALE_YELLOW,
                ),
            )

        region_codes = [region.code for region in model.regions]
        row_services = sorted_services(
            list(model.services)
            + [Service(code=code, name=code) for code in model.unknown_service_codes()]
        )

        available = CellStyle(
            font_color=GREEN_STRONG, bold=True, horizontal="center", vertical="center"
        )
        unavailable = CellStyle(
            font_color=RED, bold=True, horizontal="center", vertical="center"
        )

        rows = []
        cell_styles: Dict[Tuple[int, int], CellStyle] = {}
        for row_index, service in enumerate(row_services):
            row = [service.display_name]
            for column_index, region_code in enumerate(region_codes, start=1):
                is_available = service.code in model.services_in_region(region_code)
                row.append(AVAILABLE_MARK if is_available else UNAVAILABLE_MARK)
                cell_styles[(row_index, column_index)] = (
                    available if is_available else unavailable
                )
            rows.append(row)

        column_widths = {0: 40}
        column_widths.update({index: 12 for index in range(1, len(region_codes) + 1)})

        return SheetSpec(
            name=COVERAGE_SHEET,
            frame=pd.DataFrame(rows, columns=["Service"] + region_codes),
            header_style=_header_style("5B9BD5", wrap_text=True),
            header_height=30,
            cell_styles=cell_styles,
            column_widths=column_widths,
            freeze_panes="B2",
            auto_filter=True,
        )
