"""
Valuation report module: field resolution, normalization, derived values
and the page template.
"""

from valuedesk.modules.report.resolver import NA, resolve, resolve_many, resolve_date
from valuedesk.modules.report.normalizer import normalize
from valuedesk.modules.report.calculator import (
    number_to_words,
    calculate_percentage,
    round_to_nearest_1000,
    format_currency_with_words,
    format_indian_number,
    derive,
)
from valuedesk.modules.report.document import ReportDocument, ReportPage, page_count, image_blocks
from valuedesk.modules.report.renderer import ReportRenderer, render, build_report

__all__ = [
    # Resolution
    "NA",
    "resolve",
    "resolve_many",
    "resolve_date",
    "normalize",
    # Derived values
    "number_to_words",
    "calculate_percentage",
    "round_to_nearest_1000",
    "format_currency_with_words",
    "format_indian_number",
    "derive",
    # Rendering
    "ReportDocument",
    "ReportPage",
    "page_count",
    "image_blocks",
    "ReportRenderer",
    "render",
    "build_report",
]
