"""
Pure matching heuristics: fiscal anchoring, region detection, header
fingerprints, footer filtering and the readiness gate.
"""

from .fiscal_anchor import fiscal_month_anchor, parse_reference_date, today_utc
from .footer_filter import FooterDecision, FooterRowFilter, classify_footer_row
from .header_fingerprint import (
    HeaderCoverage,
    HeaderFingerprintMatcher,
    SheetHeaders,
    SheetSelection,
    fingerprint,
    normalize_header,
)
from .readiness import evaluate_file_readiness
from .region_detector import DEFAULT_REGIONS, RegionDetector, RegionMatch, detect_region

__all__ = [
    "fiscal_month_anchor",
    "parse_reference_date",
    "today_utc",
    "FooterDecision",
    "FooterRowFilter",
    "classify_footer_row",
    "HeaderCoverage",
    "HeaderFingerprintMatcher",
    "SheetHeaders",
    "SheetSelection",
    "fingerprint",
    "normalize_header",
    "evaluate_file_readiness",
    "DEFAULT_REGIONS",
    "RegionDetector",
    "RegionMatch",
    "detect_region",
]
