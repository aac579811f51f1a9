"""
Region detection from free text (worksheet title row or file name).
"""

import re
from collections.abc import Sequence

from pydantic import BaseModel

DEFAULT_REGIONS: tuple[str, ...] = (
    "Keystone",
    "Beltway",
    "Big South",
    "Florida",
    "Freedom",
    "New England",
)

_TRAILING_EXTENSION = re.compile(r"\.[A-Z0-9]+$")
_NON_ALNUM = re.compile(r"[^A-Z0-9]+")
_SPACES = re.compile(r"\s+")


class RegionMatch(BaseModel):
    """Detected region plus the normalized text it was found in."""

    region: str | None
    normalized_input: str
    matched_token: str | None = None

    @property
    def detected(self) -> bool:
        return self.region is not None


def normalize_for_match(text: str | None) -> str:
    """Uppercase, drop a trailing extension, squash non-alphanumerics to single spaces."""
    s = str(text or "").upper()
    s = _TRAILING_EXTENSION.sub("", s)
    s = _NON_ALNUM.sub(" ", s)
    return _SPACES.sub(" ", s).strip()


class RegionDetector:
    """
    Matches text against a fixed, ordered allow-list of region names.

    List order is match priority: when two names could both match, the one
    listed first wins. A miss is not an error; callers surface it as a warning.
    """

    def __init__(self, regions: Sequence[str] = DEFAULT_REGIONS):
        self.regions = tuple(regions)
        self._tokens = [(r, normalize_for_match(r)) for r in self.regions]

    def detect(self, text: str | None) -> RegionMatch:
        hay = normalize_for_match(text)
        for region, token in self._tokens:
            if token and token in hay:
                return RegionMatch(region=region, normalized_input=hay, matched_token=token)
        return RegionMatch(region=None, normalized_input=hay)


def detect_region(text: str | None, regions: Sequence[str] = DEFAULT_REGIONS) -> str | None:
    return RegionDetector(regions).detect(text).region
