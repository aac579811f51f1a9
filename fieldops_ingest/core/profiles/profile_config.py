"""
Source profile configuration.

A source profile carries everything the pipeline knows about one vendor
export: the ordered header row, the natural-key column, the region
allow-list and where the title, header and data rows sit.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, model_validator

from fieldops_ingest.core.matching.region_detector import DEFAULT_REGIONS

ONTRAC_EXPECTED_HEADERS: tuple[str, ...] = (
    "TechId",
    "TechName",
    "Supervisor",
    "Total Jobs",
    "Installs",
    "TCs",
    "SROs",
    "TUResult",
    "TUEligibleJobs",
    "ToolUsage",
    "Promoters",
    "Detractors",
    "tNPS Surveys",
    "tNPS Rate",
    "FTRFailJobs",
    "Total FTR/Contact Jobs",
    "FTR%",
    "48Hr Contact Orders",
    "48Hr Contact Rate%",
    "PHT Jobs",
    "PHT Pure Pass",
    "PHT Fails",
    "PHT RTM",
    "PHT Pass%",
    "PHT Pure Pass%",
    "TotalAppts",
    "TotalMetAppts",
    "MetRate",
    "Rework Count",
    "Rework Rate%",
    "SOI Count",
    "SOI Rate%",
    "Repeat Count",
    "Repeat Rate%",
)


class SourceProfile(BaseModel):
    """Schema knowledge for one source system."""

    source_system: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-z0-9_\-]+$")
    expected_headers: list[str] = Field(..., min_length=1)
    natural_key_header: str = "TechId"
    allowed_regions: list[str] = Field(default_factory=lambda: list(DEFAULT_REGIONS))
    title_row: int = Field(1, ge=1)
    header_row: int = Field(2, ge=1)
    data_start_row: int = Field(3, ge=1)
    allowed_extensions: list[str] = Field(default_factory=lambda: [".xlsx", ".csv"])

    @model_validator(mode="after")
    def _check_layout(self) -> "SourceProfile":
        if self.title_row >= self.header_row:
            raise ValueError("title_row must come before header_row")
        if self.data_start_row <= self.header_row:
            raise ValueError("data_start_row must come after header_row")
        self.allowed_extensions = [e.lower() if e.startswith(".") else f".{e.lower()}" for e in self.allowed_extensions]
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "source_system": "ontrac",
                "expected_headers": ["TechId", "TechName", "Supervisor", "Total Jobs"],
                "natural_key_header": "TechId",
                "allowed_regions": ["Keystone", "Beltway"],
                "title_row": 1,
                "header_row": 2,
                "data_start_row": 3,
                "allowed_extensions": [".xlsx", ".csv"],
            }
        }


ONTRAC_PROFILE = SourceProfile(
    source_system="ontrac",
    expected_headers=list(ONTRAC_EXPECTED_HEADERS),
)

BUILTIN_PROFILES: dict[str, SourceProfile] = {ONTRAC_PROFILE.source_system: ONTRAC_PROFILE}


class SourceProfileLoader:
    """
    Loads source profiles from a YAML configuration file.

    Expected YAML format:
    ```yaml
    profiles:
      ontrac:
        natural_key_header: TechId
        header_row: 2
        data_start_row: 3
        allowed_regions: [Keystone, Beltway, Big South]
        expected_headers:
          - TechId
          - TechName
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the profile loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Source profile file not found: {config_path}")

    def load_profiles(self) -> dict[str, SourceProfile]:
        """
        Load and parse source profiles.

        Returns:
            Mapping of source_system to profile

        Raises:
            ValueError: If YAML is invalid or a profile fails validation
        """
        with open(self.config_path) as f:
            config = yaml.safe_load(f)

        if not config or "profiles" not in config:
            raise ValueError("Configuration file must contain 'profiles' section")

        profiles = {}
        for source_system, profile_def in config["profiles"].items():
            profiles[source_system] = self._parse_profile(source_system, profile_def)
        return profiles

    def _parse_profile(self, source_system: str, profile_def: dict[str, Any] | None) -> SourceProfile:
        if not isinstance(profile_def, dict):
            raise ValueError(f"Profile '{source_system}' must be a mapping")

        data = dict(profile_def)
        data.setdefault("source_system", source_system)
        if data["source_system"] != source_system:
            raise ValueError(
                f"Profile key '{source_system}' does not match source_system '{data['source_system']}'"
            )
        try:
            return SourceProfile(**data)
        except PydanticValidationError as e:
            raise ValueError(f"Invalid profile '{source_system}': {e}") from e


def load_source_profiles(config_path: str | Path | None = None) -> dict[str, SourceProfile]:
    """Built-in profiles, overridden or extended by a YAML file when given."""
    profiles = dict(BUILTIN_PROFILES)
    if config_path:
        profiles.update(SourceProfileLoader(config_path).load_profiles())
    return profiles
