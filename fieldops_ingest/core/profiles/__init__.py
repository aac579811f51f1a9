"""
Source profile management.
"""

from .profile_config import (
    BUILTIN_PROFILES,
    ONTRAC_EXPECTED_HEADERS,
    ONTRAC_PROFILE,
    SourceProfile,
    SourceProfileLoader,
    load_source_profiles,
)

__all__ = [
    "BUILTIN_PROFILES",
    "ONTRAC_EXPECTED_HEADERS",
    "ONTRAC_PROFILE",
    "SourceProfile",
    "SourceProfileLoader",
    "load_source_profiles",
]
