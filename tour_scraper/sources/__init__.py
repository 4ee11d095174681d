"""Site specific selector tables and browser helpers."""
from .site_profiles import GURU_TRAVELS, SITE_PROFILES, SiteProfile, profile_for

__all__ = ["GURU_TRAVELS", "SITE_PROFILES", "SiteProfile", "profile_for"]
