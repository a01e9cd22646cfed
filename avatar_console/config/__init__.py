"""Configuration module."""

from avatar_console.config.constants import CONTINUITY, ContinuityConstants
from avatar_console.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings", "ContinuityConstants", "CONTINUITY"]
