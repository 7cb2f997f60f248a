"""Application configuration package."""

from .settings import Settings, SettingsDep, get_settings

__all__ = ["Settings", "SettingsDep", "get_settings"]
