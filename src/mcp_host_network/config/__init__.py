"""Runtime settings."""
from .settings import Settings, load_settings, find_settings_file

__all__ = ["Settings", "load_settings", "find_settings_file"]
