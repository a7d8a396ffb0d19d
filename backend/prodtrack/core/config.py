"""
Settings entry point.

Modules import ``settings`` from here so the loader in core.settings
can change without touching call sites.
"""
from prodtrack.core.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
