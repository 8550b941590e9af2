"""Configuration module.

Usage:
    from football_analysis.config import get_settings

    settings = get_settings()
    print(settings.database_url)
    print(settings.form_window)
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
