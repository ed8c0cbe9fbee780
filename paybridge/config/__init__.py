"""
Configuration package for the payment bridge
Exports settings from settings.py for easy import
"""
from .settings import settings, get_settings, Settings

__all__ = ["settings", "get_settings", "Settings"]
