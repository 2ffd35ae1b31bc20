"""Configuration helpers for the Voice Notes bot."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
