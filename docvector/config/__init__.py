"""Configuration module - exports Settings and the YAML-aware loader."""

from docvector.config.loader import load_config, load_settings
from docvector.config.settings import Settings

__all__ = ["Settings", "load_config", "load_settings"]
