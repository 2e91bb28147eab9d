"""Configuration module: exports Settings and load_config."""

from studypadi.config.loader import load_config
from studypadi.config.settings import Settings

__all__ = ["Settings", "load_config"]
