"""YAML configuration loader with environment variable overrides.

Configuration is layered, later layers winning:

    1. config/config.yaml  -- static defaults checked into the repo
    2. .env file           -- local developer overrides (not committed)
    3. Environment vars    -- set at deploy time

``load_config`` reads the YAML file, then deep-merges the values derived
from :class:`Settings` on top of it.
"""

from pathlib import Path

import yaml

from studypadi.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings to overlay; a fresh ``Settings()`` when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "llm": {
            "base_url": settings.llm_base_url,
            "model": settings.llm_model,
            "timeout_seconds": settings.llm_timeout_seconds,
            "use_function_calling": settings.llm_use_function_calling,
            "configured": settings.is_llm_configured(),
        },
        "ingestion": {
            "max_upload_bytes": settings.max_upload_bytes,
            "min_content_chars": settings.min_content_chars,
            "min_pdf_text_chars": settings.min_pdf_text_chars,
            "max_input_chars": settings.max_input_chars,
            "persist_sections_concurrently": settings.persist_sections_concurrently,
            "max_tracked_sessions": settings.max_tracked_sessions,
        },
        "storage": {
            "database_path": settings.database_path,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
