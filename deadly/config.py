"""Configuration management for deadly.

Reads settings from environment variables, after loading an optional .env
file from the working directory. Explicit keyword overrides win over both.
"""
import os
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

__version__ = "0.3.0"


class Config:
    """Configuration loader with environment variable support."""

    def __init__(self, env_file: Optional[str | Path] = None, **overrides):
        """Initialize config by loading .env file.

        Args:
            env_file: Path of the .env file (defaults to ./.env)
            **overrides: Values that take precedence over the environment,
                keyed by property name (e.g. workers=1)

        Raises:
            ValueError: If a setting has an invalid value
        """
        load_dotenv(Path(env_file) if env_file else Path.cwd() / ".env")
        self._overrides = {key: value for key, value in overrides.items() if value is not None}
        self._validate()

    def _get(self, key: str, env_var: str, default):
        if key in self._overrides:
            return self._overrides[key]
        return os.getenv(env_var, default)

    def _validate(self):
        """Validate settings that must be well-formed.

        Raises:
            ValueError: If DEADLY_WORKERS is not a positive integer
        """
        raw = self._get("workers", "DEADLY_WORKERS", 4)
        try:
            workers = int(raw)
        except (TypeError, ValueError):
            raise ValueError(f"DEADLY_WORKERS must be an integer, got {raw!r}")
        if workers < 1:
            raise ValueError("DEADLY_WORKERS must be at least 1")

    @property
    def alias_prefix(self) -> str:
        """Specifier prefix rewritten to the source root (default '@/')."""
        return self._get("alias_prefix", "DEADLY_ALIAS_PREFIX", "@/")

    @property
    def source_dir_name(self) -> str:
        """Directory name searched upward from the entry point (default 'src')."""
        return self._get("source_dir_name", "DEADLY_SOURCE_DIR_NAME", "src")

    @property
    def extensions(self) -> Tuple[str, ...]:
        """Candidate file extensions for discovery.

        Returns:
            Tuple of extensions with a leading dot
        """
        value = self._get("extensions", "DEADLY_EXTENSIONS", ".js,.ts")
        if isinstance(value, str):
            value = value.split(",")
        return tuple(
            ext if ext.startswith(".") else f".{ext}"
            for ext in (item.strip() for item in value) if ext
        )

    @property
    def workers(self) -> int:
        """Number of analysis threads (1 = sequential)."""
        return int(self._get("workers", "DEADLY_WORKERS", 4))

    @property
    def log_level(self) -> str:
        return str(self._get("log_level", "DEADLY_LOG_LEVEL", "WARNING")).upper()


# Singleton instance
_config = None


def get_config() -> Config:
    """Get or create singleton Config instance.

    Returns:
        Config instance
    """
    global _config
    if _config is None:
        _config = Config()
    return _config
