"""
Import settings.

Settings come from the ``[import]`` table of a ``contentkit.toml`` file,
then from environment variables, which win:

    CONTENTKIT_DB                   SQLite database path
    CONTENTKIT_LOG_DIR              Directory for the JSONL log
    CONTENTKIT_LOG_LEVEL            DEBUG, INFO, WARNING, ...
    CONTENTKIT_MAX_DOCUMENT_BYTES   Reject larger documents (0 = unlimited)

Usage:
    from contentkit.core.settings import load_settings

    settings = load_settings(Path("contentkit.toml"))
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path

from .context import PREVIEW_PREFIX
from .errors import ValidationError

DEFAULT_CONFIG_FILE = "contentkit.toml"

ENV_DB = "CONTENTKIT_DB"
ENV_LOG_DIR = "CONTENTKIT_LOG_DIR"
ENV_LOG_LEVEL = "CONTENTKIT_LOG_LEVEL"
ENV_MAX_DOCUMENT_BYTES = "CONTENTKIT_MAX_DOCUMENT_BYTES"


@dataclass(frozen=True)
class ImportSettings:
    """Configuration for the importer, its storage and its logging."""

    database_path: Path = Path(".contentkit/content.db")
    log_dir: Path = Path(".contentkit/logs")
    log_level: str = "INFO"
    max_document_bytes: int = 0  # 0 = unlimited
    preview_prefix: str = PREVIEW_PREFIX


def _parse_size(value: object, source: str) -> int:
    try:
        size = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{source}: max_document_bytes must be an integer, got {value!r}") from None
    if size < 0:
        raise ValidationError(f"{source}: max_document_bytes must not be negative")
    return size


def load_settings(path: Path | None = None, environ: dict[str, str] | None = None) -> ImportSettings:
    """
    Load settings from a TOML file (if it exists) and the environment.

    Args:
        path: Config file; defaults to ``contentkit.toml`` in the working directory
        environ: Environment mapping; defaults to ``os.environ``

    Returns:
        The merged settings

    Raises:
        ValidationError: If the file is not valid TOML or a value has the wrong type
    """
    env = os.environ if environ is None else environ
    settings = ImportSettings()

    config_path = path or Path(DEFAULT_CONFIG_FILE)
    if config_path.exists():
        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ValidationError(f"{config_path}: invalid TOML: {e}") from e
        table = data.get("import", {})
        settings = replace(
            settings,
            database_path=Path(table.get("database_path", settings.database_path)),
            log_dir=Path(table.get("log_dir", settings.log_dir)),
            log_level=str(table.get("log_level", settings.log_level)).upper(),
            max_document_bytes=_parse_size(
                table.get("max_document_bytes", settings.max_document_bytes), str(config_path)
            ),
            preview_prefix=str(table.get("preview_prefix", settings.preview_prefix)),
        )

    if env.get(ENV_DB):
        settings = replace(settings, database_path=Path(env[ENV_DB]))
    if env.get(ENV_LOG_DIR):
        settings = replace(settings, log_dir=Path(env[ENV_LOG_DIR]))
    if env.get(ENV_LOG_LEVEL):
        settings = replace(settings, log_level=env[ENV_LOG_LEVEL].upper())
    if env.get(ENV_MAX_DOCUMENT_BYTES):
        settings = replace(
            settings, max_document_bytes=_parse_size(env[ENV_MAX_DOCUMENT_BYTES], ENV_MAX_DOCUMENT_BYTES)
        )
    return settings
