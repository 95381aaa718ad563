"""Configuration file support for gwas-atlas."""

import logging
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from .query import DEFAULT_FETCH_TIMEOUT, INDEX_SUFFIX
from .readers import READERS
from .utils.chromosomes import AUTOSOMES
from .window import DEFAULT_SAMPLE_CHROMOSOMES

logger = logging.getLogger(__name__)

CONFIG_SECTION = "gwas_atlas"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

PATH_KEYS = ("gwas_files_path", "annotation_db", "gwama_db", "mrmega_db")


@dataclass
class AtlasConfig:
    """Runtime settings for the query service."""

    gwas_files_path: Path = Path(".")
    annotation_db: Path | None = None
    gwama_db: Path | None = None
    mrmega_db: Path | None = None
    tabix_binary: str = "tabix"
    reader: str = "tabix"
    index_suffix: str = INDEX_SUFFIX
    fetch_timeout: float | None = DEFAULT_FETCH_TIMEOUT
    max_concurrency: int = len(AUTOSOMES)
    sample_chromosomes: tuple[str, ...] = DEFAULT_SAMPLE_CHROMOSOMES
    search_radius: int = 100_000
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 5001

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AtlasConfig":
        valid_fields = {f.name for f in fields(cls)}
        unknown = set(data) - valid_fields
        if unknown:
            logger.warning("Ignoring unknown configuration keys: %s", ", ".join(sorted(unknown)))

        values = {k: v for k, v in data.items() if k in valid_fields and v is not None}
        for key in PATH_KEYS:
            if key in values:
                values[key] = Path(values[key]).expanduser()
        if "sample_chromosomes" in values:
            values["sample_chromosomes"] = tuple(str(c) for c in values["sample_chromosomes"])
        if "log_level" in values:
            values["log_level"] = values["log_level"].upper()
        return cls(**values)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


def _check_positive_int(config_dict: dict[str, Any], key: str) -> None:
    if key not in config_dict:
        return
    value = config_dict[key]
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigValidationError(f"{key} must be an integer, got {type(value).__name__}")
    if value <= 0:
        raise ConfigValidationError(f"{key} must be positive, got {value}")


def validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values.

    Raises:
        ConfigValidationError: If any configuration value is invalid.
    """
    _check_positive_int(config_dict, "max_concurrency")
    _check_positive_int(config_dict, "search_radius")
    _check_positive_int(config_dict, "port")

    if config_dict.get("fetch_timeout") is not None:
        timeout = config_dict["fetch_timeout"]
        if not isinstance(timeout, int | float) or isinstance(timeout, bool):
            raise ConfigValidationError(
                f"fetch_timeout must be a number, got {type(timeout).__name__}"
            )
        if timeout <= 0:
            raise ConfigValidationError(f"fetch_timeout must be positive, got {timeout}")

    if "reader" in config_dict and config_dict["reader"] not in READERS:
        raise ConfigValidationError(
            f"reader must be one of {sorted(READERS)}, got '{config_dict['reader']}'"
        )

    if "sample_chromosomes" in config_dict:
        chroms = config_dict["sample_chromosomes"]
        if isinstance(chroms, str) or not isinstance(chroms, list | tuple) or not chroms:
            raise ConfigValidationError("sample_chromosomes must be a non-empty list")

    if "log_level" in config_dict:
        log_level = config_dict["log_level"]
        if not isinstance(log_level, str):
            raise ConfigValidationError(
                f"log_level must be a string, got {type(log_level).__name__}"
            )
        if log_level.upper() not in VALID_LOG_LEVELS:
            raise ConfigValidationError(
                f"log_level must be one of {VALID_LOG_LEVELS}, got '{log_level}'"
            )


def load_config(
    config_path: Path | None = None, overrides: dict[str, Any] | None = None
) -> AtlasConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML configuration file, or None for defaults.
        overrides: Optional dict of values to override loaded config. None
            values are ignored so unset CLI options keep the file's value.

    Returns:
        AtlasConfig instance with loaded values.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        ConfigValidationError: If any configuration value is invalid.
    """
    config_dict: dict[str, Any] = {}

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "rb") as f:
            toml_data = tomllib.load(f)

        config_dict = dict(toml_data.get(CONFIG_SECTION, {}))

    if overrides:
        config_dict.update({k: v for k, v in overrides.items() if v is not None})

    validate_config(config_dict)

    return AtlasConfig.from_dict(config_dict)
