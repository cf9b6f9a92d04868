"""Configuration loading entry point."""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Never

from pydantic import ValidationError

from deckstore.exceptions import ConfigValidationError

from ._loader import deep_merge, parse_env_vars, read_toml_file
from ._models import DeckstoreConfig

CONFIG_PATH_ENV = "DECKSTORE_CONFIG"


def _raise_validation_error(error: ValidationError) -> Never:
    first = error.errors()[0]
    key = ".".join(str(part) for part in first["loc"]) or "<root>"
    msg = f"Invalid configuration value for '{key}': {first['msg']}"
    raise ConfigValidationError(
        msg,
        key=key,
        value=first.get("input"),
        expected=first["msg"],
    ) from error


def load_config(
    path: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> DeckstoreConfig:
    """Load configuration from defaults, a TOML file and the environment.

    Sources in increasing precedence:
        1. Built-in model defaults
        2. TOML file (``path``, or ``$DECKSTORE_CONFIG`` when path is None)
        3. ``DECKSTORE_<SECTION>__<KEY>`` environment variables

    Args:
        path: Explicit TOML config file.
        environ: Environment to read (defaults to os.environ).

    Returns:
        The validated configuration.

    Raises:
        ConfigLoadError: If the config file cannot be read or parsed.
        ConfigValidationError: If a merged value is invalid.
    """
    env = os.environ if environ is None else environ

    config_path = path
    if config_path is None and env.get(CONFIG_PATH_ENV):
        config_path = Path(env[CONFIG_PATH_ENV])

    data = read_toml_file(config_path) if config_path is not None else {}
    merged = deep_merge(data, parse_env_vars(environ=env))

    try:
        return DeckstoreConfig.model_validate(merged)
    except ValidationError as e:
        _raise_validation_error(e)
