from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ctx_snap.config import DEFAULT_CONFIG_FILE, DEFAULT_MAX_SIZE_KB, DEFAULT_OUTPUT
from ctx_snap.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_PREFIX = "CTX_SNAP_"
LIST_FIELDS = frozenset({"ignore", "include"})


class Settings(BaseModel):
    """Configuration settings for one ctx-snap run."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    root: Path = Field(default=Path(), description="Directory to snapshot.")
    output: Path = Field(default=Path(DEFAULT_OUTPUT), description="Output file.")
    max_size_kb: int = Field(default=DEFAULT_MAX_SIZE_KB, ge=0, description="Maximum file size in KB.")
    ignore: list[str] = Field(default_factory=list, description="Skip files matching pattern.")
    include: list[str] = Field(default_factory=list, description="Only keep files matching pattern.")
    quiet: bool = Field(default=False, description="Suppress progress output.")
    json_output: bool = Field(default=False, description="Output as JSON.")
    respect_gitignore: bool = Field(default=True, description="Honor version-control ignore rules.")
    log_file: str = Field(default="", description="Log file path.")

    @classmethod
    def resolve(
        cls,
        root: Path,
        cli_values: Mapping[str, Any],
        *,
        config: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Settings:
        """Merge every configuration source into a Settings instance.

        Precedence, highest first: command line, environment (including a
        `.env` file), YAML config file, built-in defaults.

        Args:
            root (Path): the scan root; also where the default config file is looked up
            cli_values (Mapping[str, Any]): values given on the command line (unset ones omitted)
            config (Path | None): explicit YAML config file; must exist when given
            environ (Mapping[str, str] | None): environment to read, defaults to `.env` + `os.environ`

        Raises:
            ConfigurationError: if a source is unreadable or holds invalid values

        Returns:
            Settings: the merged settings
        """
        if config is None:
            default_config = root / DEFAULT_CONFIG_FILE
            file_values = load_yaml_config(default_config) if default_config.is_file() else {}
        else:
            file_values = load_yaml_config(config)

        env_values = load_env_config(read_environment() if environ is None else environ)

        merged: dict[str, Any] = {**file_values, **env_values, **cli_values, "root": root}
        try:
            return cls(**merged)
        except ValidationError as e:
            raise ConfigurationError(source="settings", message=str(e)) from e


def load_yaml_config(path: Path) -> dict[str, Any]:
    """Load setting defaults from a YAML file.

    Args:
        path (Path): the YAML file to read

    Raises:
        ConfigurationError: if the file cannot be read, is not valid YAML or is not a mapping

    Returns:
        dict[str, Any]: the raw values, keyed by Settings field name
    """
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(source=str(path), message=f"Cannot read config file: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(source=str(path), message=f"Invalid YAML in config file: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(source=str(path), message="Config file must contain a mapping.")
    if "root" in data:
        raise ConfigurationError(source=str(path), message="'root' cannot be set from a config file.")
    return data


def read_environment() -> dict[str, str]:
    """Read the process environment on top of the nearest `.env` file."""
    env_file = find_dotenv(usecwd=True)
    values = {k: v for k, v in dotenv_values(env_file).items() if v is not None} if env_file else {}
    values.update(os.environ)
    return values


def load_env_config(environ: Mapping[str, str]) -> dict[str, Any]:
    """Extract `CTX_SNAP_*` variables as Settings values.

    List settings (`CTX_SNAP_IGNORE`, `CTX_SNAP_INCLUDE`) are comma-separated.
    Other values are left as strings for pydantic to coerce.

    Args:
        environ (Mapping[str, str]): the environment to read

    Returns:
        dict[str, Any]: the values found, keyed by Settings field name
    """
    out: dict[str, Any] = {}
    for key, raw in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX) :].lower()
        if name == "json":
            name = "json_output"
        if name == "root" or name not in Settings.model_fields:
            continue
        if name in LIST_FIELDS:
            out[name] = [p.strip() for p in raw.split(",") if p.strip()]
        else:
            out[name] = raw
    return out
