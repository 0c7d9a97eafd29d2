"""Run-wide options resolved once before the pipeline starts."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from kickoff.errors import KickoffError
from kickoff.preconditions import VersionRequirement

CONFIG_FILENAME = "kickoff.yaml"
DEFAULT_TEMPLATE_REPOSITORY = "https://raw.githubusercontent.com/JeremiahChurch/jc-rails-template/master"
ACCEPT_ALL_VARIABLES = ("ACCEPT_ALL", "YES_ALL")


class ConfigError(KickoffError):
    """Raised when ``kickoff.yaml`` cannot be read or validated."""


class RunOptions(BaseModel):
    """Immutable settings shared by every pipeline step.

    ``use_git``, ``using_sidekiq`` and ``use_bootstrap`` stay ``None`` until
    they are answered; the orchestrator replaces the model with a copy once
    the answers are known.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    root: Path
    app_name: str
    accept_all: bool = False
    use_git: bool | None = None
    using_sidekiq: bool | None = None
    use_bootstrap: bool | None = None
    run_install: bool = True
    install_command: Tuple[str, ...] = ("bundle", "install")
    rails_requirement: str = ">= 6.0.2"
    ruby_requirement: str = ">= 2.6.3"
    template_repository: str = DEFAULT_TEMPLATE_REPOSITORY

    @field_validator("rails_requirement", "ruby_requirement")
    @classmethod
    def _valid_requirement(cls, value: str) -> str:
        VersionRequirement.parse(value)
        return value.strip()

    @field_validator("install_command")
    @classmethod
    def _non_empty_command(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("install_command cannot be empty")
        return value

    @property
    def readme_url(self) -> str:
        return f"{self.template_repository.rstrip('/')}/templates/README.md"


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "y"}


def accept_all_from_env(environ: Mapping[str, str]) -> bool:
    return any(_truthy(environ.get(name)) for name in ACCEPT_ALL_VARIABLES)


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse {path.name}: {error}", details={"path": str(path)}) from error

    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must be a mapping at the top level.", details={"path": str(path)})
    return data


def load_options(root: Path | str, environ: Mapping[str, str] | None = None, **overrides: Any) -> RunOptions:
    """Build :class:`RunOptions` for the application at ``root``.

    Values come from defaults, then ``kickoff.yaml`` in ``root``, then the
    ``ACCEPT_ALL``/``YES_ALL`` environment switches, then ``overrides``.
    """

    environ = os.environ if environ is None else environ
    root_path = Path(root).resolve()

    data: Dict[str, Any] = {"root": root_path, "app_name": root_path.name}
    config_path = root_path / CONFIG_FILENAME
    if config_path.is_file():
        data.update(_read_config_file(config_path))
        data["root"] = root_path

    if accept_all_from_env(environ):
        data["accept_all"] = True
    data.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return RunOptions(**data)
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration: {error}", details={"path": str(config_path)}) from error


__all__ = [
    "ACCEPT_ALL_VARIABLES",
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_TEMPLATE_REPOSITORY",
    "RunOptions",
    "accept_all_from_env",
    "load_options",
]
