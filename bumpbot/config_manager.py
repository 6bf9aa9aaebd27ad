"""Settings loading for bumpbot: defaults, TOML file, environment, CLI overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import toml

from . import config
from .errors import ConfigError

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """Effective configuration of one run."""
    workspace: Path = field(default_factory=Path.cwd)
    execute: bool = False
    keep_branch: bool = False
    include_transitive: bool = False
    token: str = ""
    update_command: str = config.DEFAULT_UPDATE_COMMAND
    update_args: List[str] = field(default_factory=lambda: list(config.DEFAULT_UPDATE_ARGS))
    label: str = config.DEFAULT_LABEL
    log_level: str = config.DEFAULT_LOG_LEVEL
    http_timeout: float = config.DEFAULT_HTTP_TIMEOUT
    remote: str = config.DEFAULT_REMOTE
    user_name: str = config.DEFAULT_USER_NAME
    user_email: str = config.DEFAULT_USER_EMAIL
    commit_message: str = config.DEFAULT_COMMIT_MESSAGE
    branch_prefix: str = config.DEFAULT_BRANCH_PREFIX

    @property
    def manifest_path(self) -> Path:
        return self.workspace / "package.json"

    def masked_token(self) -> str:
        if not self.token:
            return "(not set)"
        return self.token[:4] + "•" * min(max(len(self.token) - 4, 0), 16)


# config-file key -> (TOML section, Settings attribute)
FILE_KEYS: Dict[str, tuple] = {
    "workspace": ("bumpbot", "workspace"),
    "execute": ("bumpbot", "execute"),
    "keep": ("bumpbot", "keep_branch"),
    "shadows": ("bumpbot", "include_transitive"),
    "token": ("bumpbot", "token"),
    "update_command": ("bumpbot", "update_command"),
    "update_args": ("bumpbot", "update_args"),
    "label": ("bumpbot", "label"),
    "log_level": ("bumpbot", "log_level"),
    "http_timeout": ("bumpbot", "http_timeout"),
    "remote": ("git", "remote"),
    "username": ("git", "user_name"),
    "useremail": ("git", "user_email"),
    "message": ("git", "commit_message"),
    "prefix": ("git", "branch_prefix"),
}

ENV_KEYS: Dict[str, str] = {
    "WORKSPACE": "workspace",
    "EXECUTE": "execute",
    "KEEP": "keep_branch",
    "SHADOWS": "include_transitive",
    "GITHUB_TOKEN": "token",
    "UPDATE_COMMAND": "update_command",
    "UPDATE_ARGS": "update_args",
    "LOG_LEVEL": "log_level",
    "GIT_REMOTE": "remote",
    "GIT_USER_NAME": "user_name",
    "GIT_USER_EMAIL": "user_email",
    "GIT_COMMIT_MESSAGE": "commit_message",
    "GIT_BRANCH_PREFIX": "branch_prefix",
}


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigError(f"Expected a boolean, got {value!r}")


def _coerce(attr: str, value: Any) -> Any:
    """Convert a raw file/env/CLI value to the type of ``Settings.<attr>``."""
    kind = {f.name: f.type for f in fields(Settings)}[attr]
    if kind == "bool":
        return parse_bool(value)
    if kind == "Path":
        return Path(value).expanduser()
    if kind == "float":
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{attr} must be a number, got {value!r}") from e
    if kind == "List[str]":
        if isinstance(value, str):
            return value.split()
        return [str(v) for v in value]
    return str(value)


def load_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the whole TOML config, or an empty dict if there is none."""
    path = path or config.CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as e:
        raise ConfigError(f"Could not read {path}: {e}") from e


def _from_file(data: Mapping[str, Any]) -> Dict[str, Any]:
    values = {}
    for key, (section, attr) in FILE_KEYS.items():
        table = data.get(section) or {}
        if key in table:
            values[attr] = _coerce(attr, table[key])
    return values


def _from_env(environ: Mapping[str, str]) -> Dict[str, Any]:
    values = {}
    for name, attr in ENV_KEYS.items():
        if name in environ:
            values[attr] = _coerce(attr, environ[name])
    return values


def _apply_layer(values: Dict[str, Any], layer: Mapping[str, Any]) -> None:
    # A layer naming a command without arguments clears arguments from earlier layers
    if "update_command" in layer and "update_args" not in layer:
        values["update_args"] = []
    values.update(layer)


def load_settings(
    overrides: Optional[Mapping[str, Any]] = None,
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Resolve settings: defaults < TOML file < environment < ``overrides``.

    ``overrides`` uses Settings attribute names; None values are ignored so
    unset CLI options fall through.
    """
    environ = os.environ if environ is None else environ
    cli = {attr: _coerce(attr, v) for attr, v in (overrides or {}).items() if v is not None}
    values: Dict[str, Any] = {}
    for layer in (_from_file(load_file(config_file)), _from_env(environ), cli):
        _apply_layer(values, layer)

    settings = replace(Settings(), **values)
    return replace(settings, workspace=settings.workspace.resolve())


def save_setting(key: str, value: str, config_file: Optional[Path] = None) -> Path:
    """Persist one ``key = value`` pair into the TOML config file.

    Args:
        key: A config-file key, e.g. ``"execute"`` or ``"prefix"``
        value: Raw string value; converted to the setting's type

    Returns:
        Path of the written file
    """
    if key not in FILE_KEYS:
        raise ConfigError(f"Unknown setting '{key}'. Known: {', '.join(sorted(FILE_KEYS))}")
    section, attr = FILE_KEYS[key]
    coerced = _coerce(attr, value)
    if isinstance(coerced, Path):
        coerced = str(coerced)

    path = config_file or config.CONFIG_FILE
    data = load_file(path)
    data.setdefault(section, {})[key] = coerced
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        toml.dump(data, f)
    return path
