from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

from jsonnet_bundler.application.jsonnetfile import MANIFEST_FILE
from jsonnet_bundler.domain.errors import SettingsError
from jsonnet_bundler.domain.json_types import as_json_dict

CONFIG_FILE = ".jb.toml"
DEFAULT_HOME = "vendor"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_VARS = {
    "home": "JB_HOME",
    "jobs": "JB_JOBS",
    "timeout": "JB_TIMEOUT",
    "log_level": "JB_LOG_LEVEL",
}


@dataclass(frozen=True)
class Settings:
    home: Path = Path(DEFAULT_HOME)
    manifest_name: str = MANIFEST_FILE
    jobs: int = 4
    timeout: float | None = None
    log_level: str = "WARNING"

    def cache_dir(self, workdir: Path) -> Path:
        return self.home if self.home.is_absolute() else workdir / self.home

    def manifest_path(self, workdir: Path) -> Path:
        return workdir / self.manifest_name


def _coerce(key: str, value: Any, origin: str) -> Any:
    try:
        if key == "home":
            return Path(str(value))
        if key == "manifest_name":
            name = str(value)
            if not name or "/" in name:
                raise ValueError(name)
            return name
        if key == "jobs":
            jobs = int(value)
            if jobs < 1:
                raise ValueError(jobs)
            return jobs
        if key == "timeout":
            if value in (None, ""):
                return None
            timeout = float(value)
            if timeout <= 0:
                raise ValueError(timeout)
            return timeout
        if key == "log_level":
            level = str(value).upper()
            if level not in LOG_LEVELS:
                raise ValueError(level)
            return level
    except (TypeError, ValueError) as e:
        raise SettingsError(
            f"Invalid value for {key} in {origin}: {value!r}",
            details={"key": key, "origin": origin},
            cause=e,
        )
    raise SettingsError(f"Unknown setting {key} in {origin}", details={"key": key, "origin": origin})


def _from_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        raw = as_json_dict(tomllib.loads(path.read_text(encoding="utf-8")))
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise SettingsError(f"Could not read {path}", details={"path": str(path)}, cause=e)
    table = as_json_dict(raw.get("settings"))
    return {key: _coerce(key, value, str(path)) for key, value in table.items()}


def _from_env(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for key, var in ENV_VARS.items():
        if env.get(var):
            values[key] = _coerce(key, env[var], var)
    return values


def load_settings(
    workdir: Path,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Defaults, then ``.jb.toml``, then ``JB_*`` variables, then explicit overrides."""
    settings = Settings()
    known = {f.name for f in fields(Settings)}
    layers = [
        _from_config_file(workdir / CONFIG_FILE),
        _from_env(os.environ if env is None else env),
        {
            key: _coerce(key, value, "command line")
            for key, value in (overrides or {}).items()
            if value is not None and key in known
        },
    ]
    for layer in layers:
        settings = replace(settings, **layer)
    return settings
