"""Configuration management for the omics CLI.

Reads/writes a TOML config file and provides a typed Config dataclass.
Default location: ``~/.config/omics-cli/config.toml``.
Override with the ``OMICS_CLI_CONFIG`` environment variable.

File layout::

    [api]
    url = "https://api.us.lifeomic.com"
    account = "my-account"
    token = "..."
    timeout = 60.0

    [output]
    format = "pretty"
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, fields
from pathlib import Path

from omics_cli.api.client import DEFAULT_API_URL, DEFAULT_TIMEOUT
from omics_cli.exceptions import ConfigError

_DEFAULT_CONFIG_DIR = Path("~/.config/omics-cli").expanduser()

OUTPUT_FORMATS = ("pretty", "json")


def _config_path() -> Path:
    env = os.environ.get("OMICS_CLI_CONFIG")
    if env:
        return Path(env).expanduser()
    return _DEFAULT_CONFIG_DIR / "config.toml"


@dataclass
class Config:
    api_url: str = DEFAULT_API_URL
    account: str = ""
    token: str = ""
    timeout: float = DEFAULT_TIMEOUT

    # Rendering of command results: "pretty" (indented JSON) or "json"
    default_format: str = "pretty"

    @property
    def is_configured(self) -> bool:
        return bool(self.token and self.account)

    @property
    def masked_token(self) -> str:
        if not self.token:
            return ""
        if len(self.token) <= 11:
            return "***"
        return self.token[:7] + "..." + self.token[-4:]

    def set(self, key: str, value: str) -> None:
        """Set one field from its string form (as typed on the command line)."""
        names = {f.name for f in fields(self)}
        if key not in names:
            raise ConfigError(
                f"Unknown setting '{key}'. Choose from: {', '.join(sorted(names))}"
            )
        if key == "timeout":
            try:
                timeout = float(value)
            except ValueError as exc:
                raise ConfigError(f"timeout must be a number, got '{value}'") from exc
            if timeout <= 0:
                raise ConfigError(f"timeout must be positive, got {timeout}")
            self.timeout = timeout
        elif key == "default_format":
            if value not in OUTPUT_FORMATS:
                choices = ", ".join(OUTPUT_FORMATS)
                raise ConfigError(f"Unknown format '{value}'. Choose from: {choices}")
            self.default_format = value
        else:
            setattr(self, key, value)


def load_config() -> Config:
    """Load config from disk, falling back to defaults + env overrides."""
    path = _config_path()
    cfg = Config()

    if path.exists():
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Malformed config file {path}: {exc}") from exc
        api_section = data.get("api", {})
        output_section = data.get("output", {})

        cfg.api_url = api_section.get("url", cfg.api_url)
        cfg.account = api_section.get("account", cfg.account)
        cfg.token = api_section.get("token", cfg.token)
        if "timeout" in api_section:
            try:
                cfg.timeout = float(api_section["timeout"])
            except (TypeError, ValueError) as exc:
                raise ConfigError(
                    f"Malformed config file {path}: timeout must be a number, "
                    f"got {api_section['timeout']!r}"
                ) from exc

        cfg.default_format = output_section.get("format", cfg.default_format)

    # Environment variables always take precedence
    cfg.api_url = os.environ.get("OMICS_API_URL", cfg.api_url)
    cfg.account = os.environ.get("OMICS_ACCOUNT", cfg.account)
    cfg.token = os.environ.get("OMICS_TOKEN", cfg.token)

    return cfg


def _toml_str(value: str) -> str:
    # JSON string literals are valid TOML basic strings when non-ASCII is kept raw
    return json.dumps(value, ensure_ascii=False)


def save_config(cfg: Config) -> Path:
    """Write config to the TOML file. Returns the path written."""
    path = _config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "[api]",
        f"url = {_toml_str(cfg.api_url)}",
        f"account = {_toml_str(cfg.account)}",
        f"token = {_toml_str(cfg.token)}",
        f"timeout = {float(cfg.timeout)}",
        "",
        "[output]",
        f"format = {_toml_str(cfg.default_format)}",
        "",
    ]

    path.write_text("\n".join(lines), encoding="utf-8")
    if cfg.token:
        path.chmod(0o600)
    return path


def config_exists() -> bool:
    return _config_path().exists()


def config_path_display() -> str:
    return str(_config_path())
