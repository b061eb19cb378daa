"""
Connection settings for the Redmine client.
Precedence: explicit overrides (CLI flags) > environment variables > YAML config file.
"""

import os
from typing import Dict, Mapping, Optional

import yaml

from ingest.session import Session
from ingest.transport import Transport

# default config file, used only when it exists
CONFIG_FILENAME = os.path.join("~", ".redmine.yaml")

ENV_VARS = {
    "url": "REDMINE_URL",
    "api_key": "REDMINE_API_KEY",
    "username": "REDMINE_USERNAME",
    "password": "REDMINE_PASSWORD",
}


class ConfigError(ValueError):
    """Missing or malformed connection settings."""


class Settings:
    """
    Resolved connection settings.
    """

    def __init__(self, url: str = "", api_key: str = "", username: str = "", password: str = ""):
        self.url = url
        self.api_key = api_key
        self.username = username
        self.password = password

    def __repr__(self):
        return f"Settings(url={self.url!r}, api_key={'*****' if self.api_key else ''!r}, username={self.username!r})"


def _resolve_path(path: Optional[str], env: Mapping[str, str]) -> Optional[str]:
    if path:
        return path
    if env.get("REDMINE_CONFIG"):
        return env["REDMINE_CONFIG"]
    default = os.path.expanduser(CONFIG_FILENAME)
    return default if os.path.exists(default) else None


def load_file(path: str) -> Dict[str, str]:
    """Read a YAML mapping of url/api_key/username/password."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping, got {type(data).__name__}")
    return {k: str(data[k]) for k in ENV_VARS if data.get(k) is not None}


def load_settings(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None, **overrides) -> Settings:
    """Merge file, environment and keyword overrides into a Settings. Empty overrides are ignored."""
    env = os.environ if env is None else env
    values: Dict[str, str] = {}
    cfg_path = _resolve_path(path, env)
    if cfg_path:
        values.update(load_file(cfg_path))
    for field, var in ENV_VARS.items():
        if env.get(var):
            values[field] = env[var]
    for field, value in overrides.items():
        if field not in ENV_VARS:
            raise TypeError(f"unknown setting {field!r}")
        if value:
            values[field] = value
    return Settings(**values)


def open_session(settings: Settings, transport: Optional[Transport] = None) -> Session:
    """Build a Session from settings. An API key wins over username/password."""
    if not settings.url:
        raise ConfigError(f"no Redmine URL configured (flag --url or env {ENV_VARS['url']})")
    if settings.api_key:
        return Session.establish_by_key(settings.url, settings.api_key, transport)
    if settings.username and settings.password:
        return Session.establish_by_credentials(settings.url, settings.username, settings.password, transport)
    raise ConfigError(
        f"no credentials configured: set an API key (--api-key / {ENV_VARS['api_key']}) "
        f"or a username and password (--username, --password / {ENV_VARS['username']}, {ENV_VARS['password']})"
    )


__all__ = ["ConfigError", "Settings", "load_file", "load_settings", "open_session"]
