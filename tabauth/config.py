"""Configuration system for tabauth using pydantic-settings.

Supports layered configuration:
1. Built-in defaults (lowest priority)
2. pyproject.toml [tool.tabauth] section (project-level)
3. ./tabauth.toml (project-level, explicit)
4. ~/.config/tabauth/config.toml (user-level, overrides project)
5. Environment variables

TOML values reach the settings as constructor arguments, which pydantic-settings
ranks above the environment. A section set in any TOML file comes from TOML:
its TABAUTH_AUTH__* / TABAUTH_LOG__* variables apply only when no file sets
that section.

Environment variables use TABAUTH_ prefix with nested delimiter __.
Example: TABAUTH_AUTH__CLIENT_ID, TABAUTH_LOG__LEVEL
"""

from __future__ import annotations

import json
import os
import sys

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, ClassVar, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


DEFAULT_SCOPES: tuple[str, ...] = ("openid", "profile", "email")

StorageKind = Literal["local", "session", "memory", "redis", "keyring"]


def _find_config_files() -> list[Path]:
    """Find all configuration files in order of precedence (lowest first)."""
    files = []

    pyproject = Path("pyproject.toml")
    if pyproject.exists():
        files.append(pyproject)

    tabauth_toml = Path("tabauth.toml")
    if tabauth_toml.exists():
        files.append(tabauth_toml)

    if sys.platform == "win32":
        user_config = Path(os.environ.get("APPDATA", "~")) / "tabauth" / "config.toml"
    else:
        user_config = Path("~/.config/tabauth/config.toml")
    user_config = user_config.expanduser()
    if user_config.exists():
        files.append(user_config)

    env_config = os.environ.get("TABAUTH_CONFIG_FILE")
    if env_config:
        env_path = Path(env_config)
        if env_path.exists():
            files.append(env_path)

    return files


def _load_toml_config() -> dict[str, Any]:
    """Load and merge all TOML configuration files."""
    merged: dict[str, Any] = {}

    for config_file in _find_config_files():
        try:
            data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        except (OSError, tomllib.TOMLDecodeError):
            continue  # invalid config files are ignored

        if config_file.name == "pyproject.toml":
            data = data.get("tool", {}).get("tabauth", {})

        merged = _deep_merge(merged, data)

    return merged


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# Field names that contain sensitive data and must be redacted in output.
_SENSITIVE_FIELDS: set[str] = {
    "redis_url",
}

_REDACTED = "********"


class AuthConfig(BaseSettings):
    """OpenID Connect client configuration.

    Immutable once constructed. Endpoint URLs are validated when they are
    resolved, not here, so a config may be assembled from env vars in parts.

    Environment prefix: TABAUTH_AUTH__
    Example: TABAUTH_AUTH__ISSUER=https://idp.example.com/t123
    Example: TABAUTH_AUTH__SCOPES="openid profile offline_access"

    TOML section: [tool.tabauth.auth]
    """

    model_config = SettingsConfigDict(
        env_prefix="TABAUTH_AUTH__",
        extra="ignore",
        frozen=True,
    )

    # Provider
    issuer: str = Field(
        default="",
        description="Issuer base URL; default endpoints are derived from it",
    )
    authorize_endpoint: str | None = Field(
        default=None,
        description="Authorization endpoint override",
    )
    token_endpoint: str | None = Field(
        default=None,
        description="Token endpoint override",
    )
    userinfo_endpoint: str | None = Field(
        default=None,
        description="UserInfo endpoint override",
    )
    end_session_endpoint: str | None = Field(
        default=None,
        description="End-session endpoint (no default; logout skips it when unset)",
    )
    endpoint_path_prefix: str = Field(
        default="/oidc",
        description="Path inserted between issuer and authorize/token/userinfo",
    )

    # Client
    client_id: str = Field(default="", description="OAuth2 public client ID")
    redirect_uri: str = Field(default="", description="Registered redirect URI")
    post_logout_redirect_uri: str | None = Field(
        default=None,
        description="Where the provider (or the client) lands after logout",
    )
    scopes: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_SCOPES),
        description="Requested scopes (space- or comma-separated in env vars)",
    )
    audience: str | None = Field(default=None, description="Optional API audience")
    extra_authorize_params: dict[str, str] = Field(
        default_factory=dict,
        description="Extra authorize query parameters, merged last",
    )
    default_app_redirect: str | None = Field(
        default=None,
        description="App route passed as app_state when login() gets none",
    )

    # Refresh
    use_refresh_token: bool = Field(
        default=True,
        description="Refresh access tokens with the refresh_token grant",
    )
    clock_skew_seconds: int = Field(default=60, ge=0)
    refresh_leeway_seconds: int = Field(default=90, ge=0)
    refresh_lock_key: str = Field(default="tabauth_refresh_lock", min_length=1)
    refresh_lock_ttl_ms: int = Field(default=15000, gt=0)
    refresh_lock_wait_ms: int = Field(default=6000, ge=0)

    # Storage
    storage: StorageKind = Field(
        default="session",
        description="Storage backend: local, session, memory, redis, or keyring",
    )
    storage_path: str = Field(
        default="~/.config/tabauth/storage.json",
        description="JSON file used by the local (durable) backend",
    )
    session_scope: str | None = Field(
        default=None,
        description="Browsing-session scope for the session backend (default: parent pid)",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for the redis backend",
    )
    storage_prefix: str = Field(default="tabauth", description="Key prefix for the redis backend")
    keyring_service: str = Field(
        default="tabauth",
        min_length=1,
        description="OS keyring service name for the keyring backend",
    )

    # HTTP
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("scopes", mode="before")
    @classmethod
    def _parse_scopes(cls, v: Any) -> list[str]:
        """Accept a space- or comma-separated string (from env var) or a list."""
        if v is None:
            return []
        if isinstance(v, str):
            return [s for s in v.replace(",", " ").split() if s]
        if not isinstance(v, (list, tuple)):
            msg = f"scopes must be a list or a separated string, got {type(v).__name__}"
            raise TypeError(msg)
        return [str(s).strip() for s in v if str(s).strip()]


class LogSettings(BaseSettings):
    """Logging settings.

    Environment prefix: TABAUTH_LOG__
    Example: TABAUTH_LOG__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_prefix="TABAUTH_LOG__",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    format: str = "%(name)s - %(levelname)s - %(message)s"


class TabAuthSettings(BaseSettings):
    """Main settings aggregating all configuration sections.

    Environment prefix: TABAUTH__

    Configuration sources (in order of precedence):
    1. Built-in defaults
    2. pyproject.toml [tool.tabauth] section
    3. ./tabauth.toml (project-level)
    4. ~/.config/tabauth/config.toml (user-level, overrides project)
    5. Environment variables, for sections no TOML file sets
    """

    model_config = SettingsConfigDict(
        env_prefix="TABAUTH__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    auth: AuthConfig = Field(default_factory=AuthConfig)
    log: LogSettings = Field(default_factory=LogSettings)

    _sections: ClassVar[list[tuple[str, str, str]]] = [
        ("OpenID Connect Client", "auth", "AUTH"),
        ("Logging", "log", "LOG"),
    ]

    def __init__(self, **data: Any) -> None:
        toml_config = _load_toml_config()
        merged = _deep_merge(toml_config, data)
        super().__init__(**merged)

    def _section_data(self) -> dict[str, Any]:
        """Dump every section with sensitive fields removed."""
        return self.model_dump(
            exclude={attr: _SENSITIVE_FIELDS for _, attr, _ in self._sections},
        )

    def _redacted_names(self, attr_name: str) -> list[str]:
        section_cls = type(getattr(self, attr_name))
        return sorted(_SENSITIVE_FIELDS & section_cls.model_fields.keys())

    def to_toml(self) -> str:
        """Export settings as TOML for tabauth.toml."""
        lines = [
            "# tabauth Configuration",
            "# Generated by: tabauth config --toml",
            "",
        ]
        all_data = self._section_data()

        for _, attr_name, _ in self._sections:
            lines.append(f"[{attr_name}]")
            for field_name, field_value in all_data.get(attr_name, {}).items():
                if field_value is None:
                    continue
                if isinstance(field_value, list):
                    value_str = "[" + ", ".join(f'"{v}"' for v in field_value) + "]"
                elif isinstance(field_value, dict):
                    value_str = "{" + ", ".join(f'{k} = "{v}"' for k, v in field_value.items()) + "}"
                elif isinstance(field_value, bool):
                    value_str = "true" if field_value else "false"
                elif isinstance(field_value, str):
                    value_str = f'"{field_value}"'
                else:
                    value_str = str(field_value)
                lines.append(f"{field_name} = {value_str}")
            lines.extend(f'{rn} = "{_REDACTED}"' for rn in self._redacted_names(attr_name))
            lines.append("")

        return "\n".join(lines)

    def to_env(self) -> str:
        """Export settings as shell environment variables."""
        lines = [
            "# tabauth Environment Variables",
            "# Generated by: tabauth config --env",
            "",
        ]
        all_data = self._section_data()

        for _, attr_name, env_prefix in self._sections:
            for field_name, field_value in all_data.get(attr_name, {}).items():
                if field_value is None:
                    continue
                env_name = f"TABAUTH_{env_prefix}__{field_name.upper()}"
                if isinstance(field_value, list):
                    value_str = " ".join(str(v) for v in field_value)
                elif isinstance(field_value, dict):
                    value_str = json.dumps(field_value).replace('"', '\\"')
                elif isinstance(field_value, bool):
                    value_str = "true" if field_value else "false"
                else:
                    value_str = str(field_value)
                lines.append(f'export {env_name}="{value_str}"')
            lines.extend(
                f'export TABAUTH_{env_prefix}__{rn.upper()}="{_REDACTED}"'
                for rn in self._redacted_names(attr_name)
            )

        return "\n".join(lines)

    def show(self) -> str:
        """Format settings as a readable table."""
        lines = ["tabauth Configuration", "=" * 60, ""]
        all_data = self._section_data()

        for display_name, attr_name, _ in self._sections:
            lines.append(f"\n{display_name}")
            lines.append("-" * 40)
            for field_name, field_value in all_data.get(attr_name, {}).items():
                value_str = str(field_value)
                if len(value_str) > 50:
                    value_str = value_str[:47] + "..."
                lines.append(f"  {field_name:24} = {value_str}")
            lines.extend(f"  {rn:24} = {_REDACTED}" for rn in self._redacted_names(attr_name))

        return "\n".join(lines)


@lru_cache(maxsize=1)
def get_settings() -> TabAuthSettings:
    """Get the global settings instance (cached).

    Call clear_settings() to reload configuration.
    """
    return TabAuthSettings()


def clear_settings() -> None:
    """Clear the cached settings to force reload."""
    get_settings.cache_clear()


def reload_settings() -> TabAuthSettings:
    """Reload settings from all sources."""
    clear_settings()
    return get_settings()
