"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

MIN_KEY_SIZE = 2048


@dataclass
class LoginConfig:
    """Login plugin configuration."""
    login: str = "email"
    password: str = "password"
    salt: Optional[str] = "salt"
    user_table: str = "User"


@dataclass
class TokenConfig:
    """Bearer token configuration."""
    key_size: int = 4096


@dataclass
class AuditConfig:
    """Audit trail configuration."""
    enabled: bool
    redis_url: Optional[str]

    @property
    def is_configured(self) -> bool:
        """Check if the audit trail can be written."""
        return self.enabled and bool(self.redis_url)


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_login_options(self) -> Dict[str, Any]:
        """Get raw login plugin options."""
        ...

    def get_token_config(self) -> TokenConfig:
        """Get token configuration."""
        ...

    def get_audit_config(self) -> AuditConfig:
        """Get audit configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_login_options(self) -> Dict[str, Any]:
        """
        Get login plugin options from environment variables.

        Only the variables that are set are returned so that the plugin
        defaults apply to the others. An empty SIMPLEQL_SALT_FIELD disables
        salting.
        """
        env_names = {
            "login": "SIMPLEQL_LOGIN_FIELD",
            "password": "SIMPLEQL_PASSWORD_FIELD",
            "salt": "SIMPLEQL_SALT_FIELD",
            "userTable": "SIMPLEQL_USER_TABLE",
        }
        options: Dict[str, Any] = {}
        for option, env_name in env_names.items():
            value = os.getenv(env_name)
            if value is not None:
                options[option] = value.strip()
        return options

    def get_token_config(self) -> TokenConfig:
        """Get token configuration from environment variables."""
        raw = os.getenv("SIMPLEQL_RSA_KEY_SIZE", "4096")
        try:
            key_size = int(raw)
        except ValueError:
            raise ValueError(f"SIMPLEQL_RSA_KEY_SIZE must be an integer, got {raw!r}")
        if key_size < MIN_KEY_SIZE:
            raise ValueError(
                f"SIMPLEQL_RSA_KEY_SIZE must be at least {MIN_KEY_SIZE} bits, got {key_size}"
            )
        return TokenConfig(key_size=key_size)

    def get_audit_config(self) -> AuditConfig:
        """Get audit configuration from environment variables."""
        return AuditConfig(
            enabled=os.getenv("SIMPLEQL_AUDIT_ENABLED", "false").lower() == "true",
            redis_url=os.getenv("SIMPLEQL_REDIS_URL") or None
        )
