"""Configuration for SimpleQL."""

from .provider import AuditConfig, ConfigProvider, EnvConfigProvider, LoginConfig, TokenConfig

__all__ = ["AuditConfig", "ConfigProvider", "EnvConfigProvider", "LoginConfig", "TokenConfig"]
