"""
Authentication Factory following Black Box Design principles.

This factory:
- Constructs the login plugin based on configuration
- Creates the process-wide token service exactly once
- Wires the audit trail when it is configured
"""

import logging
from typing import Any, Mapping, Optional

from ...config.provider import ConfigProvider
from .audit import AuditLog
from .hashing import HashEngine
from .plugin import LoginPlugin, configure, load_login_config
from .tokens import TokenService

logger = logging.getLogger(__name__)


class AuthFactory:
    """
    Factory for building the login plugin.

    This is the composition root that:
    - Creates all auth components
    - Wires them together via dependency injection
    - Returns only the plugin
    """

    @staticmethod
    def build(
        config_provider: ConfigProvider,
        options: Optional[Mapping[str, Any]] = None,
        redis_client: Optional[Any] = None
    ) -> LoginPlugin:
        """
        Build the login plugin.

        Args:
            config_provider: Configuration provider
            options: Plugin options, overriding the ones from the provider
            redis_client: Optional Redis client for the audit trail

        Returns:
            Configured LoginPlugin

        Raises:
            ConfigValidationError: If the plugin options are invalid
        """
        login_options = dict(config_provider.get_login_options())
        login_options.update(options or {})

        token_config = config_provider.get_token_config()
        audit_config = config_provider.get_audit_config()

        if redis_client is not None:
            audit = AuditLog(redis_client)
        elif audit_config.is_configured:
            logger.info("Audit trail enabled")
            audit = AuditLog.from_url(audit_config.redis_url)
        else:
            audit = AuditLog()

        # Validate the options before paying for the key generation
        config = load_login_config(login_options)
        return LoginPlugin(
            config,
            token_service=TokenService.generate(token_config.key_size),
            hash_engine=HashEngine(),
            audit=audit
        )

    @staticmethod
    def build_for_testing(
        token_service: TokenService,
        options: Optional[Mapping[str, Any]] = None,
        redis_client: Optional[Any] = None
    ) -> LoginPlugin:
        """
        Build the plugin with an existing token service.

        Args:
            token_service: Pre-built token service (tests share one key pair)
            options: Plugin options
            redis_client: Optional mock Redis client

        Returns:
            LoginPlugin for testing
        """
        return configure(
            options,
            token_service=token_service,
            audit=AuditLog(redis_client)
        )
