"""
Authentication Module - Black Box Interface

Purpose: Authenticate requests before they reach the query engine
Interface: configure(), LoginPlugin, AuthFactory, HashEngine, TokenService
Hidden: Digest parameters, key material, token cache discipline

This module can be completely replaced with any other plugin implementing
middleware, pre_requisite and the table hooks without affecting other modules.
"""

from .audit import AuditLog
from .factory import AuthFactory
from .hashing import HashEngine
from .plugin import LoginPlugin, RequestIntent, configure, load_login_config
from .tokens import TokenClaims, TokenService

__all__ = [
    "AuditLog",
    "AuthFactory",
    "HashEngine",
    "LoginPlugin",
    "RequestIntent",
    "TokenClaims",
    "TokenService",
    "configure",
    "load_login_config",
]
