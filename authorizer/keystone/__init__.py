"""
Validate opaque tokens against an OpenStack Keystone (Identity v3) provider.

The service authenticates once with its own credentials, keeps the session
token fresh on its own, and asks Keystone about each external token.
Use validate_token() for the process-wide validator, or build_validator()
with an IdentityConfig to hold one yourself.
"""

from .accessor import ValidatorAccessor, get_validator, validate_token
from .catalog import EndpointFilter, resolve_endpoint
from .config import IdentityConfig, PasswordAuth, TrustAuth, load_identity_config
from .errors import (
    AuthError,
    AuthorizerError,
    ConfigError,
    InitError,
    NotFoundError,
    ValidationError,
)
from .session import KeystoneSession, SessionState, authenticate
from .validator import KeystoneTokenValidator, build_validator

__all__ = [
    "AuthError",
    "AuthorizerError",
    "ConfigError",
    "EndpointFilter",
    "IdentityConfig",
    "InitError",
    "KeystoneSession",
    "KeystoneTokenValidator",
    "NotFoundError",
    "PasswordAuth",
    "SessionState",
    "TrustAuth",
    "ValidationError",
    "ValidatorAccessor",
    "authenticate",
    "build_validator",
    "get_validator",
    "load_identity_config",
    "resolve_endpoint",
    "validate_token",
]
