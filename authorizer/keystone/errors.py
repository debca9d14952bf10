"""Exceptions raised by the Keystone authorizer. Messages never carry token or password values."""

from __future__ import annotations


class AuthorizerError(Exception):
    """Base class for every error raised by this package."""

    pass


class ConfigError(AuthorizerError):
    """Configuration is missing, unreadable or malformed."""

    pass


class AuthError(AuthorizerError):
    """The identity provider rejected our credentials, or the exchange failed in transit."""

    pass


class NotFoundError(AuthorizerError):
    """No service catalog entry matches the requested endpoint filter."""

    pass


class ValidationError(AuthorizerError):
    """
    Transport or protocol failure while validating a token.

    A token the provider reports as invalid is not an error; ``validate``
    returns False for it.
    """

    pass


class InitError(AuthorizerError):
    """
    The shared validator could not be constructed.

    ``__cause__`` holds the original ConfigError, AuthError or NotFoundError.
    """

    pass
