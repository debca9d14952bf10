"""
One shared validator per process, built on first use.

``ValidatorAccessor`` runs its factory exactly once, even when many threads
ask for the validator at the same time: the first caller builds, the others
block until it finishes and then share the result. A failed build is
remembered too, so every caller sees the same ``InitError`` instead of each
one hammering Keystone with new authentication attempts.

Applications that prefer explicit wiring can skip the module-level helpers
and hold a ``KeystoneTokenValidator`` (or their own accessor) directly.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

import pydantic

from authorizer.settings import get_settings

from .config import IdentityConfig, load_identity_config
from .errors import AuthorizerError, ConfigError, InitError
from .validator import KeystoneTokenValidator, build_validator

logger = logging.getLogger(__name__)

ValidatorFactory = Callable[[], KeystoneTokenValidator]


class ValidatorAccessor:
    """Construct-once handle around a validator factory."""

    def __init__(self, factory: ValidatorFactory) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._built = False
        self._validator: KeystoneTokenValidator | None = None
        self._error: Exception | None = None

    def _result(self) -> KeystoneTokenValidator:
        if self._validator is None:
            raise InitError(f"Token validator unavailable: {self._error}") from self._error
        return self._validator

    def get(self) -> KeystoneTokenValidator:
        """
        Return the shared validator, building it on first call.

        Raises InitError if the one construction attempt failed; its cause is
        the ConfigError, AuthError or NotFoundError (or any unexpected error)
        the factory raised.
        """
        if self._built:
            return self._result()

        with self._lock:
            if not self._built:
                logger.info("Building token validator")
                try:
                    self._validator = self._factory()
                except AuthorizerError as e:
                    logger.error("Token validator construction failed: %s", e)
                    self._error = e
                except Exception as e:
                    logger.exception("Token validator construction failed unexpectedly")
                    self._error = e
                self._built = True
        return self._result()

    def validate_token(self, token: str, timeout: float | None = None) -> bool:
        """Validate ``token`` with the shared validator. Raises InitError or ValidationError."""
        return self.get().validate(token, timeout=timeout)

    def reset(self) -> None:
        """Forget the built validator (or the remembered failure); the next call builds again."""
        with self._lock:
            self._built = False
            self._validator = None
            self._error = None


def load_validator(config_path: Path | None = None, timeout: float | None = None) -> KeystoneTokenValidator:
    """
    Default factory: credentials from ``config_path`` (YAML) if given, else
    from the ``OS_*`` environment. Both default to the process settings.
    """
    try:
        settings = get_settings()
    except pydantic.ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ConfigError(f"Invalid AUTHORIZER_ settings: {', '.join(fields)}") from exc
    path = config_path if config_path is not None else settings.resolved_config_path()
    config = load_identity_config(path) if path is not None else IdentityConfig.from_environ()
    return build_validator(
        config,
        timeout=settings.request_timeout_seconds if timeout is None else timeout,
    )


_default_accessor = ValidatorAccessor(load_validator)


def default_accessor() -> ValidatorAccessor:
    return _default_accessor


def get_validator() -> KeystoneTokenValidator:
    return _default_accessor.get()


def validate_token(token: str, timeout: float | None = None) -> bool:
    """
    Validate ``token`` with the process-wide validator.

    Raises InitError if the validator could not be built and ValidationError
    if Keystone could not answer; the caller decides whether to retry,
    degrade or stop.
    """
    return _default_accessor.validate_token(token, timeout=timeout)
