"""
Ask Keystone whether an external token is still valid.

Background for newcomers:
    Keystone tokens are opaque; we cannot check them locally. Instead we send
    ``HEAD /v3/auth/tokens`` with the token to check in ``X-Subject-Token``
    and our own session token in ``X-Auth-Token``. Keystone answers 200 (or
    204) if the subject token is valid and 404 if it is not. A 401 means *our*
    session token was rejected, which the session handles by authenticating
    again and retrying once.
"""

from __future__ import annotations

import logging

import requests

from .catalog import EndpointFilter
from .config import IdentityConfig
from .errors import AuthError, ValidationError
from .session import DEFAULT_TIMEOUT_SECONDS, SUBJECT_TOKEN_HEADER, KeystoneSession, authenticate

logger = logging.getLogger(__name__)

_VALID_STATUSES = frozenset({200, 204})
_INVALID_STATUSES = frozenset({404})


class KeystoneTokenValidator:
    """
    Validates external tokens against the identity endpoint of one session.

    The endpoint is resolved from the session catalog when the validator is
    built; NotFoundError propagates from the constructor if it is missing.
    Safe to share between threads.
    """

    def __init__(self, session: KeystoneSession, endpoint_filter: EndpointFilter | None = None) -> None:
        self._session = session
        self._endpoint_filter = endpoint_filter or EndpointFilter()
        self._endpoint = session.locate_endpoint(self._endpoint_filter)
        logger.info("Token validation endpoint: %s", self._endpoint)

    @property
    def session(self) -> KeystoneSession:
        return self._session

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def tokens_url(self) -> str:
        return f"{self._endpoint.rstrip('/')}/auth/tokens"

    def validate(self, token: str, timeout: float | None = None) -> bool:
        """
        Return True if Keystone reports ``token`` valid, False if it reports
        it invalid.

        Raises ValidationError on transport failure, an unexpected status,
        a session token that is still rejected after one reauth, or a failed
        reauth.
        """
        if not token or not token.strip():
            logger.debug("Empty token; not valid")
            return False

        try:
            resp = self._session.request(
                "HEAD",
                self.tokens_url,
                headers={SUBJECT_TOKEN_HEADER: token},
                timeout=timeout,
            )
        except requests.RequestException as e:
            logger.warning("Token validation request failed: %s", type(e).__name__)
            raise ValidationError(f"Token validation request failed: {type(e).__name__}") from e
        except AuthError as e:
            raise ValidationError("Reauthentication failed during token validation") from e

        if resp.status_code in _VALID_STATUSES:
            logger.debug("Token valid")
            return True
        if resp.status_code in _INVALID_STATUSES:
            logger.debug("Token not valid")
            return False
        if resp.status_code == 401:
            logger.warning("Session token rejected after reauthentication")
            raise ValidationError("Session token rejected by identity provider")

        logger.warning("Unexpected token validation status=%s", resp.status_code)
        raise ValidationError(f"Unexpected token validation status {resp.status_code}")


def build_validator(config: IdentityConfig, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> KeystoneTokenValidator:
    """
    Authenticate with the service credentials in ``config`` and return a
    validator bound to the configured identity endpoint.

    Raises AuthError or NotFoundError.
    """
    session = authenticate(config.credentials(), timeout=timeout)
    return KeystoneTokenValidator(session, config.endpoint)
