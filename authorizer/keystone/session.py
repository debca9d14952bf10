"""
Service session against the Keystone Identity v3 API.

Background for newcomers:
    To ask Keystone "is this user's token valid?" we must ourselves present a
    token: the *session token* of this service. We get it by posting our
    credentials to ``/v3/auth/tokens``; Keystone answers with the token in the
    ``X-Subject-Token`` header and a service catalog in the body.

    Session tokens expire (usually after an hour). When Keystone answers a
    request with 401, the session authenticates again, swaps in the new token
    and retries the request once. A retried request that is rejected again is
    a failure; we never chain re-authentications.

State machine::

    UNAUTHENTICATED --authenticate--> AUTHENTICATED
    AUTHENTICATED --token rejected--> REAUTHENTICATING
    REAUTHENTICATING --success--> AUTHENTICATED
    REAUTHENTICATING --failure--> UNAUTHENTICATED
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any

import requests

from .catalog import EndpointFilter, ServiceCatalog, parse_catalog, resolve_endpoint
from .config import Credentials
from .errors import AuthError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
SUBJECT_TOKEN_HEADER = "X-Subject-Token"
AUTH_TOKEN_HEADER = "X-Auth-Token"


class SessionState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    REAUTHENTICATING = "reauthenticating"


@dataclass(frozen=True)
class _Grant:
    """Outcome of one token-creation exchange."""

    token: str
    catalog: ServiceCatalog


def _create_token(credentials: Credentials, timeout: float) -> _Grant:
    """
    ``POST /v3/auth/tokens`` with ``credentials``; return the issued token and
    its catalog. Raises AuthError on transport failure, rejection or a
    malformed response.
    """
    url = credentials.token_endpoint
    try:
        resp = requests.post(
            url,
            json=credentials.to_request_body(),
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.warning("Identity request failed url=%s error=%s", url, type(e).__name__)
        raise AuthError(f"Identity request failed: {type(e).__name__}") from e

    if resp.status_code not in (200, 201):
        logger.warning("Identity provider rejected credentials status=%s", resp.status_code)
        raise AuthError(f"Identity provider rejected credentials (status {resp.status_code})")

    token = resp.headers.get(SUBJECT_TOKEN_HEADER)
    if not token:
        raise AuthError(f"No {SUBJECT_TOKEN_HEADER} header in token response")

    try:
        body = resp.json()
    except ValueError as e:
        raise AuthError("Token response is not JSON") from e
    token_body = body.get("token") if isinstance(body, dict) else None
    if not isinstance(token_body, dict):
        raise AuthError("Token response has no 'token' object")

    try:
        # Unscoped tokens come without a catalog.
        catalog = parse_catalog(token_body.get("catalog") or [])
    except ValueError as e:
        raise AuthError(f"Malformed service catalog: {e}") from e

    return _Grant(token=token, catalog=catalog)


class KeystoneSession:
    """
    Holds the service's session token and catalog and sends authenticated
    requests on its behalf.

    Thread-safe: any number of threads may call ``request`` while one of them
    re-authenticates. Use ``authenticate()`` to build one.
    """

    def __init__(
        self,
        credentials: Credentials,
        grant: _Grant,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._credentials = credentials
        self._timeout = timeout
        self._token = grant.token
        self._catalog = grant.catalog
        self._state = SessionState.AUTHENTICATED
        self._lock = threading.Lock()
        # Serializes reauth round-trips; never held together with a request in flight.
        self._reauth_lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def token(self) -> str:
        with self._lock:
            return self._token

    @property
    def catalog(self) -> ServiceCatalog:
        with self._lock:
            return self._catalog

    @property
    def can_reauth(self) -> bool:
        return self._credentials.allow_reauth

    @property
    def timeout(self) -> float:
        return self._timeout

    def locate_endpoint(self, endpoint_filter: EndpointFilter) -> str:
        """Resolve ``endpoint_filter`` against the most recent catalog."""
        return resolve_endpoint(self.catalog, endpoint_filter)

    def reauthenticate(self, stale_token: str, timeout: float | None = None) -> None:
        """
        Replace ``stale_token`` with a freshly issued session token.

        If another thread already replaced it, return without contacting the
        provider. Raises AuthError if reauth is disabled or the exchange fails;
        the session then stays usable and the next rejection tries again.
        """
        with self._reauth_lock:
            with self._lock:
                if self._token != stale_token:
                    logger.debug("Session token already refreshed by another caller")
                    return
                if not self._credentials.allow_reauth:
                    raise AuthError("Session token rejected and reauthentication is disabled")
                self._state = SessionState.REAUTHENTICATING

            logger.info("Session token rejected; reauthenticating")
            try:
                grant = _create_token(
                    self._credentials.without_reauth(),
                    self._timeout if timeout is None else timeout,
                )
            except AuthError:
                with self._lock:
                    self._state = SessionState.UNAUTHENTICATED
                logger.warning("Reauthentication failed")
                raise

            with self._lock:
                self._token = grant.token
                self._catalog = grant.catalog
                self._state = SessionState.AUTHENTICATED
            logger.info("Reauthenticated; session token replaced")

    def _send(
        self,
        method: str,
        url: str,
        token: str,
        headers: dict[str, str] | None,
        timeout: float,
        kwargs: dict[str, Any],
    ) -> requests.Response:
        merged = dict(headers or {})
        merged[AUTH_TOKEN_HEADER] = token
        return requests.request(method, url, headers=merged, timeout=timeout, **kwargs)

    def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        """
        Send ``method url`` with the session token in ``X-Auth-Token``.

        On a 401 the session re-authenticates once and the request is retried
        once; the retry's response is returned as is, even if it is another
        401. Transport errors propagate as ``requests.RequestException`` and
        a failed reauth as AuthError.
        """
        timeout = self._timeout if timeout is None else timeout
        token = self.token
        resp = self._send(method, url, token, headers, timeout, kwargs)
        if resp.status_code != 401 or not self.can_reauth:
            return resp

        self.reauthenticate(token, timeout=timeout)
        return self._send(method, url, self.token, headers, timeout, kwargs)


def authenticate(credentials: Credentials, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> KeystoneSession:
    """
    Exchange ``credentials`` for a session token and catalog.

    No retries here: an expired session is handled later by the session
    itself. Raises AuthError.
    """
    grant = _create_token(credentials, timeout)
    logger.info(
        "Authenticated against %s (catalog services=%d, reauth=%s)",
        credentials.token_endpoint,
        len(grant.catalog),
        credentials.allow_reauth,
    )
    return KeystoneSession(credentials, grant, timeout=timeout)
