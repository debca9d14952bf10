from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status

from authorizer.keystone.accessor import ValidatorAccessor
from authorizer.keystone.errors import InitError, ValidationError
from authorizer.security.auth import extract_token

logger = logging.getLogger(__name__)


def get_accessor(request: Request) -> ValidatorAccessor:
    accessor = getattr(request.app.state, "accessor", None)
    if accessor is None:
        raise RuntimeError("Validator accessor not set. Did app startup run?")
    return accessor


def check_token(accessor: ValidatorAccessor, token: str) -> bool:
    """
    Validate `token`, mapping an unavailable identity provider to 503.

    The 503 detail stays generic; provider errors can name internal URLs.
    """

    try:
        return accessor.validate_token(token)
    except InitError as exc:
        logger.error("Token validator unavailable")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Token validation unavailable") from exc
    except ValidationError as exc:
        logger.warning("Token validation failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Token validation unavailable") from exc


def require_valid_token(
    request: Request,
    accessor: ValidatorAccessor = Depends(get_accessor),
) -> str:
    """
    Route dependency: the caller must present a token Keystone reports valid.

    Returns the token so handlers can forward it.
    """

    token = extract_token(request)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")

    if not check_token(accessor, token):
        logger.info("Rejected invalid token path=%s method=%s", request.url.path, request.method)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    return token
