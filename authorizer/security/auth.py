from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)

AUTH_TOKEN_HEADER = "X-Auth-Token"
AUTHORIZATION_HEADER = "Authorization"
BEARER_PREFIX = "Bearer"


def extract_token(request: Request) -> str | None:
    """
    Read the caller's token from the request.

    - `X-Auth-Token: <token>` (OpenStack style) wins when present
    - otherwise `Authorization: Bearer <token>`
    - returns None when neither header is sent
    """

    raw_token = request.headers.get(AUTH_TOKEN_HEADER)
    if raw_token is not None:
        token = raw_token.strip()
        if not token:
            logger.warning("Empty %s header path=%s method=%s", AUTH_TOKEN_HEADER, request.url.path, request.method)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid {AUTH_TOKEN_HEADER}. Missing token.",
            )
        return token

    raw = request.headers.get(AUTHORIZATION_HEADER)
    if not raw:
        logger.info("Missing token header path=%s method=%s", request.url.path, request.method)
        return None

    prefix = f"{BEARER_PREFIX} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {AUTHORIZATION_HEADER}. Expected '{BEARER_PREFIX} <token>'.",
        )

    token = raw[len(prefix) :].strip()
    if not token:
        logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {AUTHORIZATION_HEADER}. Missing token after '{BEARER_PREFIX}'.",
        )
    return token
