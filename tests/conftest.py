"""
Pytest fixtures for the test suite.

Keystone is never contacted: tests patch ``requests`` in the module under test
and feed it MagicMock responses built by the factories below.
"""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from authorizer.keystone.config import PasswordAuth

IDENTITY_URL = "https://id.example/v3"


def _catalog() -> list[dict]:
    return [
        {
            "type": "identity",
            "name": "keystone",
            "endpoints": [
                {
                    "interface": "public",
                    "region": "RegionOne",
                    "region_id": "RegionOne",
                    "url": IDENTITY_URL,
                },
                {
                    "interface": "internal",
                    "region": "RegionOne",
                    "region_id": "RegionOne",
                    "url": "http://keystone.internal:5000/v3",
                },
            ],
        },
        {
            "type": "compute",
            "name": "nova",
            "endpoints": [
                {"interface": "public", "region": "RegionOne", "url": "https://compute.example/v2.1"},
            ],
        },
    ]


@pytest.fixture
def catalog() -> list[dict]:
    """Raw ``token.catalog`` list as Keystone returns it."""
    return _catalog()


@pytest.fixture
def credentials() -> PasswordAuth:
    return PasswordAuth(
        auth_url=IDENTITY_URL,
        username="svc",
        password="p",
        domain_name="default",
    )


@pytest.fixture
def token_response():
    """Factory for a ``POST /v3/auth/tokens`` response."""

    def make(token: str = "tok-123", catalog: list[dict] | None = None, status_code: int = 201) -> MagicMock:
        resp = MagicMock()
        resp.status_code = status_code
        resp.headers = {"X-Subject-Token": token}
        resp.json.return_value = {
            "token": {
                "expires_at": "2026-10-18T12:00:00.000000Z",
                "catalog": _catalog() if catalog is None else catalog,
            }
        }
        return resp

    return make


@pytest.fixture
def status_response():
    """Factory for a bodiless response (e.g. ``HEAD /v3/auth/tokens``)."""

    def make(status_code: int) -> MagicMock:
        resp = MagicMock()
        resp.status_code = status_code
        resp.headers = {}
        return resp

    return make
