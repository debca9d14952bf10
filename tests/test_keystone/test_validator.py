"""Tests for external token validation against Keystone."""

from unittest.mock import patch

import pytest
import requests

from authorizer.keystone.catalog import EndpointFilter
from authorizer.keystone.config import IdentityConfig
from authorizer.keystone.errors import NotFoundError, ValidationError
from authorizer.keystone.session import authenticate
from authorizer.keystone.validator import KeystoneTokenValidator, build_validator

TOKENS_URL = "https://id.example/v3/auth/tokens"


@pytest.fixture
def session(credentials, token_response):
    with patch("authorizer.keystone.session.requests.post") as mock_post:
        mock_post.return_value = token_response("tok-123")
        yield authenticate(credentials)


def test_validator_resolves_identity_endpoint(session):
    validator = KeystoneTokenValidator(session, EndpointFilter(region="RegionOne", service_type="identity"))
    assert validator.endpoint == "https://id.example/v3"
    assert validator.tokens_url == TOKENS_URL


def test_validator_missing_endpoint_raises(session):
    with pytest.raises(NotFoundError):
        KeystoneTokenValidator(session, EndpointFilter(region="RegionTwo"))


@patch("authorizer.keystone.session.requests.request")
def test_validate_valid_token(mock_request, session, status_response):
    mock_request.return_value = status_response(200)
    validator = KeystoneTokenValidator(session)

    assert validator.validate("usertoken-abc") is True

    args, kwargs = mock_request.call_args
    assert args == ("HEAD", TOKENS_URL)
    assert kwargs["headers"] == {"X-Subject-Token": "usertoken-abc", "X-Auth-Token": "tok-123"}


@patch("authorizer.keystone.session.requests.request")
def test_validate_no_content_is_valid(mock_request, session, status_response):
    mock_request.return_value = status_response(204)
    assert KeystoneTokenValidator(session).validate("usertoken-abc") is True


@patch("authorizer.keystone.session.requests.request")
def test_validate_invalid_token_is_false_not_error(mock_request, session, status_response):
    mock_request.return_value = status_response(404)
    assert KeystoneTokenValidator(session).validate("revoked-token") is False


@patch("authorizer.keystone.session.requests.request")
def test_validate_empty_token_skips_provider(mock_request, session):
    validator = KeystoneTokenValidator(session)
    assert validator.validate("") is False
    assert validator.validate("   ") is False
    mock_request.assert_not_called()


@patch("authorizer.keystone.session.requests.request")
def test_validate_twice_is_idempotent_without_reauth(mock_request, session, status_response):
    mock_request.return_value = status_response(200)
    validator = KeystoneTokenValidator(session)

    with patch("authorizer.keystone.session.requests.post") as mock_post:
        first = validator.validate("usertoken-abc")
        second = validator.validate("usertoken-abc")

    assert first is second is True
    mock_post.assert_not_called()
    assert mock_request.call_count == 2


@patch("authorizer.keystone.session.requests.request")
@patch("authorizer.keystone.session.requests.post")
def test_validate_expired_session_reauths_and_succeeds(
    mock_post, mock_request, session, token_response, status_response
):
    mock_post.return_value = token_response("tok-456")
    mock_request.side_effect = [status_response(401), status_response(200)]
    validator = KeystoneTokenValidator(session)

    assert validator.validate("expired-session") is True

    assert mock_post.call_count == 1
    assert mock_request.call_count == 2
    assert session.token == "tok-456"


@patch("authorizer.keystone.session.requests.request")
@patch("authorizer.keystone.session.requests.post")
def test_validate_rejected_after_reauth_raises(mock_post, mock_request, session, token_response, status_response):
    mock_post.return_value = token_response("tok-456")
    mock_request.side_effect = [status_response(401), status_response(401)]
    validator = KeystoneTokenValidator(session)

    with pytest.raises(ValidationError, match="Session token rejected"):
        validator.validate("usertoken-abc")
    assert mock_post.call_count == 1


@patch("authorizer.keystone.session.requests.request")
@patch("authorizer.keystone.session.requests.post")
def test_validate_reauth_failure_raises_validation_error(
    mock_post, mock_request, session, status_response
):
    mock_post.return_value = status_response(401)
    mock_request.return_value = status_response(401)
    validator = KeystoneTokenValidator(session)

    with pytest.raises(ValidationError, match="Reauthentication failed"):
        validator.validate("usertoken-abc")

    # The validator itself stays usable once the provider recovers.
    mock_request.return_value = status_response(404)
    assert validator.validate("usertoken-abc") is False


@patch("authorizer.keystone.session.requests.request")
def test_validate_transport_failure(mock_request, session):
    mock_request.side_effect = requests.Timeout("slow")
    with pytest.raises(ValidationError, match="Timeout"):
        KeystoneTokenValidator(session).validate("usertoken-abc")


@patch("authorizer.keystone.session.requests.request")
def test_validate_unexpected_status(mock_request, session, status_response):
    mock_request.return_value = status_response(500)
    with pytest.raises(ValidationError, match="500"):
        KeystoneTokenValidator(session).validate("usertoken-abc")


@patch("authorizer.keystone.session.requests.request")
def test_validate_passes_timeout(mock_request, session, status_response):
    mock_request.return_value = status_response(200)
    KeystoneTokenValidator(session).validate("usertoken-abc", timeout=2.5)
    assert mock_request.call_args.kwargs["timeout"] == 2.5


@patch("authorizer.keystone.session.requests.post")
def test_build_validator_from_config(mock_post, token_response):
    mock_post.return_value = token_response("tok-123")
    config = IdentityConfig(
        auth_url="https://id.example/v3",
        username="svc",
        password="p",
        domain_name="default",
    )
    validator = build_validator(config, timeout=3)
    assert validator.endpoint == "https://id.example/v3"
    assert validator.session.token == "tok-123"
    assert validator.session.timeout == 3


@patch("authorizer.keystone.session.requests.request")
def test_validate_sends_token_unchanged(mock_request, session, status_response):
    mock_request.return_value = status_response(200)
    KeystoneTokenValidator(session).validate(" usertoken-abc ")
    assert mock_request.call_args.kwargs["headers"]["X-Subject-Token"] == " usertoken-abc "
