"""
Service credentials for the Keystone (Identity v3) provider.

Credentials come from a YAML file (``load_identity_config``) or from the
usual ``OS_*`` environment variables (``IdentityConfig.from_environ``).
No hardcoded secrets.

Example file::

    global:
      auth_url: https://keystone.example:5000/v3
      username: kittenhouse
      password: s3cret
      domain_name: Default
      # trust_id: 4f1c...          # authenticate through a delegated trust
      # project_name: services     # request a project-scoped token
    endpoint:
      region: RegionOne
      service_type: identity
      interface: public
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal, Union

import pydantic
import yaml
from pydantic import BaseModel, Field

from .catalog import INTERFACES, EndpointFilter
from .errors import ConfigError


def _getenv(key: str, default: str | None = None) -> str | None:
    return os.environ.get(key, default)


def _strip_or_none(s: str | None) -> str | None:
    if s is None:
        return None
    t = s.strip()
    return t if t else None


def _domain_ref(domain_id: str | None, domain_name: str | None) -> dict[str, str] | None:
    if domain_id:
        return {"id": domain_id}
    if domain_name:
        return {"name": domain_name}
    return None


@dataclass(frozen=True)
class PasswordAuth:
    """
    Password credentials of the service user.

    ``allow_reauth`` says whether a session built from these credentials may
    re-authenticate on its own when the provider rejects the session token.
    """

    auth_url: str
    password: str = field(repr=False)
    username: str | None = None
    user_id: str | None = None
    domain_id: str | None = None
    domain_name: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    auth_endpoint: str | None = None
    allow_reauth: bool = True

    @property
    def token_endpoint(self) -> str:
        """URL of the token-creation resource; ``auth_endpoint`` overrides ``auth_url``."""
        base = self.auth_endpoint or self.auth_url
        return f"{base.rstrip('/')}/auth/tokens"

    def without_reauth(self) -> PasswordAuth:
        return replace(self, allow_reauth=False)

    def _identity(self) -> dict[str, Any]:
        user: dict[str, Any] = {"password": self.password}
        if self.user_id:
            user["id"] = self.user_id
        else:
            user["name"] = self.username
            domain = _domain_ref(self.domain_id, self.domain_name)
            if domain:
                user["domain"] = domain
        return {"methods": ["password"], "password": {"user": user}}

    def _scope(self) -> dict[str, Any] | None:
        if self.project_id:
            return {"project": {"id": self.project_id}}
        if self.project_name:
            return {
                "project": {
                    "name": self.project_name,
                    "domain": _domain_ref(self.domain_id, self.domain_name),
                }
            }
        return None

    def to_request_body(self) -> dict[str, Any]:
        """Body of ``POST /v3/auth/tokens``."""
        auth: dict[str, Any] = {"identity": self._identity()}
        scope = self._scope()
        if scope:
            auth["scope"] = scope
        return {"auth": auth}


@dataclass(frozen=True)
class TrustAuth:
    """
    Trust-scoped credentials: the service user authenticates with its
    password and acts through the delegated trust ``trust_id``.
    """

    user: PasswordAuth
    trust_id: str

    @property
    def allow_reauth(self) -> bool:
        return self.user.allow_reauth

    @property
    def token_endpoint(self) -> str:
        return self.user.token_endpoint

    def without_reauth(self) -> TrustAuth:
        return replace(self, user=self.user.without_reauth())

    def to_request_body(self) -> dict[str, Any]:
        body = self.user.to_request_body()
        # A trust scope replaces any project scope.
        body["auth"]["scope"] = {"OS-TRUST:trust": {"id": self.trust_id}}
        return body


Credentials = Union[PasswordAuth, TrustAuth]


@dataclass(frozen=True)
class IdentityConfig:
    """
    Everything needed to build a validator: who we are and which catalog
    endpoint validates tokens.

    From environment:
        OS_AUTH_URL: Identity v3 URL (required).
        OS_PASSWORD: Service user password (required).
        OS_USERNAME / OS_USER_ID: Service user; one of them is required.
        OS_USER_DOMAIN_ID / OS_USER_DOMAIN_NAME: User domain (also read from
            OS_DOMAIN_ID / OS_DOMAIN_NAME). Required with OS_USERNAME.
        OS_TRUST_ID: Authenticate through this trust.
        OS_PROJECT_ID / OS_PROJECT_NAME: Request a project-scoped token.
        OS_REGION_NAME: Region of the identity endpoint (default RegionOne).
        OS_INTERFACE: public, internal or admin (default public).
    """

    auth_url: str
    password: str = field(repr=False)
    username: str | None = None
    user_id: str | None = None
    domain_id: str | None = None
    domain_name: str | None = None
    trust_id: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    auth_endpoint: str | None = None
    endpoint: EndpointFilter = field(default_factory=EndpointFilter)

    def __post_init__(self) -> None:
        if not self.auth_url:
            raise ConfigError("auth_url must be set")
        if not self.password:
            raise ConfigError("password must be set")
        if not self.username and not self.user_id:
            raise ConfigError("username or user_id must be set")
        has_domain = bool(self.domain_id or self.domain_name)
        if self.username and not self.user_id and not has_domain:
            raise ConfigError("username requires domain_id or domain_name")
        if self.project_name and not self.project_id and not has_domain:
            raise ConfigError("project_name requires domain_id or domain_name")
        if self.endpoint.interface not in INTERFACES:
            raise ConfigError(f"interface must be one of {', '.join(INTERFACES)}")

    def credentials(self) -> Credentials:
        user = PasswordAuth(
            auth_url=self.auth_url,
            password=self.password,
            username=self.username,
            user_id=self.user_id,
            domain_id=self.domain_id,
            domain_name=self.domain_name,
            project_id=self.project_id,
            project_name=self.project_name,
            auth_endpoint=self.auth_endpoint,
            allow_reauth=True,
        )
        if self.trust_id:
            return TrustAuth(user=user, trust_id=self.trust_id)
        return user

    @classmethod
    def from_environ(cls) -> IdentityConfig:
        auth_url = _strip_or_none(_getenv("OS_AUTH_URL"))
        if not auth_url:
            raise ConfigError("OS_AUTH_URL must be set")
        return cls(
            auth_url=auth_url,
            password=_getenv("OS_PASSWORD") or "",
            username=_strip_or_none(_getenv("OS_USERNAME")),
            user_id=_strip_or_none(_getenv("OS_USER_ID")),
            domain_id=_strip_or_none(_getenv("OS_USER_DOMAIN_ID") or _getenv("OS_DOMAIN_ID")),
            domain_name=_strip_or_none(_getenv("OS_USER_DOMAIN_NAME") or _getenv("OS_DOMAIN_NAME")),
            trust_id=_strip_or_none(_getenv("OS_TRUST_ID")),
            project_id=_strip_or_none(_getenv("OS_PROJECT_ID")),
            project_name=_strip_or_none(_getenv("OS_PROJECT_NAME")),
            endpoint=EndpointFilter(
                region=_strip_or_none(_getenv("OS_REGION_NAME")) or "RegionOne",
                interface=(_strip_or_none(_getenv("OS_INTERFACE")) or "public").lower(),
            ),
        )


class GlobalSection(BaseModel):
    auth_url: str
    password: str
    username: str | None = None
    user_id: str | None = None
    domain_id: str | None = None
    domain_name: str | None = None
    trust_id: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    auth_endpoint: str | None = None


class EndpointSection(BaseModel):
    region: str = "RegionOne"
    service_type: str = "identity"
    interface: Literal["public", "internal", "admin"] = "public"
    name: str | None = None


class IdentityFileModel(BaseModel):
    global_: GlobalSection = Field(alias="global")
    endpoint: EndpointSection = Field(default_factory=EndpointSection)


def load_identity_config(path: Path) -> IdentityConfig:
    try:
        raw_text = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read identity config {path}: {exc.strerror}") from exc
    except UnicodeDecodeError as exc:
        raise ConfigError(f"Identity config is not valid UTF-8: {path}") from exc

    try:
        raw = yaml.safe_load(raw_text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in identity config: {path}") from exc

    if not isinstance(raw, dict) or "global" not in raw:
        raise ConfigError(f"Missing top-level 'global' key in config: {path}")

    try:
        model = IdentityFileModel.model_validate(raw)
    except pydantic.ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise ConfigError(f"Invalid identity config {path}: {', '.join(fields)}") from exc

    section = {k: _strip_or_none(v) for k, v in model.global_.model_dump().items()}
    section["password"] = model.global_.password  # whitespace is significant
    return IdentityConfig(
        **section,
        endpoint=EndpointFilter(**model.endpoint.model_dump()),
    )
