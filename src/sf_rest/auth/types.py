from enum import Enum
import os
import typing

import httpx

from ..exceptions import SalesforceConfigurationError


class GrantType(str, Enum):
    PASSWORD = "password"
    CLIENT_CREDENTIALS = "client_credentials"
    ACCESS_TOKEN = "access_token"


def normalize_domain(domain: str) -> httpx.URL:
    """``login.salesforce.com`` -> ``https://login.salesforce.com``"""
    domain = domain.strip().rstrip("/")
    if "://" not in domain:
        domain = "https://" + domain
    return httpx.URL(domain)


class Credentials(typing.NamedTuple):
    """Long-lived login information, supplied once.

    Which fields are set decides the grant flow, see :attr:`grant_type`.
    For a pre-issued access token, ``domain`` is the org's instance URL.
    """

    domain: str
    username: str | None = None
    password: str | None = None
    security_token: str = ""
    consumer_key: str | None = None
    consumer_secret: str | None = None
    access_token: str | None = None

    ENV_PREFIX = "SF_"

    @classmethod
    def from_env(cls, prefix: str | None = None) -> "Credentials":
        prefix = cls.ENV_PREFIX if prefix is None else prefix
        values = {
            field: value
            for field in cls._fields
            if (value := os.environ.get(prefix + field.upper()))
        }
        if "domain" not in values:
            raise SalesforceConfigurationError(
                f"Missing required environment variable {prefix}DOMAIN"
            )
        return cls(**values)

    @property
    def grant_type(self) -> GrantType:
        if not self.domain:
            raise SalesforceConfigurationError("A Salesforce domain is required")
        if (
            self.username
            and self.password
            and self.consumer_key
            and self.consumer_secret
        ):
            return GrantType.PASSWORD
        elif self.consumer_key and self.consumer_secret:
            return GrantType.CLIENT_CREDENTIALS
        elif self.access_token:
            return GrantType.ACCESS_TOKEN
        raise SalesforceConfigurationError(
            "Could not determine authentication method from provided credentials. "
            "Provide username, password, consumer key and consumer secret; "
            "consumer key and consumer secret; or an access token."
        )

    @property
    def url(self) -> httpx.URL:
        return normalize_domain(self.domain)

    def __repr__(self):
        # secrets stay out of logs and tracebacks
        return (
            f"{type(self).__name__}(domain={self.domain!r}, "
            f"username={self.username!r}, grant_type="
            f"{_safe_grant_type(self)})"
        )


def _safe_grant_type(credentials: Credentials) -> str:
    try:
        return credentials.grant_type.value
    except SalesforceConfigurationError:
        return "None"


class SalesforceSession:
    """The short-lived authorization state produced by a grant flow."""

    access_token: str
    instance_url: httpx.URL
    id: str | None
    token_type: str | None
    scope: str | None
    issued_at: str | None
    signature: str | None
    grant_type: GrantType

    def __init__(
        self,
        access_token: str,
        instance_url: httpx.URL | str,
        grant_type: GrantType,
        id: str | None = None,
        token_type: str | None = None,
        scope: str | None = None,
        issued_at: str | None = None,
        signature: str | None = None,
    ):
        self.access_token = access_token
        self.instance_url = normalize_domain(str(instance_url))
        self.grant_type = GrantType(grant_type)
        self.id = id
        self.token_type = token_type
        self.scope = scope
        self.issued_at = issued_at
        self.signature = signature

    @classmethod
    def from_token_response(
        cls, payload: dict[str, typing.Any], grant_type: GrantType
    ) -> "SalesforceSession":
        return cls(
            payload["access_token"],
            payload["instance_url"],
            grant_type,
            id=payload.get("id"),
            token_type=payload.get("token_type"),
            scope=payload.get("scope"),
            issued_at=payload.get("issued_at"),
            signature=payload.get("signature"),
        )

    def refresh_from(self, other: "SalesforceSession") -> None:
        """Take over the token of a newer session.

        The instance URL and the grant type of this session are kept.
        """
        self.access_token = other.access_token
        self.issued_at = other.issued_at
        self.signature = other.signature
        self.id = other.id

    @property
    def auth_header(self) -> str:
        return f"Bearer {self.access_token}"

    def __repr__(self):
        return (
            f"{type(self).__name__}(instance_url={str(self.instance_url)!r}, "
            f"grant_type={self.grant_type.value!r}, issued_at={self.issued_at!r})"
        )


SalesforceSessionGenerator = typing.Generator[
    httpx.Request | None, httpx.Response | None, SalesforceSession
]

SalesforceLogin = typing.Callable[[], SalesforceSessionGenerator]

TokenRefreshCallback = typing.Callable[[SalesforceSession], typing.Any]


class AuthMissingResponse(ValueError): ...


__all__ = [
    "AuthMissingResponse",
    "Credentials",
    "GrantType",
    "SalesforceLogin",
    "SalesforceSession",
    "SalesforceSessionGenerator",
    "TokenRefreshCallback",
    "normalize_domain",
]
