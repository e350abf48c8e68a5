"""OAuth grant flows.

Each login function returns a :data:`SalesforceLogin`: a callable producing a
generator that yields the ``httpx.Request`` objects it needs sent, receives
the matching ``httpx.Response`` and finally returns the new
:class:`SalesforceSession`. The generators never do I/O themselves.
"""

import warnings

import httpx

from ..exceptions import SalesforceAuthenticationFailed
from ..logger import getLogger
from .types import (
    AuthMissingResponse,
    Credentials,
    GrantType,
    SalesforceLogin,
    SalesforceSession,
    SalesforceSessionGenerator,
    normalize_domain,
)

LOGGER = getLogger("auth")

TOKEN_PATH = "/services/oauth2/token"
DEFAULT_API_VERSION = 63.0


def token_url(domain: str | httpx.URL) -> httpx.URL:
    return normalize_domain(str(domain)).join(TOKEN_PATH)


def probe_url(
    instance_url: str | httpx.URL, api_version: float = DEFAULT_API_VERSION
) -> httpx.URL:
    return normalize_domain(str(instance_url)).join(
        f"/services/data/v{api_version:.01f}/limits"
    )


def token_login(
    domain: str | httpx.URL,
    token_data: dict[str, str],
    grant_type: GrantType,
) -> SalesforceSessionGenerator:
    """Exchange ``token_data`` for a session at the OAuth token endpoint."""
    response = yield httpx.Request(
        "POST",
        token_url(domain),
        data={"grant_type": grant_type.value, **token_data},
        headers={
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        },
    )
    if response is None:
        raise AuthMissingResponse("No response received")

    try:
        json_response = response.json()
    except ValueError as exc:
        raise SalesforceAuthenticationFailed(
            response.status_code, response.text
        ) from exc

    if response.status_code != 200:
        error_body = json_response if isinstance(json_response, dict) else {}
        except_code = error_body.get("error", response.status_code)
        except_msg = error_body.get("error_description", response.text)
        if except_msg == "user hasn't approved this consumer":
            warnings.warn(
                "The connected app must be authorized for this user before "
                "logging in with it. Log in once through the browser to "
                "authorize it, or pre-authorize it for the user's profile.",
                UserWarning,
            )
        raise SalesforceAuthenticationFailed(except_code, except_msg)

    if not isinstance(json_response, dict) or not all(
        json_response.get(key) for key in ("access_token", "instance_url")
    ):
        raise SalesforceAuthenticationFailed(
            "MALFORMED_TOKEN_RESPONSE",
            "Token response is missing access_token or instance_url",
        )

    return SalesforceSession.from_token_response(json_response, grant_type)


def password_login(
    domain: str,
    username: str,
    password: str,
    consumer_key: str,
    consumer_secret: str,
    security_token: str = "",
) -> SalesforceLogin:
    """Resource-owner password flow. The security token is appended to the password."""

    def _password_login():
        LOGGER.info("Logging in to %s as %s (password flow)", domain, username)
        return (
            yield from token_login(
                domain,
                {
                    "client_id": consumer_key,
                    "client_secret": consumer_secret,
                    "username": username,
                    "password": password + (security_token or ""),
                },
                GrantType.PASSWORD,
            )
        )

    return _password_login


def client_credentials_login(
    domain: str, consumer_key: str, consumer_secret: str
) -> SalesforceLogin:
    def _client_credentials_login():
        LOGGER.info("Logging in to %s (client credentials flow)", domain)
        return (
            yield from token_login(
                domain,
                {"client_id": consumer_key, "client_secret": consumer_secret},
                GrantType.CLIENT_CREDENTIALS,
            )
        )

    return _client_credentials_login


def access_token_login(
    instance_url: str,
    access_token: str,
    api_version: float = DEFAULT_API_VERSION,
) -> SalesforceLogin:
    """Wrap a pre-issued access token, then check it against the limits resource."""

    def _access_token_login():
        LOGGER.info("Validating pre-issued access token for %s", instance_url)
        session = SalesforceSession(
            access_token, instance_url, GrantType.ACCESS_TOKEN
        )
        response = yield httpx.Request(
            "GET",
            probe_url(session.instance_url, api_version),
            headers={
                "Authorization": session.auth_header,
                "Accept": "application/json",
            },
        )
        if response is None:
            raise AuthMissingResponse("No response received")
        if not response.is_success:
            raise SalesforceAuthenticationFailed(
                response.status_code,
                f"Access token was rejected by {instance_url}: {response.text}",
            )
        return session

    return _access_token_login


def lazy_oauth_login(
    credentials: Credentials, api_version: float = DEFAULT_API_VERSION
) -> SalesforceLogin:
    """Pick the login flow matching the populated credential fields."""
    grant_type = credentials.grant_type
    if grant_type is GrantType.PASSWORD:
        return password_login(
            credentials.domain,
            username=credentials.username,  # type: ignore[arg-type]
            password=credentials.password,  # type: ignore[arg-type]
            consumer_key=credentials.consumer_key,  # type: ignore[arg-type]
            consumer_secret=credentials.consumer_secret,  # type: ignore[arg-type]
            security_token=credentials.security_token,
        )
    elif grant_type is GrantType.CLIENT_CREDENTIALS:
        return client_credentials_login(
            credentials.domain,
            consumer_key=credentials.consumer_key,  # type: ignore[arg-type]
            consumer_secret=credentials.consumer_secret,  # type: ignore[arg-type]
        )
    return access_token_login(
        credentials.domain,
        credentials.access_token,  # type: ignore[arg-type]
        api_version,
    )


def login_for_grant_type(
    credentials: Credentials,
    grant_type: GrantType,
    api_version: float = DEFAULT_API_VERSION,
) -> SalesforceLogin:
    """The login flow that re-issues a token for a session of ``grant_type``."""
    if grant_type is GrantType.PASSWORD:
        return password_login(
            credentials.domain,
            username=credentials.username or "",
            password=credentials.password or "",
            consumer_key=credentials.consumer_key or "",
            consumer_secret=credentials.consumer_secret or "",
            security_token=credentials.security_token,
        )
    elif grant_type is GrantType.CLIENT_CREDENTIALS:
        return client_credentials_login(
            credentials.domain,
            consumer_key=credentials.consumer_key or "",
            consumer_secret=credentials.consumer_secret or "",
        )
    raise SalesforceAuthenticationFailed(
        "INVALID_SESSION", "Unable to refresh a session created from an access token"
    )
