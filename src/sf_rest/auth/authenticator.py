from threading import Lock

import httpx

from ..exceptions import SalesforceAuthenticationFailed
from ..logger import getLogger
from .login_oauth import (
    DEFAULT_API_VERSION,
    lazy_oauth_login,
    login_for_grant_type,
    probe_url,
)
from .types import (
    Credentials,
    GrantType,
    SalesforceLogin,
    SalesforceSession,
    TokenRefreshCallback,
)

LOGGER = getLogger("auth")


def run_login(login: SalesforceLogin, client: httpx.Client) -> SalesforceSession:
    """Drive a login generator, sending each request it yields with ``client``."""
    login_flow = login()
    try:
        login_request = next(login_flow)
        while True:
            login_response = None
            if isinstance(login_request, httpx.Request):
                login_response = client.send(login_request)
            login_request = login_flow.send(login_response)
    except StopIteration as login_result:
        return login_result.value


class Authenticator:
    """Owns the credentials and the current session of one client handle.

    ``authenticate`` runs the grant flow selected by the credentials,
    ``refresh`` re-runs the flow that produced the current session and
    ``ensure_valid`` checks the current token against the org. Session
    replacement happens under a lock, so concurrent callers never run more
    than one refresh at a time.
    """

    credentials: Credentials
    api_version: float
    callback: TokenRefreshCallback | None
    _session: SalesforceSession | None

    def __init__(
        self,
        credentials: Credentials,
        api_version: float = DEFAULT_API_VERSION,
        http_client: httpx.Client | None = None,
        callback: TokenRefreshCallback | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.credentials = credentials
        self.api_version = api_version
        self.callback = callback
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._transport = transport
        self._session = None
        self._lock = Lock()

    @property
    def session(self) -> SalesforceSession | None:
        return self._session

    @property
    def http_client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(transport=self._transport)
        return self._http_client

    def _notify(self, session: SalesforceSession):
        if self.callback is not None:
            self.callback(session)

    def authenticate(self) -> SalesforceSession:
        """Log in with the grant flow matching the credentials.

        Raises ``SalesforceConfigurationError`` without any network call when
        the credentials match no flow.
        """
        login = lazy_oauth_login(self.credentials, self.api_version)
        with self._lock:
            session = run_login(login, self.http_client)
            self._session = session
        LOGGER.info(
            "Authenticated to %s (%s)", session.instance_url, session.grant_type.value
        )
        self._notify(session)
        return session

    def refresh(self, stale_token: str | None = None) -> SalesforceSession:
        """Replace the session token by re-running the flow that issued it.

        When ``stale_token`` is given and the session no longer holds it,
        another caller has refreshed already and the current session is
        returned as is.
        """
        if self._session is None:
            return self.authenticate()
        with self._lock:
            session = self._session
            if stale_token is not None and session.access_token != stale_token:
                LOGGER.debug("Session already refreshed by another caller")
                return session
            if session.grant_type is GrantType.ACCESS_TOKEN:
                raise SalesforceAuthenticationFailed(
                    "INVALID_SESSION",
                    "Session created from an access token expired and cannot be refreshed",
                )
            login = login_for_grant_type(
                self.credentials, session.grant_type, self.api_version
            )
            session.refresh_from(run_login(login, self.http_client))
        LOGGER.info(
            "Refreshed session for %s (%s)",
            session.instance_url,
            session.grant_type.value,
        )
        self._notify(session)
        return session

    def ensure_valid(self) -> bool:
        """Whether the org currently accepts the session token."""
        session = self._session
        if session is None:
            return False
        response = self.http_client.get(
            probe_url(session.instance_url, self.api_version),
            headers={"Authorization": session.auth_header, "Accept": "application/json"},
        )
        return response.is_success

    def close(self):
        if self._owns_http_client and self._http_client is not None:
            self._http_client.close()
