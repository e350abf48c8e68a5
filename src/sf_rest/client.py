from collections.abc import Collection, Iterable, Iterator
from types import TracebackType
from typing import Any, TypeVar

from httpx import URL, BaseTransport, Client, Response
from typing_extensions import override

from ._models import SObjectSaveResult
from .auth import (
    Authenticator,
    Credentials,
    SalesforceAuth,
    SalesforceSession,
    TokenRefreshCallback,
)
from .auth.login_oauth import DEFAULT_API_VERSION
from .exceptions import SalesforceConfigurationError, raise_for_status
from .io import api
from .logger import getLogger
from .metrics import ApiUsage, parse_api_usage

LOGGER = getLogger("client")

_T = TypeVar("_T")


def parse_api_version(version: float | int | str) -> float:
    """``63``, ``63.0``, ``"63.0"`` and ``"v63.0"`` all mean API version 63.0"""
    if isinstance(version, str):
        version = version.strip().lower().removeprefix("v")
    try:
        return float(version)
    except ValueError as exc:
        raise SalesforceConfigurationError(
            f"Invalid Salesforce API version: {version!r}"
        ) from exc


class SalesforceClient(Client):
    """An ``httpx.Client`` bound to one Salesforce org.

    Relative URLs resolve against the org's REST data endpoint
    (``{instance_url}/services/data/v{api_version}/``). The client logs in on
    first use (or when entering its context) and transparently re-authenticates
    once when a request is rejected with 401.
    """

    authenticator: Authenticator
    api_version: float
    api_usage: ApiUsage | None = None
    token_refresh_callback: TokenRefreshCallback | None

    def __init__(
        self,
        credentials: Credentials | None = None,
        *,
        authenticator: Authenticator | None = None,
        api_version: float | int | str = DEFAULT_API_VERSION,
        token_refresh_callback: TokenRefreshCallback | None = None,
        transport: BaseTransport | None = None,
        headers: dict[str, str] | None = None,
        **kwargs,
    ):
        self.api_version = parse_api_version(api_version)
        if authenticator is None:
            if credentials is None:
                raise SalesforceConfigurationError(
                    "Either credentials or an authenticator are required."
                )
            authenticator = Authenticator(
                credentials, self.api_version, transport=transport
            )
        self.token_refresh_callback = token_refresh_callback or authenticator.callback
        authenticator.callback = self.handle_token_refresh
        self.authenticator = authenticator

        super().__init__(
            auth=SalesforceAuth(authenticator),
            headers={"Accept": "application/json", **(headers or {})},
            transport=transport,
            **kwargs,
        )
        if authenticator.session is not None:
            self._derive_base_url(authenticator.session)

    def __str__(self):
        if (session := self.session) is None:
            return f"{type(self).__name__} (not authenticated)"
        return (
            f"{type(self).__name__} -> {session.instance_url.host} "
            f"({session.grant_type.value})"
        )

    # session handling

    @property
    def session(self) -> SalesforceSession | None:
        return self.authenticator.session

    @property
    def instance_url(self) -> URL:
        if (session := self.session) is None:
            session = self.authenticate()
        return session.instance_url

    @property
    def data_url(self) -> str:
        return f"/services/data/v{self.api_version:.01f}"

    def _derive_base_url(self, session: SalesforceSession):
        self.base_url = session.instance_url.join(self.data_url + "/")

    def handle_token_refresh(self, session: SalesforceSession):
        self._derive_base_url(session)
        if self.token_refresh_callback:
            self.token_refresh_callback(session)

    def authenticate(self) -> SalesforceSession:
        return self.authenticator.authenticate()

    def refresh(self) -> SalesforceSession:
        return self.authenticator.refresh()

    def ensure_valid(self) -> bool:
        return self.authenticator.ensure_valid()

    @override
    def __enter__(self):
        _ = super().__enter__()
        try:
            session = self.session or self.authenticate()
            LOGGER.info(
                "Logged into %s (%s)", session.instance_url, session.grant_type.value
            )
        except Exception as e:
            self.__exit__(type(e), e, e.__traceback__)
            raise
        return self

    @override
    def __exit__(
        self,
        exc_type: type[BaseException] | None = None,
        exc_value: BaseException | None = None,
        traceback: TracebackType | None = None,
    ):
        self.authenticator.close()
        return super().__exit__(exc_type, exc_value, traceback)

    @override
    def close(self):
        self.authenticator.close()
        super().close()

    @override
    def request(
        self,
        method: str,
        url: URL | str,
        *,
        resource_name: str = "",
        expected_status: Collection[int] | None = None,
        response_status_raise: bool = True,
        **kwargs,
    ) -> Response:
        if self.session is None:
            # base_url depends on the instance the login resolves to
            self.authenticate()
        LOGGER.debug("%s %s", method, url)
        response = super().request(method, url, **kwargs)

        sforce_limit_info = response.headers.get("Sforce-Limit-Info")
        if sforce_limit_info and isinstance(sforce_limit_info, str):
            self.api_usage = parse_api_usage(sforce_limit_info)

        if response_status_raise:
            raise_for_status(response, resource_name, expected_status)
        return response

    def limits(self) -> dict[str, Any]:
        """The org's limits, keyed by limit name (``{"Max": ..., "Remaining": ...}``)."""
        return self.request("GET", "limits", resource_name="limits").json()

    # records

    def query(
        self, soql: str, into: type[_T] | None = None, include_deleted: bool = False
    ) -> list[Any]:
        return api.query(self, soql, into, include_deleted)

    def query_iter(
        self, soql: str, include_deleted: bool = False
    ) -> Iterator[dict[str, Any]]:
        return api.query_iter(self, soql, include_deleted)

    def insert_one(self, sobject: api.SObjectName, record: Any) -> SObjectSaveResult:
        return api.insert_one(self, sobject, record)

    def update_one(self, sobject: api.SObjectName, record: Any) -> SObjectSaveResult:
        return api.update_one(self, sobject, record)

    def upsert_one(
        self, sobject: api.SObjectName, external_id_field: str, record: Any
    ) -> SObjectSaveResult:
        return api.upsert_one(self, sobject, external_id_field, record)

    def delete_one(self, sobject: api.SObjectName, record: Any) -> SObjectSaveResult:
        return api.delete_one(self, sobject, record)

    def insert_collection(
        self, sobject: api.SObjectName, records: Iterable[Any], all_or_none: bool = False
    ) -> list[SObjectSaveResult]:
        return api.insert_collection(self, sobject, records, all_or_none)

    def update_collection(
        self, sobject: api.SObjectName, records: Iterable[Any], all_or_none: bool = False
    ) -> list[SObjectSaveResult]:
        return api.update_collection(self, sobject, records, all_or_none)

    def upsert_collection(
        self,
        sobject: api.SObjectName,
        external_id_field: str,
        records: Iterable[Any],
        all_or_none: bool = False,
    ) -> list[SObjectSaveResult]:
        return api.upsert_collection(
            self, sobject, external_id_field, records, all_or_none
        )

    def delete_collection(
        self, sobject: api.SObjectName, records: Iterable[Any], all_or_none: bool = False
    ) -> list[SObjectSaveResult]:
        return api.delete_collection(self, sobject, records, all_or_none)
