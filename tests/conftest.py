from collections.abc import Callable
from typing import Any

import httpx
import pytest

from sf_rest.auth import Credentials
from sf_rest.client import SalesforceClient

INSTANCE_URL = "https://example.my.salesforce.com"
DATA_PATH = "/services/data/v63.0"
TOKEN_PATH = "/services/oauth2/token"

PASSWORD_CREDENTIALS = Credentials(
    domain="login.salesforce.com",
    username="user@example.com",
    password="hunter2",
    security_token="SECTOKEN",
    consumer_key="consumer-key",
    consumer_secret="consumer-secret",
)
CLIENT_CREDENTIALS = Credentials(
    domain="example.my.salesforce.com",
    consumer_key="consumer-key",
    consumer_secret="consumer-secret",
)
ACCESS_TOKEN_CREDENTIALS = Credentials(
    domain=INSTANCE_URL,
    access_token="preissued-token",
)


def token_response(access_token: str = "token-1", **overrides) -> dict[str, Any]:
    return {
        "access_token": access_token,
        "instance_url": INSTANCE_URL,
        "id": "https://login.salesforce.com/id/00D000000000001AAA/005000000000001AAA",
        "token_type": "Bearer",
        "issued_at": "1700000000000",
        "signature": "c2lnbmF0dXJl",
        **overrides,
    }


Route = tuple[int, dict[str, Any]] | Callable[[httpx.Request], httpx.Response]


class MockOrg:
    """In-memory stand-in for a Salesforce org, served through httpx.MockTransport.

    The token endpoint issues ``token-1``, ``token-2``, ... Other routes are
    registered per (method, path); each registered response is used once,
    except the last one which keeps answering.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        # replayed requests are the same object, so headers are captured on receipt
        self.auth_headers: list[str | None] = []
        self.routes: dict[tuple[str, str], list[Route]] = {}
        self.tokens_issued = 0

    def add(self, method: str, path: str, status_code: int = 200, **kwargs):
        if not path.startswith("/"):
            path = f"{DATA_PATH}/{path}"
        self.routes.setdefault((method, path), []).append((status_code, kwargs))

    def add_handler(
        self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]
    ):
        if not path.startswith("/"):
            path = f"{DATA_PATH}/{path}"
        self.routes.setdefault((method, path), []).append(handler)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.auth_headers.append(request.headers.get("Authorization"))
        key = (request.method, request.url.path)
        if request.url.path == TOKEN_PATH and key not in self.routes:
            self.tokens_issued += 1
            return httpx.Response(
                200, json=token_response(f"token-{self.tokens_issued}")
            )
        queue = self.routes.get(key)
        if not queue:
            return httpx.Response(
                404,
                json=[
                    {
                        "errorCode": "NOT_FOUND",
                        "message": "The requested resource does not exist",
                    }
                ],
            )
        route = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(route):
            return route(request)
        status_code, kwargs = route
        return httpx.Response(status_code, **kwargs)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    @property
    def token_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == TOKEN_PATH]

    @property
    def data_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path != TOKEN_PATH]


@pytest.fixture
def mock_org():
    return MockOrg()


@pytest.fixture
def sf_client(mock_org):
    """A client logged in with the password flow against ``mock_org``"""
    client = SalesforceClient(PASSWORD_CREDENTIALS, transport=mock_org.transport)
    yield client
    client.close()
