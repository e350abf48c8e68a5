import httpx
import pytest

from sf_rest.auth import Authenticator, SalesforceAuth
from sf_rest.client import SalesforceClient
from sf_rest.exceptions import SalesforceAuthenticationFailed, SalesforceExpiredSession

from .conftest import ACCESS_TOKEN_CREDENTIALS, DATA_PATH, PASSWORD_CREDENTIALS

EXPIRED = [{"errorCode": "INVALID_SESSION_ID", "message": "Session expired or invalid"}]


def _bearer_required(valid_token: str):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers["Authorization"] != f"Bearer {valid_token}":
            return httpx.Response(401, json=EXPIRED)
        return httpx.Response(204)

    return handler


def test_auth_flow_adds_bearer_token(mock_org):
    authenticator = Authenticator(PASSWORD_CREDENTIALS, transport=mock_org.transport)
    mock_org.add("GET", "sobjects", json={})

    with httpx.Client(
        auth=SalesforceAuth(authenticator), transport=mock_org.transport
    ) as client:
        response = client.get(f"https://example.my.salesforce.com{DATA_PATH}/sobjects")

    assert response.status_code == 200
    assert mock_org.data_requests[0].headers["Authorization"] == "Bearer token-1"
    assert len(mock_org.token_requests) == 1


def test_auth_flow_retries_once_after_refresh(sf_client, mock_org):
    sf_client.authenticate()
    mock_org.add_handler("PATCH", "sobjects/Account/001000000000001AAA", _bearer_required("token-2"))

    result = sf_client.update_one("Account", {"Id": "001000000000001AAA", "Name": "Acme"})

    assert result.success
    sent_with = [
        header
        for request, header in zip(mock_org.requests, mock_org.auth_headers)
        if request.method == "PATCH"
    ]
    assert sent_with == ["Bearer token-1", "Bearer token-2"]
    assert len(mock_org.token_requests) == 2


def test_auth_flow_second_401_surfaces(sf_client, mock_org):
    sf_client.authenticate()
    mock_org.add("DELETE", "sobjects/Account/001000000000001AAA", 401, json=EXPIRED)

    with pytest.raises(SalesforceExpiredSession) as excinfo:
        sf_client.delete_one("Account", {"Id": "001000000000001AAA"})

    assert excinfo.value.error_code == "INVALID_SESSION_ID"
    deletes = [r for r in mock_org.data_requests if r.method == "DELETE"]
    assert len(deletes) == 2
    assert len(mock_org.token_requests) == 2


def test_auth_flow_access_token_session_cannot_refresh(mock_org):
    mock_org.add("GET", "limits", json={})
    mock_org.add("GET", "sobjects/Account/describe", 401, json=EXPIRED)

    with SalesforceClient(ACCESS_TOKEN_CREDENTIALS, transport=mock_org.transport) as client:
        with pytest.raises(SalesforceAuthenticationFailed):
            client.get("sobjects/Account/describe")

    assert mock_org.token_requests == []
