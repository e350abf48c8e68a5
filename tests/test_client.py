import logging
from unittest.mock import Mock

import pytest

from sf_rest.auth import Authenticator
from sf_rest.client import SalesforceClient, parse_api_version
from sf_rest.exceptions import SalesforceConfigurationError, SalesforceServerError
from sf_rest.metrics import Usage

from .conftest import (
    ACCESS_TOKEN_CREDENTIALS,
    DATA_PATH,
    INSTANCE_URL,
    PASSWORD_CREDENTIALS,
)


@pytest.mark.parametrize(
    "version,expected",
    [(63, 63.0), (62.0, 62.0), ("61.0", 61.0), ("v60.0", 60.0), (" V59.0 ", 59.0)],
)
def test_parse_api_version(version, expected):
    assert parse_api_version(version) == expected


def test_parse_api_version_invalid():
    with pytest.raises(SalesforceConfigurationError):
        parse_api_version("latest")


def test_client_requires_credentials():
    with pytest.raises(SalesforceConfigurationError):
        SalesforceClient()


def test_client_is_lazy(mock_org):
    client = SalesforceClient(PASSWORD_CREDENTIALS, transport=mock_org.transport)

    assert client.session is None
    assert mock_org.requests == []
    assert str(client) == "SalesforceClient (not authenticated)"
    client.close()


def test_first_request_authenticates(sf_client, mock_org):
    mock_org.add("GET", "sobjects", json={"sobjects": []})

    sf_client.get("sobjects")

    assert [r.url.path for r in mock_org.requests] == [
        "/services/oauth2/token",
        f"{DATA_PATH}/sobjects",
    ]
    assert str(sf_client.base_url) == f"{INSTANCE_URL}{DATA_PATH}/"
    assert str(sf_client) == "SalesforceClient -> example.my.salesforce.com (password)"


def test_context_manager_logs_in(mock_org, caplog):
    with caplog.at_level(logging.INFO, logger="sf_rest"):
        with SalesforceClient(PASSWORD_CREDENTIALS, transport=mock_org.transport) as client:
            assert client.session.access_token == "token-1"

    assert f"Logged into {INSTANCE_URL}" in caplog.text
    assert "token-1" not in caplog.text


def test_context_manager_access_token(mock_org):
    mock_org.add("GET", "limits", json={})

    with SalesforceClient(
        ACCESS_TOKEN_CREDENTIALS, api_version="v63.0", transport=mock_org.transport
    ) as client:
        assert client.session.access_token == "preissued-token"
        assert client.ensure_valid()


def test_api_version_in_base_url(mock_org):
    mock_org.add("GET", "/services/data/v58.0/limits", json={"DailyApiRequests": {}})

    with SalesforceClient(
        PASSWORD_CREDENTIALS, api_version=58, transport=mock_org.transport
    ) as client:
        assert client.limits() == {"DailyApiRequests": {}}
        assert client.data_url == "/services/data/v58.0"


def test_limit_info_header_tracked(sf_client, mock_org):
    mock_org.add(
        "GET",
        "limits",
        json={},
        headers={"Sforce-Limit-Info": "api-usage=25/5000"},
    )

    sf_client.limits()

    assert sf_client.api_usage.api_usage == Usage(25, 5000)


def test_request_raises_for_status(sf_client, mock_org):
    mock_org.add(
        "GET",
        "limits",
        500,
        json=[{"errorCode": "UNKNOWN_EXCEPTION", "message": "An unexpected error occurred"}],
    )

    with pytest.raises(SalesforceServerError):
        sf_client.limits()

    response = sf_client.request("GET", "limits", response_status_raise=False)
    assert response.status_code == 500


def test_token_refresh_callback(mock_org):
    callback = Mock()
    client = SalesforceClient(
        PASSWORD_CREDENTIALS,
        token_refresh_callback=callback,
        transport=mock_org.transport,
    )

    session = client.authenticate()
    client.refresh()

    assert callback.call_count == 2
    callback.assert_called_with(session)
    assert session.access_token == "token-2"
    client.close()


def test_shared_authenticator(mock_org):
    authenticator = Authenticator(PASSWORD_CREDENTIALS, transport=mock_org.transport)
    authenticator.authenticate()

    client = SalesforceClient(authenticator=authenticator, transport=mock_org.transport)

    assert client.session is authenticator.session
    assert str(client.base_url) == f"{INSTANCE_URL}{DATA_PATH}/"
    client.close()


def test_dml_methods_delegate(sf_client, mock_org):
    mock_org.add("POST", "sobjects/Account", 201, json={"id": "001000000000001AAA", "success": True})
    mock_org.add("DELETE", "sobjects/Account/001000000000001AAA", 204)

    created = sf_client.insert_one("Account", {"Name": "Acme"})
    deleted = sf_client.delete_one("Account", {"Id": created.id})

    assert created.created
    assert deleted.success


def test_authenticates_once_across_requests(sf_client, mock_org, mocker):
    authenticate = mocker.spy(sf_client.authenticator, "authenticate")
    mock_org.add("GET", "limits", json={})

    sf_client.limits()
    sf_client.limits()

    assert authenticate.call_count == 1
    assert len(mock_org.token_requests) == 1
