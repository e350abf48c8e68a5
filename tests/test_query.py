import pytest

from sf_rest.exceptions import SalesforceMalformedRequest
from sf_rest.io import api

from .conftest import DATA_PATH
from .unit_test_models import Account, AccountRow

SOQL = "SELECT Id, Name FROM Account"


def _account(i: int) -> dict:
    return {
        "attributes": {
            "type": "Account",
            "url": f"{DATA_PATH}/sobjects/Account/001{i:015d}",
        },
        "Id": f"001{i:015d}",
        "Name": f"Account {i}",
    }


def test_query_single_page(sf_client, mock_org):
    mock_org.add(
        "GET",
        "query/",
        json={"totalSize": 2, "done": True, "records": [_account(1), _account(2)]},
    )

    records = api.query(sf_client, SOQL)

    assert records == [
        {"Id": "001000000000000001", "Name": "Account 1"},
        {"Id": "001000000000000002", "Name": "Account 2"},
    ]
    (request,) = mock_org.data_requests
    assert request.url.params["q"] == SOQL


def test_query_follows_next_records_url(sf_client, mock_org):
    next_url = f"{DATA_PATH}/query/01gD0000002HU6KIAW-2000"
    mock_org.add(
        "GET",
        "query/",
        json={
            "totalSize": 3,
            "done": False,
            "nextRecordsUrl": next_url,
            "records": [_account(1), _account(2)],
        },
    )
    mock_org.add(
        "GET", next_url, json={"totalSize": 3, "done": True, "records": [_account(3)]}
    )

    records = api.query(sf_client, SOQL, into=AccountRow)

    assert records == [
        AccountRow("001000000000000001", "Account 1"),
        AccountRow("001000000000000002", "Account 2"),
        AccountRow("001000000000000003", "Account 3"),
    ]
    assert [r.url.path for r in mock_org.data_requests] == [
        f"{DATA_PATH}/query/",
        next_url,
    ]


def test_query_include_deleted(sf_client, mock_org):
    mock_org.add("GET", "queryAll/", json={"totalSize": 0, "done": True, "records": []})

    assert sf_client.query(SOQL, include_deleted=True) == []
    assert mock_org.data_requests[0].url.path == f"{DATA_PATH}/queryAll/"


def test_query_into_sobject(sf_client, mock_org):
    mock_org.add("GET", "query/", json={"totalSize": 1, "done": True, "records": [_account(7)]})

    (account,) = sf_client.query(SOQL, into=Account)

    assert isinstance(account, Account)
    assert account.Name == "Account 7"


def test_query_iter_is_lazy(sf_client, mock_org):
    mock_org.add("GET", "query/", json={"totalSize": 1, "done": True, "records": [_account(1)]})

    records = sf_client.query_iter(SOQL)
    assert mock_org.requests == []

    assert next(records)["Name"] == "Account 1"


def test_query_malformed(sf_client, mock_org):
    mock_org.add(
        "GET",
        "query/",
        400,
        json=[{"errorCode": "MALFORMED_QUERY", "message": "unexpected token: FORM"}],
    )

    with pytest.raises(SalesforceMalformedRequest) as excinfo:
        sf_client.query("SELECT Id FORM Account")
    assert excinfo.value.error_code == "MALFORMED_QUERY"
