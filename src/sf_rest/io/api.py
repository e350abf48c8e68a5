from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any, TypeVar, overload
from urllib.parse import quote

from httpx import Response

from .._models import SObjectCollectionPayload, SObjectSaveResult
from ..data.codec import (
    encode_insert,
    encode_update,
    encode_upsert,
    external_id_value,
    from_canonical_record,
    record_id,
    strip_attributes,
    to_canonical_record,
    to_canonical_record_list,
)
from ..data.sobject import SObject
from ..exceptions import (
    SalesforceBatchError,
    SalesforceConfigurationError,
    SalesforceGeneralError,
)
from ..logger import getLogger

if TYPE_CHECKING:
    from ..client import SalesforceClient

_logger = getLogger("io")
_T = TypeVar("_T")

MAX_COLLECTION_SIZE = 200

SObjectName = str | type[SObject] | None


def sobject_name(sobject: SObjectName, records: Iterable[Any] = ()) -> str:
    """The API name of the object ``records`` belong to.

    ``sobject`` is either the name itself or an :class:`SObject` subclass.
    With ``None`` the name comes from the records, which must then all be
    instances of one SObject type.
    """
    if isinstance(sobject, str):
        return sobject
    if isinstance(sobject, type) and issubclass(sobject, SObject):
        return sobject.attributes.type
    if sobject is not None:
        raise SalesforceConfigurationError(
            f"Expected a Salesforce object name or SObject type, got {sobject!r}"
        )
    names = {
        type(record).attributes.type if isinstance(record, SObject) else None
        for record in records
    }
    if len(names) != 1 or None in names:
        raise SalesforceConfigurationError(
            "Cannot tell which Salesforce object the records belong to; "
            "pass the object name or use records of a single SObject type"
        )
    return names.pop()


def _materialize(records: Iterable[Any]) -> Iterable[Any]:
    # names may be read from the records before they are encoded
    if isinstance(records, Iterator):
        return list(records)
    return records


def _format_bool(value: bool) -> str:
    return "true" if value else "false"


def _check_collection_size(records: list, operation: str) -> None:
    if len(records) > MAX_COLLECTION_SIZE:
        raise SalesforceConfigurationError(
            f"Salesforce composite {operation} supports up to "
            f"{MAX_COLLECTION_SIZE} records at once, got {len(records)}"
        )


def _collection_payload(
    records: list[dict[str, Any]], all_or_none: bool
) -> SObjectCollectionPayload:
    return {"allOrNone": _format_bool(all_or_none), "records": records}


def _unexpected_body(response: Response, sobject: str) -> SalesforceGeneralError:
    return SalesforceGeneralError(
        response.url.path,
        response.status_code,
        sobject,
        response.text,
        response.request.method,
    )


def _response_json(response: Response, sobject: str, expected: type[_T]) -> _T:
    try:
        data = response.json()
    except ValueError as exc:
        raise _unexpected_body(response, sobject) from exc
    if not isinstance(data, expected):
        raise _unexpected_body(response, sobject)
    return data


def _collection_results(
    response: Response, sobject: str, operation: str
) -> list[SObjectSaveResult]:
    """Parse per-record results; raise if any record failed."""
    try:
        results = [
            SObjectSaveResult.from_json(item)
            for item in _response_json(response, sobject, list)
        ]
    except (TypeError, AttributeError) as exc:
        raise _unexpected_body(response, sobject) from exc
    if any(not result.success for result in results):
        error = SalesforceBatchError(sobject, results)
        _logger.warning(
            "Composite %s of %s: records %s failed",
            operation,
            sobject,
            ", ".join(str(index) for index in error.failed_indexes),
        )
        raise error
    return results


# single record operations


def insert_one(
    sf_client: "SalesforceClient", sobject: SObjectName, record: Any
) -> SObjectSaveResult:
    """Create one record. Any ``Id`` on the record is ignored."""
    sobject = sobject_name(sobject, [record])
    payload = encode_insert(to_canonical_record(record), sobject)
    response = sf_client.request(
        "POST",
        f"sobjects/{sobject}",
        json=payload,
        resource_name=sobject,
        expected_status=(201,),
    )
    data = _response_json(response, sobject, dict)
    return SObjectSaveResult(
        data.get("id"), data.get("success", True), data.get("errors"), created=True
    )


def update_one(
    sf_client: "SalesforceClient", sobject: SObjectName, record: Any
) -> SObjectSaveResult:
    """Update one record, addressed by its ``Id`` field."""
    sobject = sobject_name(sobject, [record])
    canonical = to_canonical_record(record)
    _id = record_id(canonical, sobject)
    payload = encode_update(canonical, sobject)
    sf_client.request(
        "PATCH",
        f"sobjects/{sobject}/{_id}",
        json=payload,
        resource_name=sobject,
        expected_status=(204,),
    )
    return SObjectSaveResult(_id, True)


def upsert_one(
    sf_client: "SalesforceClient",
    sobject: SObjectName,
    external_id_field: str,
    record: Any,
) -> SObjectSaveResult:
    """Create or update one record, addressed by an external ID field.

    Salesforce answers 201 when the upsert created the record and 200 when
    it updated an existing one, so both count as success. The result's
    ``created`` flag tells which of the two happened, falling back to the
    status code when the body does not say.
    """
    sobject = sobject_name(sobject, [record])
    canonical = to_canonical_record(record)
    ext_id_val = external_id_value(canonical, sobject, external_id_field)
    payload = encode_upsert(canonical, sobject, external_id_field)
    response = sf_client.request(
        "PATCH",
        f"sobjects/{sobject}/{external_id_field}/{quote(ext_id_val, safe='')}",
        json=payload,
        resource_name=sobject,
        expected_status=(200, 201),
    )
    data = _response_json(response, sobject, dict) if response.content else {}
    return SObjectSaveResult(
        data.get("id"),
        data.get("success", True),
        data.get("errors"),
        created=data.get("created", response.status_code == 201),
    )


def delete_one(
    sf_client: "SalesforceClient", sobject: SObjectName, record: Any
) -> SObjectSaveResult:
    """Delete one record, addressed by its ``Id`` field."""
    sobject = sobject_name(sobject, [record])
    _id = record_id(to_canonical_record(record), sobject)
    sf_client.request(
        "DELETE",
        f"sobjects/{sobject}/{_id}",
        resource_name=sobject,
        expected_status=(204,),
    )
    return SObjectSaveResult(_id, True)


# composite (collection) operations


def insert_collection(
    sf_client: "SalesforceClient",
    sobject: SObjectName,
    records: Iterable[Any],
    all_or_none: bool = False,
) -> list[SObjectSaveResult]:
    records = _materialize(records)
    sobject = sobject_name(sobject, records)
    canonical = to_canonical_record_list(records)
    _check_collection_size(canonical, "insert")
    payload = _collection_payload(
        [encode_insert(record, sobject) for record in canonical], all_or_none
    )
    _logger.debug("Inserting %d %s records", len(canonical), sobject)
    response = sf_client.request(
        "POST",
        "composite/sobjects/",
        json=payload,
        resource_name=sobject,
        expected_status=(200,),
    )
    return _collection_results(response, sobject, "insert")


def update_collection(
    sf_client: "SalesforceClient",
    sobject: SObjectName,
    records: Iterable[Any],
    all_or_none: bool = False,
) -> list[SObjectSaveResult]:
    records = _materialize(records)
    sobject = sobject_name(sobject, records)
    canonical = to_canonical_record_list(records)
    _check_collection_size(canonical, "update")
    payload = _collection_payload(
        [encode_update(record, sobject, keep_id=True) for record in canonical],
        all_or_none,
    )
    _logger.debug("Updating %d %s records", len(canonical), sobject)
    response = sf_client.request(
        "PATCH",
        "composite/sobjects/",
        json=payload,
        resource_name=sobject,
        expected_status=(200,),
    )
    return _collection_results(response, sobject, "update")


def upsert_collection(
    sf_client: "SalesforceClient",
    sobject: SObjectName,
    external_id_field: str,
    records: Iterable[Any],
    all_or_none: bool = False,
) -> list[SObjectSaveResult]:
    records = _materialize(records)
    sobject = sobject_name(sobject, records)
    canonical = to_canonical_record_list(records)
    _check_collection_size(canonical, "upsert")
    payload = _collection_payload(
        [
            encode_upsert(record, sobject, external_id_field, keep_external_id=True)
            for record in canonical
        ],
        all_or_none,
    )
    _logger.debug(
        "Upserting %d %s records on %s", len(canonical), sobject, external_id_field
    )
    response = sf_client.request(
        "PATCH",
        f"composite/sobjects/{sobject}/{external_id_field}",
        json=payload,
        resource_name=sobject,
        expected_status=(200,),
    )
    return _collection_results(response, sobject, "upsert")


def delete_collection(
    sf_client: "SalesforceClient",
    sobject: SObjectName,
    records: Iterable[Any],
    all_or_none: bool = False,
) -> list[SObjectSaveResult]:
    records = _materialize(records)
    sobject = sobject_name(sobject, records)
    canonical = to_canonical_record_list(records)
    _check_collection_size(canonical, "delete")
    ids = [record_id(record, sobject) for record in canonical]
    _logger.debug("Deleting %d %s records", len(ids), sobject)
    response = sf_client.request(
        "DELETE",
        "composite/sobjects/",
        params={"ids": ",".join(ids), "allOrNone": _format_bool(all_or_none)},
        resource_name=sobject,
        expected_status=(200,),
    )
    return _collection_results(response, sobject, "delete")


# queries


def query_iter(
    sf_client: "SalesforceClient", soql: str, include_deleted: bool = False
) -> Iterator[dict[str, Any]]:
    """Yield the records matching ``soql``, following result pages as needed."""
    endpoint = "queryAll/" if include_deleted else "query/"
    response = sf_client.request(
        "GET", endpoint, params={"q": soql}, resource_name="query"
    )
    while True:
        result = response.json()
        for record in result.get("records", []):
            yield strip_attributes(record)
        if result.get("done", True) or not (next_url := result.get("nextRecordsUrl")):
            return
        response = sf_client.request(
            "GET", sf_client.instance_url.join(next_url), resource_name="query"
        )


@overload
def query(
    sf_client: "SalesforceClient",
    soql: str,
    into: None = None,
    include_deleted: bool = False,
) -> list[dict[str, Any]]: ...


@overload
def query(
    sf_client: "SalesforceClient",
    soql: str,
    into: type[_T],
    include_deleted: bool = False,
) -> list[_T]: ...


def query(
    sf_client: "SalesforceClient",
    soql: str,
    into: type[_T] | None = None,
    include_deleted: bool = False,
) -> list[dict[str, Any]] | list[_T]:
    """Run ``soql`` and return every matching record.

    With ``into``, records are converted to that type (a dataclass,
    ``NamedTuple`` or :class:`~sf_rest.data.sobject.SObject` subclass).
    """
    records = query_iter(sf_client, soql, include_deleted)
    if into is None:
        return list(records)
    return [from_canonical_record(into, record) for record in records]

