"""Conversion between caller records and the key-value form sent to Salesforce.

Callers may pass plain mappings or structured objects (dataclasses,
``NamedTuple``s, :class:`~sf_rest.data.sobject.SObject` instances or any
object exposing ``to_record()`` or public attributes). Everything is reduced
to a ``dict`` through the :class:`RecordSource` protocol before it is encoded
for a write.
"""

from collections.abc import Iterable, Mapping
import dataclasses
import datetime
from decimal import Decimal
from enum import Enum
import inspect
from typing import Any, Protocol, TypeVar, runtime_checkable

from ..exceptions import SalesforceCodecError, SalesforceConfigurationError
from .fields import FieldConfigurableObject

ID_FIELD = "Id"
ATTRIBUTES_FIELD = "attributes"
FIELD_NAME_METADATA = "salesforce"

_T = TypeVar("_T")

Record = dict[str, Any]


@runtime_checkable
class RecordSource(Protocol):
    """Anything able to produce the key-value form of a record."""

    def to_record(self) -> Mapping[str, Any]: ...


class MappingRecord:
    """A record that already is a mapping."""

    __slots__ = ("mapping",)

    def __init__(self, mapping: Mapping[str, Any]):
        self.mapping = mapping

    def to_record(self) -> Mapping[str, Any]:
        return self.mapping


class StructRecord:
    """A record read field by field from a structured object.

    Values are reduced to JSON types: dates and times become ISO 8601 strings,
    ``Decimal``s become numbers and nested dataclasses, ``NamedTuple``s and
    records become mappings.
    """

    __slots__ = ("obj",)

    def __init__(self, obj: Any):
        self.obj = obj

    def _fields(self) -> Iterable[tuple[str, Any]]:
        obj = self.obj
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return (
                (field.metadata.get(FIELD_NAME_METADATA, field.name), getattr(obj, field.name))
                for field in dataclasses.fields(obj)
            )
        if isinstance(obj, tuple) and hasattr(obj, "_asdict"):
            return obj._asdict().items()
        if hasattr(obj, "__dict__") and not isinstance(obj, type):
            return (
                (name, value)
                for name, value in vars(obj).items()
                if not name.startswith("_")
            )
        raise _decode_error(obj)

    def to_record(self) -> Mapping[str, Any]:
        return {name: _format_value(value, name) for name, value in self._fields()}


def _is_struct(value: Any) -> bool:
    if isinstance(value, type):
        return False
    return dataclasses.is_dataclass(value) or (
        isinstance(value, tuple) and hasattr(value, "_asdict")
    )


def _format_value(value: Any, field: str) -> Any:
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Enum):
        return _format_value(value.value, field)
    # datetime is a date subclass
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Mapping):
        return {str(k): _format_value(v, f"{field}.{k}") for k, v in value.items()}
    if _is_struct(value):
        return StructRecord(value).to_record()
    if isinstance(value, RecordSource):
        return dict(value.to_record())
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_format_value(item, field) for item in value]
    raise SalesforceCodecError(
        f"Cannot encode {type(value).__name__} value of field {field!r}; "
        "field values must be JSON types, dates, decimals or nested records"
    )


def _decode_error(obj: Any) -> SalesforceCodecError:
    return SalesforceCodecError(
        f"Cannot decode {type(obj).__name__} as a Salesforce record, "
        "it must decode into key-value pairs (custom class or mapping)"
    )


def as_record_source(obj: Any) -> RecordSource:
    if isinstance(obj, Mapping):
        return MappingRecord(obj)
    if isinstance(obj, RecordSource) and not isinstance(obj, type):
        return obj
    if isinstance(obj, (str, bytes, int, float, bool, list, set, frozenset)) or obj is None:
        raise _decode_error(obj)
    return StructRecord(obj)


def to_canonical_record(obj: Any) -> Mapping[str, Any]:
    """The key-value form of ``obj``. Mappings are returned unchanged."""
    record = as_record_source(obj).to_record()
    if not isinstance(record, Mapping):
        raise _decode_error(obj)
    return record


def to_canonical_record_list(objs: Iterable[Any]) -> list[Mapping[str, Any]]:
    """The key-value form of every record in ``objs``, in order."""
    if isinstance(objs, (Mapping, str, bytes)) or not isinstance(objs, Iterable):
        raise SalesforceCodecError(
            f"Expected a collection of records, got {type(objs).__name__}; "
            "records must decode into key-value pairs (custom class or mapping)"
        )
    return [to_canonical_record(obj) for obj in objs]


def from_canonical_record(cls: type[_T], record: Mapping[str, Any]) -> _T:
    """Build an instance of ``cls`` from a record returned by Salesforce.

    Fields the target type does not declare are ignored.
    """
    values = strip_attributes(record)
    if issubclass(cls, Mapping):
        return cls(values)  # type: ignore[call-arg]
    if dataclasses.is_dataclass(cls):
        kwargs = {}
        for field in dataclasses.fields(cls):
            if not field.init:
                continue
            source_name = field.metadata.get(FIELD_NAME_METADATA, field.name)
            if source_name in values:
                kwargs[field.name] = values[source_name]
        return cls(**kwargs)
    if issubclass(cls, tuple) and hasattr(cls, "_fields"):
        return cls(**{k: v for k, v in values.items() if k in cls._fields})  # type: ignore[attr-defined]
    if issubclass(cls, FieldConfigurableObject):
        known = cls.keys()
        return cls(**{k: v for k, v in values.items() if k in known})
    return cls(**_accepted_kwargs(cls, values))


def _accepted_kwargs(cls: type, values: Mapping[str, Any]) -> dict[str, Any]:
    try:
        parameters = inspect.signature(cls).parameters.values()
    except (TypeError, ValueError):
        return dict(values)
    if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in parameters):
        return dict(values)
    accepted = {
        p.name
        for p in parameters
        if p.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
    }
    return {k: v for k, v in values.items() if k in accepted}


def _attributes(sobject: str) -> dict[str, str]:
    return {"type": sobject}


def _required_value(record: Mapping[str, Any], field: str) -> str | None:
    value = record.get(field)
    if value is None or value == "":
        return None
    return str(value)


def record_id(record: Mapping[str, Any], sobject: str = "") -> str:
    if not (_id := _required_value(record, ID_FIELD)):
        raise SalesforceConfigurationError(
            f"Salesforce {ID_FIELD} not found in {sobject or 'record'} data"
        )
    return _id


def external_id_value(
    record: Mapping[str, Any], sobject: str, external_id_field: str
) -> str:
    if not (value := _required_value(record, external_id_field)):
        raise SalesforceConfigurationError(
            f"Salesforce external ID {external_id_field} not found in {sobject} "
            "data. Make sure custom field names end with '__c'"
        )
    return value


def encode_insert(record: Mapping[str, Any], sobject: str) -> Record:
    payload = {k: v for k, v in record.items() if k != ID_FIELD}
    payload[ATTRIBUTES_FIELD] = _attributes(sobject)
    return payload


def encode_update(record: Mapping[str, Any], sobject: str, keep_id: bool = False) -> Record:
    record_id(record, sobject)
    payload = {
        k: v for k, v in record.items() if keep_id or k != ID_FIELD
    }
    payload[ATTRIBUTES_FIELD] = _attributes(sobject)
    return payload


def encode_upsert(
    record: Mapping[str, Any],
    sobject: str,
    external_id_field: str,
    keep_external_id: bool = False,
) -> Record:
    external_id_value(record, sobject, external_id_field)
    stripped = {ID_FIELD} if keep_external_id else {ID_FIELD, external_id_field}
    payload = {k: v for k, v in record.items() if k not in stripped}
    payload[ATTRIBUTES_FIELD] = _attributes(sobject)
    return payload


def _strip_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return strip_attributes(value)
    if isinstance(value, list):
        return [_strip_value(item) for item in value]
    return value


def strip_attributes(record: Mapping[str, Any]) -> Record:
    """Drop the ``attributes`` blocks Salesforce adds to query results, recursively."""
    return {
        k: _strip_value(v) for k, v in record.items() if k != ATTRIBUTES_FIELD
    }
