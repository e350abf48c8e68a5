import datetime
from enum import Flag, auto
import typing

from typing_extensions import override

T = typing.TypeVar("T")


class ReadOnlyAssignmentException(TypeError): ...


class FieldFlag(Flag):
    nillable = auto()
    unique = auto()
    readonly = auto()
    case_sensitive = auto()
    updateable = auto()
    createable = auto()
    calculated = auto()
    external_id = auto()


class FieldConfigurableObject:
    """Base for classes declaring their record fields as :class:`Field` attributes."""

    _values: dict[str, typing.Any]
    _dirty_fields: set[str]
    _fields: typing.ClassVar[dict[str, "Field"]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        cls._fields = {}
        for base in reversed(cls.__mro__[1:]):
            cls._fields.update(getattr(base, "_fields", {}))
        for attr_name, attr in vars(cls).items():
            if isinstance(attr, Field):
                cls._fields[attr_name] = attr

    def __init__(self, /, **field_values):
        self._values = {}
        self._dirty_fields = set()
        for name, value in field_values.items():
            if name not in self._fields:
                raise KeyError(f"Undefined field {name} on object {type(self).__name__}")
            setattr(self, name, value)

    @classmethod
    def keys(cls) -> frozenset[str]:
        return frozenset(cls._fields.keys())

    def __getitem__(self, name):
        if name not in self.keys():
            raise KeyError(f"Undefined field {name} on object {type(self)}")
        return getattr(self, name, None)

    def __setitem__(self, name, value):
        if name not in self.keys():
            raise KeyError(f"Undefined field {name} on object {type(self)}")
        setattr(self, name, value)

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._values == other._values

    def __repr__(self):
        values = ", ".join(f"{name}={value!r}" for name, value in self._values.items())
        return f"{type(self).__name__}({values})"


class Field(typing.Generic[T]):
    _py_type: type[T] | None = None
    flags: set[FieldFlag]

    def __init__(self, py_type: type[T] | None, *flags: FieldFlag):
        self._py_type = py_type
        self.flags = set(flags)

    def __set_name__(self, owner, name):
        self._owner = owner
        self._name = name

    @typing.overload
    def __get__(self, obj: None, objtype=None) -> "Field[T]": ...

    @typing.overload
    def __get__(self, obj: FieldConfigurableObject, objtype=None) -> T | None: ...

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return obj._values.get(self._name, None)

    def __set__(self, obj: FieldConfigurableObject, value: typing.Any):
        if value is not None:
            value = self.revive(value)
            self.validate(value)
        if FieldFlag.readonly in self.flags and self._name in obj._values:
            raise ReadOnlyAssignmentException(f"Field {self._name} is readonly")
        obj._values[self._name] = value
        obj._dirty_fields.add(self._name)

    def __delete__(self, obj: FieldConfigurableObject):
        obj._values.pop(self._name, None)
        obj._dirty_fields.discard(self._name)

    def revive(self, value: typing.Any):
        return value

    def format(self, value: T) -> typing.Any:
        return value

    def validate(self, value):
        if self._py_type is not None and not isinstance(value, self._py_type):
            raise TypeError(
                f"Expected {self._py_type.__qualname__} for field {self._name} "
                f"on {self._owner.__name__}, got {type(value).__name__}"
            )


class TextField(Field[str]):
    def __init__(self, *flags: FieldFlag):
        super().__init__(str, *flags)


class IdField(TextField):
    @override
    def validate(self, value):
        super().validate(value)
        if not (len(value) in (15, 18) and value.isalnum()):
            raise ValueError(f"'{value}' is not a valid Salesforce Id")


class NumberField(Field[float]):
    def __init__(self, *flags: FieldFlag):
        super().__init__(float, *flags)

    @override
    def revive(self, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        return value


class IntField(Field[int]):
    def __init__(self, *flags: FieldFlag):
        super().__init__(int, *flags)


class CheckboxField(Field[bool]):
    def __init__(self, *flags: FieldFlag):
        super().__init__(bool, *flags)


class DateField(Field[datetime.date]):
    def __init__(self, *flags: FieldFlag):
        super().__init__(datetime.date, *flags)

    @override
    def revive(self, value: datetime.date | str):
        if isinstance(value, datetime.date):
            return value
        return datetime.date.fromisoformat(value)

    @override
    def format(self, value: datetime.date):
        return value.isoformat()


class DateTimeField(Field[datetime.datetime]):
    def __init__(self, *flags: FieldFlag):
        super().__init__(datetime.datetime, *flags)

    @override
    def revive(self, value: datetime.datetime | str):
        if isinstance(value, datetime.datetime):
            return value
        # Salesforce sends +0000 offsets, which fromisoformat rejects before 3.11
        if value.endswith("+0000"):
            value = value[:-5] + "+00:00"
        return datetime.datetime.fromisoformat(value)

    @override
    def format(self, value: datetime.datetime):
        if value.tzinfo is None:
            value = value.astimezone()
        return value.isoformat(timespec="milliseconds")


def object_fields(cls: type[FieldConfigurableObject]) -> dict[str, Field]:
    return cls._fields


def dirty_fields(record: FieldConfigurableObject) -> set[str]:
    return record._dirty_fields


def serialize_object(
    record: FieldConfigurableObject, only_changes: bool = False
) -> dict[str, typing.Any]:
    """The JSON-ready values of the fields set on ``record``."""
    fields = object_fields(type(record))
    return {
        name: None if value is None else fields[name].format(value)
        for name, value in record._values.items()
        if not only_changes or name in record._dirty_fields
    }
