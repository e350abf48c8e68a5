from .codec import from_canonical_record, to_canonical_record, to_canonical_record_list
from .fields import (
    CheckboxField,
    DateField,
    DateTimeField,
    Field,
    IdField,
    IntField,
    NumberField,
    TextField,
)
from .sobject import SObject

__all__ = [
    "CheckboxField",
    "DateField",
    "DateTimeField",
    "Field",
    "IdField",
    "IntField",
    "NumberField",
    "SObject",
    "TextField",
    "from_canonical_record",
    "to_canonical_record",
    "to_canonical_record_list",
]
