from typing import Any, NamedTuple

from .fields import FieldConfigurableObject, serialize_object


class SObjectAttributes(NamedTuple):
    type: str


class SObject(FieldConfigurableObject):
    """A typed Salesforce record.

    Subclasses declare their fields and, optionally, the object's API name::

        class Product(SObject, api_name="Product2"):
            Id = IdField()
            Name = TextField()
            ExternalId__c = TextField()

    The record operations in :mod:`sf_rest.io.api` accept the class (or
    ``None``, for SObject records) in place of the object name.
    """

    attributes: SObjectAttributes

    def __init_subclass__(cls, api_name: str | None = None, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        cls.attributes = SObjectAttributes(api_name or cls.__name__)

    def __init__(self, /, **fields):
        fields.pop("attributes", None)
        super().__init__(**fields)

    def to_record(self, only_changes: bool = False) -> dict[str, Any]:
        return serialize_object(self, only_changes)
