import dataclasses
import datetime
from decimal import Decimal
from typing import NamedTuple

from sf_rest.data.fields import (
    CheckboxField,
    DateField,
    DateTimeField,
    FieldFlag,
    IdField,
    IntField,
    NumberField,
    TextField,
)
from sf_rest.data.sobject import SObject


class Opportunity(SObject):
    Id = IdField()
    Name = TextField()
    Amount = NumberField()
    CloseDate = DateField()
    StageName = TextField()
    IsClosed = CheckboxField()


class Account(SObject):
    Id = IdField()
    Name = TextField()
    Industry = TextField()
    AnnualRevenue = NumberField()
    NumberOfEmployees = IntField()
    CreatedDate = DateTimeField(FieldFlag.readonly)


class Product(SObject, api_name="Product2"):
    Id = IdField()
    Name = TextField()
    ExternalId__c = TextField()


@dataclasses.dataclass
class ContactRow:
    LastName: str
    Email: str | None = None
    external_id: str | None = dataclasses.field(
        default=None, metadata={"salesforce": "External_Id__c"}
    )


class AccountRow(NamedTuple):
    Id: str
    Name: str


class Address(NamedTuple):
    City: str
    Country: str


@dataclasses.dataclass
class Visit:
    Name: str
    Visit_Date__c: datetime.date
    Checked_In__c: datetime.datetime | None = None
    Fee__c: Decimal | None = None
    Address__c: Address | None = None
