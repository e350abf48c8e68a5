from .client import SalesforceClient
from .auth import Authenticator, Credentials, GrantType, SalesforceAuth, SalesforceSession
from ._models import SObjectSaveError, SObjectSaveResult
from .data.sobject import SObject
from .exceptions import (
    SalesforceAuthenticationFailed,
    SalesforceBatchError,
    SalesforceConfigurationError,
    SalesforceError,
    SalesforceRemoteError,
)

__all__ = [
    "Authenticator",
    "Credentials",
    "GrantType",
    "SObject",
    "SObjectSaveError",
    "SObjectSaveResult",
    "SalesforceAuth",
    "SalesforceAuthenticationFailed",
    "SalesforceBatchError",
    "SalesforceClient",
    "SalesforceConfigurationError",
    "SalesforceError",
    "SalesforceRemoteError",
    "SalesforceSession",
]
