"""Exceptions raised by sf_rest.

Errors detected locally (bad credentials, missing record identifiers,
unconvertible records) are raised before any request is sent. Errors reported
by Salesforce are raised from :func:`raise_for_status` or, for composite
requests whose records partially failed, as :class:`SalesforceBatchError`.
Network failures are not wrapped: ``httpx.TransportError`` reaches the caller
unchanged.
"""

from collections.abc import Collection, Sequence
import json
from typing import Any

import httpx

from ._models import SObjectSaveError, SObjectSaveResult


class SalesforceError(Exception):
    """Base class for all sf_rest errors."""


class SalesforceConfigurationError(SalesforceError, ValueError):
    """Invalid local input: unusable credentials or a record missing an identifier."""


class SalesforceCodecError(SalesforceError, TypeError):
    """A record could not be converted to key-value pairs."""


class SalesforceAuthenticationFailed(SalesforceError):
    """The identity endpoint refused the credentials or the session is unusable."""

    def __init__(self, code: str | int | None, message: str | None):
        self.code = code
        self.message = message
        super().__init__(code, message)

    def __str__(self):
        return f"{self.code}: {self.message}"


def parse_errors(content: str | bytes | None) -> list[SObjectSaveError]:
    """Parse the error entries of a Salesforce error response body.

    Salesforce usually answers with a list of ``{"message", "errorCode"}``
    objects, some endpoints with a single object.
    """
    if not content:
        return []
    try:
        data = json.loads(content)
    except ValueError:
        return []
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        return []
    return [
        SObjectSaveError.from_json(entry)
        for entry in data
        if isinstance(entry, dict)
    ]


class SalesforceRemoteError(SalesforceError):
    """Salesforce answered the request with an error status."""

    message = "Error Code {status}. Response content: {content}"

    def __init__(
        self,
        url_path: str,
        status_code: int,
        resource_name: str,
        content: str,
        method: str = "",
    ):
        self.url_path = url_path
        self.status_code = status_code
        self.resource_name = resource_name
        self.content = content
        self.method = method
        self.errors = parse_errors(content)
        super().__init__(str(self))

    @property
    def error_code(self) -> str | None:
        if self.errors:
            return self.errors[0].statusCode
        return None

    def __str__(self):
        return self.message.format(
            url=self.url_path,
            status=self.status_code,
            resource_name=self.resource_name,
            content=self.content,
            method=self.method,
        )

    def __repr__(self):
        return f"{type(self).__name__}({str(self)!r})"


class SalesforceMalformedRequest(SalesforceRemoteError):
    message = "Malformed request {url} ({status}). Response content: {content}"


class SalesforceExpiredSession(SalesforceRemoteError):
    message = "Expired session for {url} ({status}). Response content: {content}"


class SalesforceRefusedRequest(SalesforceRemoteError):
    message = "Request refused for {url} ({status}). Response content: {content}"


class SalesforceResourceNotFound(SalesforceRemoteError):
    message = (
        "Resource {resource_name} Not Found ({status} {url}). "
        "Response content: {content}"
    )


class SalesforceMethodNotAllowedForResource(SalesforceRemoteError):
    message = "HTTP Method Not Allowed ({status} {url}). Response content: {content}"


class SalesforceApiVersionIncompatible(SalesforceRemoteError):
    message = (
        "Request conflicts with the current state of {url} ({status}). "
        "Response content: {content}"
    )


class SalesforceResourceRemoved(SalesforceRemoteError):
    message = "Resource {url} has been removed ({status}). Response content: {content}"


class SalesforceUriLimitExceeded(SalesforceRemoteError):
    message = "URI length exceeds the limit ({status} {url}). Response content: {content}"


class SalesforceUnsupportedFormat(SalesforceRemoteError):
    message = (
        "Entity in the request is in an unsupported format ({status} {url}). "
        "Response content: {content}"
    )


class SalesforceServerError(SalesforceRemoteError):
    message = "Internal server error ({status} {url}). Response content: {content}"


class SalesforceServerUnavailable(SalesforceRemoteError):
    message = "Server is unavailable ({status} {url}). Response content: {content}"


class SalesforceGeneralError(SalesforceRemoteError):
    message = "Error Code {status} for {method} {url}. Response content: {content}"

    def __str__(self):
        url = self.url_path
        if len(url) > 255:
            url = url[:255] + "..."
        return self.message.format(
            url=url,
            status=self.status_code,
            resource_name=self.resource_name,
            content=self.content,
            method=self.method.upper(),
        )


_STATUS_EXCEPTIONS: dict[int, type[SalesforceRemoteError]] = {
    400: SalesforceMalformedRequest,
    401: SalesforceExpiredSession,
    403: SalesforceRefusedRequest,
    404: SalesforceResourceNotFound,
    405: SalesforceMethodNotAllowedForResource,
    409: SalesforceApiVersionIncompatible,
    410: SalesforceResourceRemoved,
    414: SalesforceUriLimitExceeded,
    415: SalesforceUnsupportedFormat,
    500: SalesforceServerError,
    503: SalesforceServerUnavailable,
}


def raise_for_status(
    response: httpx.Response,
    resource_name: str = "",
    expected_status: Collection[int] | None = None,
) -> None:
    """Raise the matching :class:`SalesforceRemoteError` for an error response.

    With ``expected_status``, any other status (including other 2xx codes) is
    treated as an error.
    """
    if expected_status is None:
        if response.is_success:
            return
    elif response.status_code in expected_status:
        return

    exception_type = _STATUS_EXCEPTIONS.get(
        response.status_code, SalesforceGeneralError
    )
    raise exception_type(
        response.url.path,
        response.status_code,
        resource_name,
        response.text,
        response.request.method,
    )


class SalesforceBatchError(SalesforceError):
    """A composite request succeeded, but one or more of its records failed.

    ``failures`` pairs the position of every failed record in the request with
    its result. ``results`` holds the outcome of every record, in order.
    """

    def __init__(self, sobject: str, results: Sequence[SObjectSaveResult]):
        self.sobject = sobject
        self.results = list(results)
        self.failures: list[tuple[int, SObjectSaveResult]] = [
            (index, result)
            for index, result in enumerate(self.results)
            if not result.success
        ]
        super().__init__(str(self))

    @property
    def failed_indexes(self) -> list[int]:
        return [index for index, _ in self.failures]

    def errors_by_index(self) -> dict[int, list[SObjectSaveError]]:
        return {index: result.errors for index, result in self.failures}

    def __str__(self):
        lines = [
            f"{len(self.failures)} of {len(self.results)} {self.sobject} "
            "records failed:"
        ]
        for index, result in self.failures:
            details = "; ".join(str(error) for error in result.errors)
            lines.append(f"  record {index}: {details or 'no error details'}")
        return "\n".join(lines)

    def __reduce__(self) -> tuple[Any, ...]:
        return type(self), (self.sobject, self.results)
