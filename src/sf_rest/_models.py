from typing import Any, NamedTuple, TypedDict


class SObjectCollectionPayload(TypedDict):
    allOrNone: str
    records: list[dict[str, Any]]


class SObjectSaveError(NamedTuple):
    statusCode: str
    message: str
    fields: list[str] = []

    @classmethod
    def from_json(cls, data: "dict[str, Any] | SObjectSaveError") -> "SObjectSaveError":
        if isinstance(data, SObjectSaveError):
            return data
        return cls(
            # record results use statusCode, request level errors use errorCode
            data.get("statusCode") or data.get("errorCode") or "UNKNOWN_ERROR",
            data.get("message", ""),
            list(data.get("fields") or []),
        )

    def __str__(self):
        if self.fields:
            return f"{self.statusCode}: {self.message} ({', '.join(self.fields)})"
        return f"{self.statusCode}: {self.message}"


class SObjectSaveResult:
    """Outcome of saving or deleting a single record."""

    id: str | None
    success: bool
    errors: list[SObjectSaveError]
    created: bool

    def __init__(
        self,
        id: str | None,
        success: bool,
        errors: "list[SObjectSaveError | dict[str, Any]] | None" = None,
        created: bool = False,
        **_,
    ):
        self.id = id
        self.success = success
        self.errors = [SObjectSaveError.from_json(error) for error in errors or ()]
        self.created = created

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "SObjectSaveResult":
        return cls(**data)

    def __str__(self):
        if self.success:
            return f"{type(self).__name__} {self.id}: success"
        return (
            f"{type(self).__name__} {self.id}: failed\n  "
            + "\n  ".join(str(error) for error in self.errors)
        )

    def __repr__(self):
        return (
            f"<{type(self).__name__} id={self.id!r} success={self.success} "
            f"errors={self.errors!r}> {self}"
        )

    def __eq__(self, other):
        if not isinstance(other, SObjectSaveResult):
            return NotImplemented
        return (self.id, self.success, self.errors, self.created) == (
            other.id,
            other.success,
            other.errors,
            other.created,
        )
