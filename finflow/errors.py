from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ValidationError:
    """Bad user input. Returned as a value so callers can render it."""

    message: str

    def __str__(self) -> str:
        return self.message


class FinflowError(Exception):
    pass


class StoreError(FinflowError):
    pass


class StoreUnavailable(StoreError):
    """The backing store failed; surfaced to the user as a transient error."""


class InvalidRecord(StoreError):
    """The store rejected a write that breaks a schema constraint. Not transient."""


class NotFound(StoreError):
    pass


class AuthorizationError(StoreError):
    """The caller does not own the record. Carries no detail about the record."""


Forbidden = AuthorizationError


class UnknownWindow(FinflowError):
    def __init__(self, name: str):
        super().__init__(f"Unknown time window: {name!r}")
        self.name = name
