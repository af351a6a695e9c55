"""Error taxonomy shared by the calculation core and the HTTP layer."""

from __future__ import annotations

from collections.abc import Sequence


class LedgerError(Exception):
    """Base class for expected, caller-facing failures.

    Attributes:
        message: Human-readable reason.
        code: Stable machine-readable error code.
    """

    code = "ledger_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, object]:
        """Render the error as a response body."""
        return {"success": False, "error": self.message, "code": self.code}


class InvalidInputError(LedgerError):
    """Negative money, bad quantity, unknown enum value, or similar."""

    code = "invalid_input"


class NotFoundError(LedgerError):
    """Entity does not exist or is not owned by the requesting user."""

    code = "not_found"

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")
        self.entity = entity


class IncompleteInputError(LedgerError):
    """A value needed for the calculation has not been provided yet.

    Distinct from InvalidInputError so callers can prompt for the missing
    data instead of reporting a failure.
    """

    code = "incomplete_input"

    def __init__(self, message: str, missing: Sequence[str]) -> None:
        super().__init__(message)
        self.missing = list(missing)

    def to_dict(self) -> dict[str, object]:
        body = super().to_dict()
        body["missing"] = self.missing
        return body
