"""Errors raised by the food search pipeline."""

from enum import StrEnum


class FoodSearchError(Exception):
    """Base class for food search failures."""


class InvalidIdentifier(FoodSearchError):  # noqa: N818
    """Raised when a barcode does not match the external identifier format."""

    def __init__(self, identifier: str) -> None:
        super().__init__(f"Invalid barcode format: {identifier!r}")
        self.identifier = identifier


class RetrievalErrorKind(StrEnum):
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    PARSE = "parse"
    NETWORK = "network"


class RetrievalError(FoodSearchError):
    """Raised when the external food database cannot serve a request."""

    def __init__(
        self,
        message: str,
        kind: RetrievalErrorKind,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
