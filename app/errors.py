"""Domain errors raised by the streamTV services."""

from __future__ import annotations

from typing import Mapping

from pydantic import ValidationError


class StreamTVError(Exception):
    """Base class for every error the services raise on purpose."""

    message = "streamTV error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)

    @property
    def detail(self) -> str:
        return str(self)


class ValidationFailure(StreamTVError):
    """Submitted fields violate a required/length/format constraint."""

    message = "Submitted data is invalid"

    def __init__(self, errors: Mapping[str, str]):
        self.errors: dict[str, str] = dict(errors)
        summary = "; ".join(f"{field}: {text}" for field, text in self.errors.items())
        super().__init__(summary or self.message)

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "ValidationFailure":
        """Collapse pydantic errors into one message per field."""

        errors: dict[str, str] = {}
        for error in exc.errors():
            location = [str(part) for part in error.get("loc", ()) if part != "body"]
            field = ".".join(location) or "__all__"
            text = str(error.get("msg", "Invalid value"))
            if text.startswith("Value error, "):
                text = text[len("Value error, ") :]
            errors.setdefault(field, text)
        return cls(errors)


class DuplicateUsername(StreamTVError):
    message = "Username already exists - Try again"


class InvalidCredentials(StreamTVError):
    message = "Invalid User Name or Password - Try again"


class Unauthenticated(StreamTVError):
    message = "You must be logged in"


class NotFound(StreamTVError):
    """A catalog lookup returned no rows."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier} not found")


class StorageError(StreamTVError):
    message = "Storage failure"


class CustomerIdExhausted(StorageError):
    """The next customer identifier does not fit the configured width."""

    def __init__(self, last_identifier: str, digits: int):
        self.last_identifier = last_identifier
        self.digits = digits
        super().__init__(
            f"Customer identifier space exhausted after {last_identifier} "
            f"({digits} digits configured)"
        )
