"""Error types raised (or returned) while binding request parameters."""
from __future__ import annotations

import typing as t


class BindError(Exception):
    """Base class for binding problems caused by request data."""


class MissingFields(BindError):
    """
    Required fields that had no value in the request.

    This doesn't always matter (a PATCH request may send only what it
    changes), so the engine hands it back on the result instead of raising
    it. Callers that want every field populated can raise it themselves.
    """

    def __init__(self, names: t.Iterable[str] = ()) -> None:
        self.names: list[str] = list(names)
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return "Missing value for fields: " + ",".join(self.names)

    def __str__(self) -> str:
        return self.message

    def add(self, name: str) -> None:
        """Record a key that was expected but not found."""
        self.names.append(name)
        self.args = (self.message,)

    def __bool__(self) -> bool:
        return bool(self.names)


class ConversionError(BindError, ValueError):
    """A present value could not be stored in its field."""

    def __init__(self, message: str, *, key: str | None = None, field: str | None = None) -> None:
        super().__init__(message)
        self.key = key
        self.field = field


class UnmatchedParameters(BindError):
    """More parameters were supplied than the model has fields for."""

    def __init__(self, names: t.Iterable[str], *, matched: int, supplied: int) -> None:
        self.names = sorted(names)
        self.matched = matched
        self.supplied = supplied
        super().__init__("More parameters passed than this model has fields.")


class ParamsError(BindError):
    """The request body could not be turned into a parameter set."""


class ContractViolation(TypeError):
    """The binding target is not a mutable dataclass instance (caller bug)."""
