"""
Nullable column types in the ``Null<Scalar>`` shape.

Any class following the same naming convention gets the same treatment;
these are provided so models don't have to declare their own.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class NullString:
    string: str = ""
    valid: bool = False


@dataclass
class NullInt64:
    int64: int = 0
    valid: bool = False


@dataclass
class NullInt32:
    int32: int = 0
    valid: bool = False


@dataclass
class NullFloat64:
    float64: float = 0.0
    valid: bool = False
