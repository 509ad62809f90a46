"""Converting raw request values into field values."""
from __future__ import annotations

import math
import re
import types
import typing as t
from typing import Any, Literal, Union, get_args, get_origin, get_type_hints

from .capabilities import RECEIVE, has_capability
from .errors import BindError, ContractViolation, ConversionError

NULLABLE_PREFIX = "Null"
VALID_FIELD = "valid"

_DECIMAL = re.compile(r"[+-]?[0-9]+\Z")

ConvertFn = t.Callable[[Any, Any, Any], Any]


def is_class(tp: Any) -> bool:
    """True for plain classes; False for typing constructs such as list[int]."""
    return isinstance(tp, type) and get_origin(tp) is None and tp is not Any


def instantiate(tp: type) -> Any:
    """Build the zero value of a field type."""
    try:
        return tp()
    except TypeError as exc:
        raise ContractViolation(f"{tp.__qualname__} must be constructible without arguments") from exc


def split_optional(tp: Any) -> tuple[bool, Any]:
    """Return (nullable, inner) for Optional[T] / T | None."""
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        args = get_args(tp)
        if type(None) in args:
            rest = tuple(a for a in args if a is not type(None))
            if len(rest) == 1:
                return True, rest[0]
            return True, Union[rest]
    return False, tp


def _type_name(tp: Any) -> str:
    return getattr(tp, "__qualname__", None) or repr(tp)


def cannot_convert(raw: Any, tp: Any) -> ConversionError:
    return ConversionError(f"cannot convert value of type {type(raw).__name__} to {_type_name(tp)}")


# ======================================================================================
# Primitive kinds
# ======================================================================================

def to_int(raw: Any) -> int:
    """Integers accept decimal strings, ints, and floats (truncated)."""
    if isinstance(raw, bool):
        raise cannot_convert(raw, int)
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise ConversionError(f"cannot convert {raw!r} to int")
        return int(raw)
    if isinstance(raw, str):
        if not _DECIMAL.match(raw):
            raise ConversionError(f"invalid integer literal: {raw!r}")
        return int(raw, 10)
    raise cannot_convert(raw, int)


def to_float(raw: Any) -> float:
    """Floats accept numeric strings, ints, and floats."""
    if isinstance(raw, bool):
        raise cannot_convert(raw, float)
    if isinstance(raw, (int, float)):
        return float(raw)
    if isinstance(raw, str):
        if raw != raw.strip() or "_" in raw:
            raise ConversionError(f"invalid float literal: {raw!r}")
        try:
            return float(raw)
        except ValueError:
            raise ConversionError(f"invalid float literal: {raw!r}") from None
    raise cannot_convert(raw, float)


def assignable(tp: Any, raw: Any) -> bool:
    """Whether ``raw`` can be stored as-is in a field declared as ``tp``."""
    if tp is Any or tp is object:
        return True
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        return any(assignable(arg, raw) for arg in get_args(tp))
    if origin is Literal:
        return raw in get_args(tp)
    check = origin if origin is not None else tp
    if isinstance(check, type):
        return isinstance(raw, check)
    # TypeVars, forward references and the like
    return True


def convert_primitive(tp: Any, raw: Any) -> Any:
    """Apply the field's primitive kind, or require a directly assignable value."""
    if is_class(tp) and not issubclass(tp, bool):
        if issubclass(tp, int):
            value = to_int(raw)
            return value if tp is int else _rebuild(tp, value)
        if issubclass(tp, float):
            value = to_float(raw)
            return value if tp is float else _rebuild(tp, value)
    if assignable(tp, raw):
        return raw
    raise cannot_convert(raw, tp)


def _rebuild(tp: type, value: Any) -> Any:
    try:
        return tp(value)
    except (TypeError, ValueError) as exc:
        raise ConversionError(str(exc)) from exc


# ======================================================================================
# Special conversion rules
# ======================================================================================

class ConversionRule(t.Protocol):
    """A conversion tried before the primitive kinds, for types it recognizes."""

    def matches(self, tp: Any) -> bool: ...

    def convert(self, tp: Any, raw: Any, current: Any, convert: ConvertFn) -> Any: ...


class NullableWrapperRule:
    """
    Support for database-style nullable types.

    A class named ``Null<Scalar>`` that has a ``valid`` flag and a member
    named after the scalar (``NullInt64.int64``, ``NullString.string``) is
    filled by converting into the inner member and setting ``valid``.
    A null value clears it: ``valid`` becomes False and the inner member
    goes back to its default.
    """

    def members(self, tp: Any) -> tuple[str, Any] | None:
        if not is_class(tp):
            return None
        name = tp.__name__
        if not name.startswith(NULLABLE_PREFIX) or len(name) == len(NULLABLE_PREFIX):
            return None
        inner = name[len(NULLABLE_PREFIX):].lower()
        try:
            hints = get_type_hints(tp)
        except (NameError, TypeError, AttributeError):
            hints = dict(getattr(tp, "__annotations__", {}))
        if VALID_FIELD not in hints or inner not in hints:
            return None
        inner_tp = hints[inner]
        return inner, (Any if isinstance(inner_tp, str) else inner_tp)

    def matches(self, tp: Any) -> bool:
        return self.members(tp) is not None

    def convert(self, tp: Any, raw: Any, current: Any, convert: ConvertFn) -> Any:
        found = self.members(tp)
        if found is None:
            raise ContractViolation(f"{tp!r} is not a Null<Scalar> wrapper")
        inner, inner_tp = found
        wrapper = current if isinstance(current, tp) else instantiate(tp)
        if raw is None:
            setattr(wrapper, inner, getattr(instantiate(tp), inner))
            setattr(wrapper, VALID_FIELD, False)
            return wrapper
        setattr(wrapper, inner, convert(inner_tp, raw, getattr(wrapper, inner, None)))
        setattr(wrapper, VALID_FIELD, True)
        return wrapper


DEFAULT_RULES: tuple[ConversionRule, ...] = (NullableWrapperRule(),)


class Converter:
    """Turns one raw value into the value stored in a field of type ``tp``."""

    def __init__(self, rules: t.Iterable[ConversionRule] | None = None) -> None:
        self.rules: tuple[ConversionRule, ...] = tuple(DEFAULT_RULES if rules is None else rules)

    def convert(self, tp: Any, raw: Any, current: Any = None) -> Any:
        if tp is Any or tp is object:
            return raw

        nullable, tp = split_optional(tp)
        if raw is None and nullable:
            return None

        if is_class(tp) and has_capability(tp, RECEIVE):
            receiver = current if isinstance(current, tp) else instantiate(tp)
            call_hook(receiver.receive, raw)
            return receiver

        for rule in self.rules:
            if rule.matches(tp):
                return rule.convert(tp, raw, current, self.convert)

        if raw is None:
            raise ConversionError(f"cannot assign null to non-nullable {_type_name(tp)}")
        return convert_primitive(tp, raw)


def call_hook(hook: t.Callable[..., Any], *args: Any) -> Any:
    """Run a field-supplied method; its failures become ConversionErrors with the same message."""
    try:
        return hook(*args)
    except (BindError, ContractViolation):
        raise
    except Exception as exc:
        raise ConversionError(str(exc)) from exc
