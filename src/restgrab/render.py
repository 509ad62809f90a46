"""Rendering models back out under their response keys."""
from __future__ import annotations

import typing as t
from dataclasses import fields as dc_fields, is_dataclass

from .conversion import VALID_FIELD, NullableWrapperRule
from .fields import SKIP, describe, response_key

_NULLABLE = NullableWrapperRule()


def dump(obj: t.Any) -> t.Any:
    """
    Recursively convert dataclasses to plain dicts/lists.

    Keys come from the response tag (then db tag, then the lower-cased
    field name); fields whose response tag is "-" and unexported fields are
    left out. Embedded records are flattened into their parent, and
    Null<Scalar> wrappers render as their value or None.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        members = _NULLABLE.members(type(obj))
        if members is not None:
            # Null<Scalar> renders as its value, or null when not valid
            return dump(getattr(obj, members[0])) if getattr(obj, VALID_FIELD) else None
        return _dump_record(obj)
    if isinstance(obj, (list, tuple)):
        return [dump(v) for v in obj]
    if isinstance(obj, dict):
        return {k: dump(v) for k, v in obj.items()}
    return obj


def _dump_record(record: t.Any) -> dict[str, t.Any]:
    out: dict[str, t.Any] = {}
    embedded = {spec.name for spec in describe(type(record)) if spec.embedded}
    for f in dc_fields(record):
        if f.name.startswith("_"):
            continue
        value = getattr(record, f.name)
        if f.name in embedded:
            if value is not None:
                out.update(_dump_record(value))
            continue
        key = response_key(f.name, f.metadata)
        if key == SKIP:
            continue
        out[key] = dump(value)
    return out
