"""Field metadata: tags, key resolution, and embedded sub-records."""
from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, fields as dc_fields, is_dataclass
from functools import lru_cache
from typing import (
    Annotated,
    Any,
    Generic,
    TypeVar,
    get_args,
    get_origin,
    get_type_hints,
)

try:
    # Python 3.12+ (PEP 695 runtime object)
    from typing import TypeAliasType  # type: ignore[attr-defined]
except ImportError:  # pragma: no cover
    TypeAliasType = None  # type: ignore[assignment]

from .config import BindConfig
from .errors import ContractViolation

logger = logging.getLogger(__name__)

REQUEST_TAG = "request"
RESPONSE_TAG = "response"
DB_TAG = "db"

SKIP = "-"
OPTIONAL = "optional"
REQUIRED = "required"


# ======================================================================================
# Embedding marker: Embed[T] or Annotated[T, EMBED]
# ======================================================================================

E = TypeVar("E")


class Embed(Generic[E]):
    """Marker wrapper: the field's own fields are bound as if declared on the parent."""
    __bind_marker__ = "embed"


class _EmbedMarker:
    __bind_marker__ = "embed"

    def __repr__(self) -> str:
        return "EMBED"


EMBED = _EmbedMarker()


def tag(
    *,
    request: str | None = None,
    response: str | None = None,
    db: str | None = None,
    **field_kwargs: Any,
) -> Any:
    """
    Declare a dataclass field with binding tags.

        @dataclass
        class User:
            name: str = tag(request="username", default="")
            email: str = tag(request=",optional", default="")
            password_hash: str = tag(response="-", default="")
    """
    metadata = dict(field_kwargs.pop("metadata", None) or {})
    for role, value in ((REQUEST_TAG, request), (RESPONSE_TAG, response), (DB_TAG, db)):
        if value is not None:
            metadata[role] = value
    return dataclasses.field(metadata=metadata, **field_kwargs)


def split_tag(value: str) -> tuple[str, list[str]]:
    """Split ``"name,opt1,,opt2"`` into the name and its non-empty options."""
    name, _, rest = value.partition(",")
    return name.strip(), [opt.strip() for opt in rest.split(",") if opt.strip()]


def resolve_key(field_name: str, tags: dict[str, Any]) -> tuple[str, list[str]]:
    """
    Return (key, options) for a field; key is SKIP when excluded.

    Precedence: request tag name, response tag name, db tag name, then the
    field name lower-cased. A "-" from whichever tag wins excludes the
    field. Options only come from the request tag, so
    `response:"test" request:",optional"` keeps the response name.
    """
    request_name, options = split_tag(str(tags.get(REQUEST_TAG) or ""))
    if request_name:
        return request_name, options

    response_name, _ = split_tag(str(tags.get(RESPONSE_TAG) or ""))
    if response_name:
        return response_name, options

    db_name, _ = split_tag(str(tags.get(DB_TAG) or ""))
    if db_name:
        return db_name, options

    return field_name.lower(), options


# ======================================================================================
# Annotation helpers
# ======================================================================================

def unwrap_aliases(tp: Any) -> Any:
    """Resolve alias wrappers (TypeAliasType/NewType) to their base type."""
    if TypeAliasType is not None and isinstance(tp, TypeAliasType):  # type: ignore[arg-type]
        return unwrap_aliases(tp.__value__)  # type: ignore[attr-defined]
    if hasattr(tp, "__supertype__"):
        return unwrap_aliases(tp.__supertype__)
    return tp


def analyze_type(tp: Any) -> tuple[Any, bool]:
    """
    returns: (base_type, embedded)

    Strips aliases and Annotated metadata, and unwraps Embed[T].
    Optional[T] is left intact; conversion deals with it.
    """
    tp = unwrap_aliases(tp)
    origin = get_origin(tp)
    args = get_args(tp)

    if origin is Annotated:
        base, *meta = args
        inner, embedded = analyze_type(base)
        marked = any(getattr(m, "__bind_marker__", None) == "embed" for m in meta)
        return inner, embedded or marked

    if origin is not None and getattr(origin, "__bind_marker__", None) == "embed":
        base = args[0] if args else Any
        inner, _ = analyze_type(base)
        return inner, True

    return tp, False


@dataclass(frozen=True)
class FieldSpec:
    """Binding metadata for one dataclass field."""
    name: str
    key: str
    annotation: Any
    embedded: bool = False
    options: tuple[str, ...] = ()

    @property
    def skipped(self) -> bool:
        return self.key == SKIP

    def is_required(self, config: BindConfig) -> bool:
        required = config.required_by_default
        for option in self.options:
            if option == OPTIONAL:
                required = False
            elif option == REQUIRED:
                required = True
        return required


def _type_hints(cls: type) -> dict[str, Any]:
    try:
        return get_type_hints(cls, include_extras=True)
    except (NameError, TypeError, AttributeError) as exc:
        raise ContractViolation(
            f"could not resolve field annotations of {cls.__qualname__}: {exc}"
        ) from exc


@lru_cache(maxsize=None)
def describe(cls: type) -> tuple[FieldSpec, ...]:
    """Compute (and cache) binding metadata for every visible field of a dataclass."""
    if not (isinstance(cls, type) and is_dataclass(cls)):
        raise TypeError(f"{cls!r} is not a dataclass type")

    hints = _type_hints(cls)
    specs: list[FieldSpec] = []
    for f in dc_fields(cls):
        # Unexported
        if f.name.startswith("_"):
            continue

        annotation, embedded = analyze_type(hints.get(f.name, Any))

        if embedded:
            specs.append(FieldSpec(name=f.name, key=f.name, annotation=annotation, embedded=True))
            continue

        key, options = resolve_key(f.name, dict(f.metadata))
        specs.append(FieldSpec(name=f.name, key=key, annotation=annotation, options=tuple(options)))
    logger.debug("%s: %d bindable fields", cls.__qualname__, len(specs))
    return tuple(specs)


def response_key(field_name: str, metadata: Any) -> str:
    """Key used when rendering a field back out; SKIP hides the field."""
    response_name, _ = split_tag(str(metadata.get(RESPONSE_TAG) or ""))
    if response_name:
        return response_name
    db_name, _ = split_tag(str(metadata.get(DB_TAG) or ""))
    if db_name:
        return db_name
    return field_name.lower()
