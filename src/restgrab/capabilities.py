"""
Optional methods a field type (or a whole model) may define to take part
in binding.

The engine never switches on type names to decide these; it only asks
whether the declared class has the method. The protocols below exist for
documentation and for ``isinstance`` checks in application code.

An example Value Receiver:

    @dataclass
    class Password:
        digest: str = ""

        def receive(self, raw: Any) -> None:
            if not isinstance(raw, str) or len(raw) < 8:
                raise ValueError("password too short")
            self.digest = hash_password(raw)
"""
from __future__ import annotations

import typing as t

RECEIVE = "receive"
DEFAULT_VALUE = "default_value"
PRE_RECEIVE = "pre_receive"
POST_RECEIVE = "post_receive"

UNMARSHAL = "unmarshal"
PRE_UNMARSHAL = "pre_unmarshal"
POST_UNMARSHAL = "post_unmarshal"


@t.runtime_checkable
class ValueReceiver(t.Protocol):
    """A type that parses and validates the raw request value itself."""

    def receive(self, raw: t.Any) -> None:
        """Update self from ``raw``; raise if the value is not acceptable."""
        ...


@t.runtime_checkable
class DefaultValueProvider(t.Protocol):
    """A type that supplies a value when its optional key is absent."""

    def default_value(self) -> t.Any: ...


@t.runtime_checkable
class PreReceiver(t.Protocol):
    def pre_receive(self) -> None: ...


@t.runtime_checkable
class PostReceiver(t.Protocol):
    def post_receive(self) -> None: ...


@t.runtime_checkable
class Unmarshaller(t.Protocol):
    """A model that binds the whole parameter set on its own."""

    def unmarshal(self, params: t.Mapping[str, t.Any]) -> None: ...


@t.runtime_checkable
class PreUnmarshaller(t.Protocol):
    def pre_unmarshal(self) -> None: ...


@t.runtime_checkable
class PostUnmarshaller(t.Protocol):
    def post_unmarshal(self) -> None: ...


def has_capability(tp: t.Any, method: str) -> bool:
    """Return True when the class (or object) ``tp`` defines ``method``."""
    return callable(getattr(tp, method, None))
