"""Binding request parameters onto dataclass models."""
from __future__ import annotations

import logging
import typing as t
from dataclasses import dataclass, field, is_dataclass
from enum import Enum

from .capabilities import (
    DEFAULT_VALUE,
    POST_RECEIVE,
    POST_UNMARSHAL,
    PRE_RECEIVE,
    PRE_UNMARSHAL,
    UNMARSHAL,
    has_capability,
)
from .config import BindConfig
from .conversion import ConversionRule, Converter, call_hook, instantiate, is_class, split_optional
from .errors import ContractViolation, ConversionError, MissingFields, UnmatchedParameters
from .fields import FieldSpec, describe

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    SUCCESS = "success"
    MISSING_FIELDS = "missing_fields"


@dataclass
class BindResult:
    """What a binding call produced when no hard error was raised."""
    outcome: Outcome
    matched: int
    missing: MissingFields = field(default_factory=MissingFields)

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def raise_for_missing(self) -> None:
        """Raise the MissingFields error if any required field was absent."""
        if self.missing:
            raise self.missing


def _check_target(target: t.Any) -> None:
    if isinstance(target, type) or not is_dataclass(target):
        raise ContractViolation(
            f"binding target must be a dataclass instance, got {type(target).__name__}"
        )
    if target.__dataclass_params__.frozen:  # type: ignore[attr-defined]
        raise ContractViolation(f"binding target {type(target).__qualname__} is frozen")


class Binder:
    """
    Binds parameter sets to models using a fixed config and conversion rules.

    A Binder holds no per-call state, so one instance can serve every
    request thread.
    """

    def __init__(
        self,
        config: BindConfig | None = None,
        rules: t.Iterable[ConversionRule] | None = None,
    ) -> None:
        self.config = config if config is not None else BindConfig()
        self.converter = Converter(rules)

    def bind(self, params: t.Mapping[str, t.Any], target: t.Any) -> BindResult:
        """
        Copy ``params`` into the fields of ``target`` (a dataclass instance).

        Raises ConversionError when a value can't be stored in its field and
        UnmatchedParameters when params holds keys no field accepted. Missing
        required fields are reported on the returned result.
        """
        _check_target(target)
        if not isinstance(params, t.Mapping):
            raise ContractViolation(f"params must be a mapping, got {type(params).__name__}")

        if has_capability(target, UNMARSHAL):
            target.unmarshal(params)
            return BindResult(Outcome.SUCCESS, matched=len(params))

        if has_capability(target, PRE_UNMARSHAL):
            target.pre_unmarshal()

        missing = MissingFields()
        seen: set[str] = set()
        matched = self._bind_record(params, target, missing, seen)

        unknown = [key for key in params if key not in seen]
        if unknown:
            logger.debug(
                "%s: %d of %d parameters matched, unknown: %s",
                type(target).__qualname__, matched, len(params), unknown,
            )
            raise UnmatchedParameters(unknown, matched=matched, supplied=len(params))

        if has_capability(target, POST_UNMARSHAL):
            target.post_unmarshal()

        if missing:
            logger.debug("%s: %s", type(target).__qualname__, missing)
            return BindResult(Outcome.MISSING_FIELDS, matched=matched, missing=missing)
        return BindResult(Outcome.SUCCESS, matched=matched, missing=missing)

    def _bind_record(
        self,
        params: t.Mapping[str, t.Any],
        record: t.Any,
        missing: MissingFields,
        seen: set[str],
    ) -> int:
        """Walk one record's fields, returning how many of them found a parameter."""
        matched = 0
        for spec in describe(type(record)):
            if spec.embedded:
                sub = getattr(record, spec.name, None)
                if sub is None:
                    sub = instantiate(spec.annotation)
                    setattr(record, spec.name, sub)
                _check_target(sub)
                matched += self._bind_record(params, sub, missing, seen)
                continue

            if spec.skipped:
                continue

            if spec.key in params:
                matched += 1
                seen.add(spec.key)
                self._assign(record, spec, params[spec.key])
            elif spec.is_required(self.config):
                missing.add(spec.key)
            else:
                self._apply_default(record, spec)
        return matched

    def _assign(self, record: t.Any, spec: FieldSpec, raw: t.Any) -> None:
        nullable, base = split_optional(spec.annotation)
        current = getattr(record, spec.name, None)
        try:
            if is_class(base) and has_capability(base, PRE_RECEIVE) and not (raw is None and nullable):
                if not isinstance(current, base):
                    current = instantiate(base)
                call_hook(current.pre_receive)

            value = self.converter.convert(spec.annotation, raw, current)

            if is_class(base) and isinstance(value, base) and has_capability(base, POST_RECEIVE):
                call_hook(value.post_receive)
        except ConversionError as exc:
            if exc.key is None:
                exc.key = spec.key
                exc.field = f"{type(record).__qualname__}.{spec.name}"
            raise
        setattr(record, spec.name, value)

    def _apply_default(self, record: t.Any, spec: FieldSpec) -> None:
        _, base = split_optional(spec.annotation)
        if not (is_class(base) and has_capability(base, DEFAULT_VALUE)):
            return
        current = getattr(record, spec.name, None)
        provider = current if isinstance(current, base) else instantiate(base)
        setattr(record, spec.name, provider.default_value())


def bind(
    params: t.Mapping[str, t.Any],
    target: t.Any,
    *,
    config: BindConfig | None = None,
    rules: t.Iterable[ConversionRule] | None = None,
) -> BindResult:
    """Bind ``params`` onto ``target`` with a one-off Binder."""
    return Binder(config, rules).bind(params, target)


def unmarshal_params(
    params: t.Mapping[str, t.Any],
    target: t.Any,
    *,
    config: BindConfig | None = None,
    rules: t.Iterable[ConversionRule] | None = None,
) -> None:
    """
    Bind ``params`` onto ``target``, raising MissingFields if required
    fields were absent.

    The key used to load a value for a field is determined as follows:

    1. The name in the field's ``request`` tag.
    2. Else the name in its ``response`` tag.
    3. Else the name in its ``db`` tag.
    4. Else the field name, lower-cased.

    Whichever of these is "-" skips the field. Catch MissingFields
    when a partial payload is fine:

        @dataclass
        class Example:
            foo: str = ""
            bar: str = tag(response="baz", default="")
            baz: str = tag(response="-", default="")
            bacon: str = tag(response="-", request="bacon", default="")

        def create_example(params):
            target = Example()
            try:
                unmarshal_params(params, target)
            except MissingFields:
                pass
            return target
    """
    bind(params, target, config=config, rules=rules).raise_for_missing()
