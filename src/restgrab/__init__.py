"""Bind request parameters onto dataclass models."""
from __future__ import annotations

from .binding import Binder, BindResult, Outcome, bind, unmarshal_params
from .capabilities import (
    DefaultValueProvider,
    PostReceiver,
    PostUnmarshaller,
    PreReceiver,
    PreUnmarshaller,
    Unmarshaller,
    ValueReceiver,
)
from .config import BindConfig, Settings
from .conversion import ConversionRule, Converter, NullableWrapperRule
from .errors import (
    BindError,
    ContractViolation,
    ConversionError,
    MissingFields,
    ParamsError,
    UnmatchedParameters,
)
from .extract import parse_params
from .fields import EMBED, Embed, describe, tag
from .nullable import NullFloat64, NullInt32, NullInt64, NullString
from .paging import parse_page
from .render import dump

__all__ = [
    "Binder",
    "BindResult",
    "Outcome",
    "bind",
    "unmarshal_params",
    "DefaultValueProvider",
    "PostReceiver",
    "PostUnmarshaller",
    "PreReceiver",
    "PreUnmarshaller",
    "Unmarshaller",
    "ValueReceiver",
    "BindConfig",
    "Settings",
    "ConversionRule",
    "Converter",
    "NullableWrapperRule",
    "BindError",
    "ContractViolation",
    "ConversionError",
    "MissingFields",
    "ParamsError",
    "UnmatchedParameters",
    "parse_params",
    "EMBED",
    "Embed",
    "describe",
    "tag",
    "NullFloat64",
    "NullInt32",
    "NullInt64",
    "NullString",
    "parse_page",
    "dump",
]
