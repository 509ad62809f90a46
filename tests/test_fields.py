"""Tests for tag parsing and field key resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Optional

import pytest

from restgrab import EMBED, BindConfig, Embed, describe, tag
from restgrab.fields import SKIP, resolve_key, response_key, split_tag


@pytest.mark.parametrize(
    ("tags", "expected"),
    [
        ({}, ("fieldname", [])),
        ({"request": "req"}, ("req", [])),
        ({"response": "resp"}, ("resp", [])),
        ({"request": "req", "response": "resp"}, ("req", [])),
        ({"response": "resp", "request": ",optional"}, ("resp", ["optional"])),
        ({"db": "column"}, ("column", [])),
        ({"response": "resp", "db": "column"}, ("resp", [])),
        ({"db": "-"}, ("-", [])),
        ({"db": "-", "request": "col"}, ("col", [])),
        ({"request": "-"}, ("-", [])),
        ({"response": "-", "db": "column"}, ("-", [])),
        ({"response": "-", "request": "bacon"}, ("bacon", [])),
        ({"response": "resp,omitempty"}, ("resp", [])),
    ],
)
def test_resolve_key_precedence(tags, expected) -> None:
    """Keys come from request, then response, then db tags, then the name."""

    assert resolve_key("FieldName", tags) == expected


def test_response_key_honours_db_skip() -> None:
    """Rendering hides db:"-" fields unless a response name is given."""

    assert response_key("Secret", {"db": "-"}) == SKIP
    assert response_key("Secret", {"db": "-", "response": "shown"}) == "shown"
    assert response_key("Secret", {"request": "-"}) == "secret"


def test_split_tag_drops_empty_options() -> None:
    """Repeated commas should not produce empty options."""

    assert split_tag("name,,optional,") == ("name", ["optional"])
    assert split_tag(",required") == ("", ["required"])
    assert split_tag("") == ("", [])


@dataclass
class Audit:
    updated_by: str = ""


@dataclass
class Model:
    id: int = tag(request="id,optional", default=0)
    title: str = tag(db="title_col", default="")
    note: Optional[str] = None
    hidden: str = tag(request="-", default="")
    _private: int = 0
    audit: Embed[Audit] = field(default_factory=Audit)
    extra: Annotated[Audit, EMBED] = field(default_factory=Audit)


def test_describe_builds_field_specs() -> None:
    """Describe should expose keys, options and embedding for visible fields."""

    specs = {spec.name: spec for spec in describe(Model)}

    assert "_private" not in specs
    assert specs["id"].key == "id"
    assert specs["id"].options == ("optional",)
    assert specs["title"].key == "title_col"
    assert specs["note"].annotation == Optional[str]
    assert specs["hidden"].skipped
    assert specs["audit"].embedded and specs["audit"].annotation is Audit
    assert specs["extra"].embedded and specs["extra"].annotation is Audit


def test_describe_is_cached() -> None:
    """Field metadata is computed once per class."""

    assert describe(Model) is describe(Model)


def test_describe_rejects_non_dataclasses() -> None:
    """Only dataclass types can be described."""

    with pytest.raises(TypeError):
        describe(int)


def test_requiredness_options() -> None:
    """The last of optional/required wins over the configured default."""

    specs = {spec.name: spec for spec in describe(Model)}
    strict = BindConfig(required_by_default=True)
    lenient = BindConfig(required_by_default=False)

    assert not specs["id"].is_required(strict)
    assert specs["title"].is_required(strict)
    assert not specs["title"].is_required(lenient)

    @dataclass
    class Flipped:
        value: int = tag(request=",optional,required", default=0)

    (spec,) = describe(Flipped)
    assert spec.is_required(lenient)


def test_tag_keeps_other_metadata() -> None:
    """Tag metadata merges with user metadata and field options."""

    @dataclass
    class WithMeta:
        value: int = tag(request="v", default=5, metadata={"doc": "x"})

    (f,) = WithMeta.__dataclass_fields__.values()
    assert dict(f.metadata) == {"doc": "x", "request": "v"}
    assert WithMeta().value == 5
