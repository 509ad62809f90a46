"""Tests for field and model capabilities (receivers, defaults, hooks)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import pytest

from restgrab import (
    BindConfig,
    ConversionError,
    MissingFields,
    UnmatchedParameters,
    ValueReceiver,
    bind,
    tag,
)


@dataclass
class Password:
    digest: str = ""
    calls: list = field(default_factory=list)

    def receive(self, raw: Any) -> None:
        self.calls.append(raw)
        if not isinstance(raw, str) or len(raw) < 4:
            raise ValueError("password too short")
        self.digest = raw[::-1]


@dataclass
class Counter:
    value: int = 0

    def receive(self, raw: Any) -> None:
        # numbers would convert fine; the receiver still owns them
        self.value = 1000 + int(raw)


@dataclass
class Page:
    size: int = 0

    def default_value(self) -> "Page":
        return Page(size=25)


@dataclass
class Trimmed:
    text: str = ""
    events: list = field(default_factory=list)

    def receive(self, raw: Any) -> None:
        self.events.append("receive")
        self.text = str(raw).strip()

    def pre_receive(self) -> None:
        self.events.append("pre")

    def post_receive(self) -> None:
        self.events.append("post")
        if not self.text:
            raise ValueError("text must not be blank")


@dataclass
class Account:
    password: Password = field(default_factory=Password)


@dataclass
class Totals:
    total: Counter = field(default_factory=Counter)


@dataclass
class Listing:
    page: Page = tag(request=",optional", default=None)
    other: Page = tag(request="other,required", default_factory=Page)


@dataclass
class Comment:
    body: Trimmed = field(default_factory=Trimmed)


@dataclass
class NullableReceiver:
    password: Optional[Password] = None


class Upper:
    def __init__(self) -> None:
        self.value = ""

    def receive(self, raw: Any) -> None:
        self.value = str(raw).upper()


@dataclass
class Shouting:
    word: Upper = field(default_factory=Upper)
    seen: list = tag(request="-", default_factory=list)

    def pre_unmarshal(self) -> None:
        self.seen.append("pre")

    def post_unmarshal(self) -> None:
        self.seen.append("post")


@dataclass
class SelfBinding:
    params: dict = field(default_factory=dict)

    def unmarshal(self, params) -> None:
        self.params = dict(params)


def test_value_receiver_is_invoked() -> None:
    """A receiver type parses its own value in place."""

    account = Account()
    original = account.password
    assert bind({"password": "secret"}, account).ok

    assert account.password is original
    assert account.password.digest == "terces"
    assert isinstance(account.password, ValueReceiver)


def test_value_receiver_errors_propagate_verbatim() -> None:
    """Receiver failures become conversion errors with the same message."""

    with pytest.raises(ConversionError, match="^password too short$") as exc_info:
        bind({"password": "abc"}, Account())

    assert isinstance(exc_info.value.__cause__, ValueError)
    assert exc_info.value.key == "password"


def test_receiver_wins_over_builtin_conversion() -> None:
    """Even convertible values go through receive()."""

    totals = Totals()
    bind({"total": 5}, totals)

    assert totals.total.value == 1005


def test_receiver_gets_null_values() -> None:
    """A non-optional receiver owns null handling too."""

    account = Account()
    with pytest.raises(ConversionError):
        bind({"password": None}, account)
    assert account.password.calls == [None]


def test_optional_receiver_is_cleared_by_null() -> None:
    """Optional receivers are set to None instead of receiving null."""

    target = NullableReceiver(password=Password(digest="x"))
    bind({"password": None}, target)
    assert target.password is None

    bind({"password": "hunter2"}, target)
    assert target.password.digest == "2retnuh"


def test_plain_class_receiver() -> None:
    """Receivers need not be dataclasses themselves."""

    target = Shouting()
    bind({"word": "hey"}, target)

    assert target.word.value == "HEY"


def test_default_value_provider_for_absent_optional_field() -> None:
    """Absent optional fields take the provider's value; present ones never call it."""

    listing = Listing()
    result = bind({}, listing)

    assert listing.page == Page(size=25)
    assert result.missing.names == ["other"]

    listing = Listing()
    bind({"page": Page(size=3), "other": Page(size=4)}, listing)
    assert listing.page == Page(size=3)


def test_default_value_provider_not_used_for_required_field() -> None:
    """Required absent fields are reported missing, not defaulted."""

    listing = Listing()
    bind({"page": Page(size=1)}, listing, config=BindConfig(required_by_default=False))

    assert listing.other == Page()


def test_pre_and_post_receive_hooks_wrap_conversion() -> None:
    """Hooks run around receive() in order."""

    comment = Comment()
    bind({"body": "  hi  "}, comment)

    assert comment.body.text == "hi"
    assert comment.body.events == ["pre", "receive", "post"]


def test_post_receive_error_fails_the_field() -> None:
    """A failing post hook turns into the field's conversion error."""

    with pytest.raises(ConversionError, match="text must not be blank") as exc_info:
        bind({"body": "   "}, Comment())

    assert exc_info.value.field == "Comment.body"


def test_model_pre_and_post_unmarshal() -> None:
    """Model hooks run around a traversal that did not fail."""

    target = Shouting()
    bind({"word": "a"}, target)
    assert target.seen == ["pre", "post"]

    target = Shouting()
    with pytest.raises(UnmatchedParameters):
        bind({"word": "a", "extra": 1}, target)
    assert target.seen == ["pre"]


def test_model_unmarshaller_takes_over() -> None:
    """A model with unmarshal() binds the parameter set itself."""

    target = SelfBinding()
    result = bind({"anything": 1, "goes": 2}, target)

    assert result.ok
    assert result.matched == 2
    assert target.params == {"anything": 1, "goes": 2}


def test_missing_fields_error_is_falsy_when_empty() -> None:
    """MissingFields behaves like a collection of names."""

    missing = MissingFields()
    assert not missing
    missing.add("a")
    missing.add("b")
    assert missing
    assert str(missing) == "Missing value for fields: a,b"
