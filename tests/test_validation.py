"""Unit tests for auth/validation.py -- checks and the Pipeline runner."""

from __future__ import annotations

import pytest

from auth import messages
from auth.errors import AuthenticationError, ConflictError, ValidationError
from auth.validation import (
    Custom,
    FieldRule,
    IsEmail,
    IsISO8601,
    IsString,
    Length,
    Matches,
    MaxBytes,
    Pipeline,
    RequestContext,
    Required,
    StrongPassword,
    Trim,
)

pytestmark = pytest.mark.anyio


def _ctx(body: dict | None = None, headers: dict | None = None) -> RequestContext:
    return RequestContext(body=body or {}, headers=headers or {})


class TestChecks:
    async def test_trim_only_touches_strings(self) -> None:
        assert await Trim()("  x  ", _ctx()) == "x"
        assert await Trim()(5, _ctx()) == 5

    @pytest.mark.parametrize("value", [None, ""])
    async def test_required(self, value) -> None:
        with pytest.raises(ValidationError):
            await Required("R")(value, _ctx())

    async def test_required_with_custom_error(self) -> None:
        with pytest.raises(AuthenticationError):
            await Required("R", error_cls=AuthenticationError)(None, _ctx())

    async def test_is_string(self) -> None:
        with pytest.raises(ValidationError):
            await IsString("S")(["a"], _ctx())

    @pytest.mark.parametrize("value", ["a@x.com", "first.last+tag@example.co.uk"])
    async def test_is_email_accepts(self, value: str) -> None:
        assert await IsEmail("E")(value, _ctx()) == value

    @pytest.mark.parametrize("value", ["a@", "@x.com", "no-at-sign", 7])
    async def test_is_email_rejects(self, value) -> None:
        with pytest.raises(ValidationError):
            await IsEmail("E")(value, _ctx())

    async def test_length_bounds(self) -> None:
        check = Length("L", min_length=2, max_length=3)
        assert await check("ab", _ctx()) == "ab"
        for bad in ("a", "abcd", 12):
            with pytest.raises(ValidationError):
                await check(bad, _ctx())

    async def test_max_bytes_counts_utf8_bytes(self) -> None:
        check = MaxBytes("L")
        assert await check("a" * 72, _ctx()) == "a" * 72
        assert await check("é" * 36, _ctx()) == "é" * 36
        for bad in ("a" * 73, "Aa1!" + "é" * 46, None):
            with pytest.raises(ValidationError):
                await check(bad, _ctx())

    @pytest.mark.parametrize("value", ["Aa1!aa", "Zz9#Zz9#", "pässWORD1!"])
    async def test_strong_password_accepts(self, value: str) -> None:
        assert await StrongPassword("P")(value, _ctx()) == value

    @pytest.mark.parametrize("value", ["Aa1!a", "aa1!aaaa", "AA1!AAAA", "Aa!!aaaa", "Aa11aaaa", "Aa1 aaaa"])
    async def test_strong_password_rejects(self, value: str) -> None:
        with pytest.raises(ValidationError):
            await StrongPassword("P")(value, _ctx())

    @pytest.mark.parametrize("value", ["2000-01-01", "2000-01-01T10:20:30", "2000-01-01T10:20:30+02:00"])
    async def test_iso8601_accepts(self, value: str) -> None:
        assert await IsISO8601("D")(value, _ctx()) == value

    @pytest.mark.parametrize(
        "value",
        ["2001-02-30", "01/02/2000", "yesterday", "2000-01-01 00:00:00", "2000-01-01x10:20:30", "2000-0101", None],
    )
    async def test_iso8601_rejects(self, value) -> None:
        with pytest.raises(ValidationError):
            await IsISO8601("D")(value, _ctx())

    async def test_matches_uses_sanitized_value(self) -> None:
        ctx = _ctx(body={"password": " Aa1!aa "})
        ctx.values["password"] = "Aa1!aa"
        assert await Matches("password", "M")("Aa1!aa", ctx) == "Aa1!aa"
        with pytest.raises(ValidationError):
            await Matches("password", "M")(" Aa1!aa ", ctx)

    async def test_custom_may_replace_value(self) -> None:
        async def upper(value, ctx):
            return value.upper()

        async def keep(value, ctx):
            return None

        assert await Custom(upper)("abc", _ctx()) == "ABC"
        assert await Custom(keep)("abc", _ctx()) == "abc"


class TestPipeline:
    async def test_values_are_sanitized_in_order(self) -> None:
        pipeline = Pipeline(
            FieldRule("email", [Trim(), Required("R"), IsEmail("E")]),
            FieldRule("password", [Required("R")]),
        )
        ctx = await pipeline.run(_ctx(body={"email": "  a@x.com ", "password": "pw"}))
        assert ctx.values == {"email": "a@x.com", "password": "pw"}

    async def test_first_failure_stops_the_run(self) -> None:
        calls: list[str] = []

        async def record(value, ctx):
            calls.append(value)

        pipeline = Pipeline(
            FieldRule("name", [Required(messages.NAME_IS_REQUIRED), Custom(record)]),
            FieldRule("email", [Custom(record)]),
        )
        with pytest.raises(ValidationError) as exc_info:
            await pipeline.run(_ctx(body={"email": "a@x.com"}))
        assert exc_info.value.message == messages.NAME_IS_REQUIRED
        assert exc_info.value.field == "name"
        assert calls == []

    async def test_custom_error_keeps_its_class_and_gets_field(self) -> None:
        async def taken(value, ctx):
            raise ConflictError(messages.EMAIL_ALREADY_EXISTS)

        pipeline = Pipeline(FieldRule("email", [Custom(taken)]))
        with pytest.raises(ConflictError) as exc_info:
            await pipeline.run(_ctx(body={"email": "a@x.com"}))
        assert exc_info.value.field == "email"

    async def test_explicit_field_is_preserved(self) -> None:
        async def fail(value, ctx):
            raise AuthenticationError("X", field="refresh_token")

        pipeline = Pipeline(FieldRule("Authorization", [Custom(fail)], location="headers"))
        with pytest.raises(AuthenticationError) as exc_info:
            await pipeline.run(_ctx(headers={"Authorization": "Bearer t"}))
        assert exc_info.value.field == "refresh_token"

    async def test_header_rules_read_headers(self) -> None:
        pipeline = Pipeline(FieldRule("Authorization", [Required("R")], location="headers"))
        ctx = await pipeline.run(_ctx(body={"Authorization": "wrong place"}, headers={"Authorization": "Bearer t"}))
        assert ctx.values["Authorization"] == "Bearer t"

    async def test_contexts_are_independent(self) -> None:
        pipeline = Pipeline(FieldRule("email", [Trim()]))
        first = await pipeline.run(_ctx(body={"email": "a@x.com"}))
        second = await pipeline.run(_ctx(body={"email": "b@x.com"}))
        assert first.values["email"] == "a@x.com"
        assert second.values["email"] == "b@x.com"
