"""Tests for pkgrel.core.result module."""

import pytest

from pkgrel.core.result import Err, Ok, Result, is_err, is_ok


class TestOk:
    """Tests for Ok type."""

    def test_create_ok(self) -> None:
        result = Ok(42)
        assert result.value == 42

    def test_ok_flags(self) -> None:
        result = Ok(42)
        assert result.is_ok() is True
        assert result.is_err() is False

    def test_ok_unwrap(self) -> None:
        assert Ok(42).unwrap() == 42

    def test_ok_unwrap_or_ignores_default(self) -> None:
        assert Ok(42).unwrap_or(0) == 42

    def test_ok_map(self) -> None:
        assert Ok(21).map(lambda x: x * 2) == Ok(42)

    def test_ok_repr(self) -> None:
        assert repr(Ok("1.2.4")) == "Ok('1.2.4')"


class TestErr:
    """Tests for Err type."""

    def test_err_flags(self) -> None:
        result = Err("boom")
        assert result.is_ok() is False
        assert result.is_err() is True

    def test_err_unwrap_raises(self) -> None:
        with pytest.raises(ValueError, match="called unwrap on Err"):
            Err("boom").unwrap()

    def test_err_unwrap_or_returns_default(self) -> None:
        assert Err("boom").unwrap_or(7) == 7

    def test_err_map_is_noop(self) -> None:
        result = Err("boom")
        assert result.map(lambda x: x * 2) is result


class TestTypeGuards:
    def test_is_ok_and_is_err(self) -> None:
        good: Result[int, str] = Ok(1)
        bad: Result[int, str] = Err("x")
        assert is_ok(good) and not is_err(good)
        assert is_err(bad) and not is_ok(bad)

    def test_pattern_matching(self) -> None:
        def describe(result: Result[int, str]) -> str:
            match result:
                case Ok(value):
                    return f"ok {value}"
                case Err(error):
                    return f"err {error}"

        assert describe(Ok(3)) == "ok 3"
        assert describe(Err("nope")) == "err nope"
