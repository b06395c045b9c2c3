"""Tests for pkgrel.platform.http module."""

import pytest

from pkgrel import __version__
from pkgrel.core.result import Err, Ok
from pkgrel.platform.http import HttpClient, HttpError, MockHttpClient, RealHttpClient


class TestHttpError:
    def test_str_with_status(self) -> None:
        error = HttpError(url="https://crates.io/api", status=500, message="Internal Error")
        assert str(error) == "HTTP 500: Internal Error (https://crates.io/api)"

    def test_str_without_status(self) -> None:
        error = HttpError(url="https://crates.io", status=0, message="Timeout")
        assert str(error) == "Timeout (https://crates.io)"

    def test_is_not_found(self) -> None:
        assert HttpError(url="u", status=404, message="").is_not_found
        assert not HttpError(url="u", status=500, message="").is_not_found

    def test_is_frozen(self) -> None:
        error = HttpError(url="u", status=404, message="Not Found")
        with pytest.raises(AttributeError):
            error.status = 200  # type: ignore[misc]


class TestMockHttpClient:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(MockHttpClient(), HttpClient)

    def test_canned_json(self) -> None:
        client = MockHttpClient()
        client.set_json("https://example.com/a", {"ok": True})

        assert client.get_json("https://example.com/a") == Ok({"ok": True})
        assert client.calls == ["https://example.com/a"]

    def test_unknown_url_is_404(self) -> None:
        result = MockHttpClient().get_json("https://example.com/missing")
        assert isinstance(result, Err)
        assert result.error.is_not_found

    def test_canned_error(self) -> None:
        client = MockHttpClient()
        client.set_json("https://example.com/a", HttpError(url="https://example.com/a", status=503, message="down"))
        result = client.get_json("https://example.com/a")
        assert isinstance(result, Err)
        assert result.error.status == 503


class TestRealHttpClient:
    def test_default_user_agent_names_the_tool(self) -> None:
        client = RealHttpClient()
        assert client.user_agent == f"pkgrel/{__version__}"
        assert isinstance(client, HttpClient)
