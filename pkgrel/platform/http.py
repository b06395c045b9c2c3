"""Read-only HTTP for registry lookups.

Registries are only ever asked whether a version exists, so the client
surface is a single JSON GET. `MockHttpClient` stands in for it in tests.
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Protocol, cast, runtime_checkable

from pkgrel import __version__
from pkgrel.core.result import Err, Ok, Result
from pkgrel.core.structured import as_str_dict

__all__ = [
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
]

DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True, slots=True)
class HttpError:
    """A failed GET.

    Attributes:
        url: Requested URL.
        status: HTTP status, or 0 when no response arrived.
        message: Reason phrase or transport error.
    """

    url: str
    status: int
    message: str

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    def __str__(self) -> str:
        prefix = f"HTTP {self.status}: " if self.status else ""
        return f"{prefix}{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    def get_json(self, url: str) -> Result[dict[str, Any], HttpError]:
        """GET url and decode a JSON object body."""
        ...


class RealHttpClient:
    """urllib client verifying against the system trust store.

    crates.io refuses anonymous clients, so a User-Agent naming pkgrel is sent
    with every request.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = f"pkgrel/{__version__}",
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def _fetch(self, url: str) -> Result[bytes, HttpError]:
        req = urllib.request.Request(url, headers={"User-Agent": self.user_agent, "Accept": "application/json"})
        try:
            with urllib.request.urlopen(req, timeout=self.timeout, context=self._ssl_context) as resp:
                return Ok(resp.read())
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=f"unreachable: {e.reason}"))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message=f"no response after {self.timeout:g}s"))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

    def get_json(self, url: str) -> Result[dict[str, Any], HttpError]:
        body = self._fetch(url)
        if isinstance(body, Err):
            return body

        try:
            parsed: object = json.loads(body.value.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"invalid JSON: {e}"))

        obj = as_str_dict(parsed)
        if obj is None:
            return Err(HttpError(url=url, status=0, message="response is not a JSON object"))
        return Ok(cast(dict[str, Any], obj))


class MockHttpClient:
    """Canned responses keyed by URL; everything else answers 404.

    A 404 is what registries return for an unpublished version, so an empty
    mock means "nothing published yet".
    """

    def __init__(self) -> None:
        self._responses: dict[str, dict[str, Any] | HttpError] = {}
        self.calls: list[str] = []

    def set_json(self, url: str, response: dict[str, Any] | HttpError) -> None:
        self._responses[url] = response

    def get_json(self, url: str) -> Result[dict[str, Any], HttpError]:
        self.calls.append(url)
        response = self._responses.get(url)
        if response is None:
            return Err(HttpError(url=url, status=404, message="Not Found"))
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)
