"""HTTP client abstraction for the reasoning service and notification webhook.

Both callers only ever POST JSON, so that is the whole surface. Errors are
values; a timeout is flagged so the reasoning client can tell it apart from a
refusal.
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol, cast, runtime_checkable

from autorel import __version__
from autorel.core.result import Err, Ok, Result
from autorel.core.structured import as_str_dict

__all__ = [
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors and timeouts)
        message: Human-readable error message
        timed_out: True when the request hit the client timeout
    """

    url: str
    status: int
    message: str
    timed_out: bool = False

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations.

    Lets tests inject canned responses instead of calling real services.
    """

    def post_json(
        self,
        url: str,
        payload: Mapping[str, object],
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Result[dict[str, Any], HttpError]:
        """POST a JSON body and parse a JSON object response.

        An empty response body is returned as an empty dict.
        """
        ...


class RealHttpClient:
    """HTTP client using urllib with system certificates."""

    def __init__(self, timeout: float = 30.0, user_agent: str = f"autorel/{__version__}") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def post_json(
        self,
        url: str,
        payload: Mapping[str, object],
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Result[dict[str, Any], HttpError]:
        body = json.dumps(payload).encode("utf-8")
        all_headers = {
            "User-Agent": self.user_agent,
            "Content-Type": "application/json",
            **(headers or {}),
        }
        try:
            req = urllib.request.Request(url, data=body, headers=all_headers, method="POST")
            with urllib.request.urlopen(
                req,
                timeout=timeout if timeout is not None else self.timeout,
                context=self._ssl_context,
            ) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            timed_out = isinstance(e.reason, TimeoutError)
            return Err(HttpError(url=url, status=0, message=str(e.reason), timed_out=timed_out))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out", timed_out=True))
        except (ValueError, OSError) as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

        if not raw.strip():
            return Ok({})
        try:
            data_obj: object = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Webhooks commonly answer with a plain "ok".
            return Ok({"text": raw.decode("utf-8", errors="replace")})
        data = as_str_dict(data_obj)
        if data is None:
            return Err(HttpError(url=url, status=0, message="Expected JSON object"))
        return Ok(cast(dict[str, Any], data))


class MockHttpClient:
    """Mock HTTP client for testing.

    Usage:
        client = MockHttpClient()
        client.set_json("https://api.example.com/v1/messages", {"content": []})
        result = client.post_json("https://api.example.com/v1/messages", {})
    """

    def __init__(self) -> None:
        self._responses: dict[str, dict[str, Any] | HttpError] = {}
        self.calls: list[tuple[str, dict[str, object]]] = []

    def set_json(self, url: str, response: dict[str, Any] | HttpError) -> None:
        """Set the response for URL."""
        self._responses[url] = response

    def post_json(
        self,
        url: str,
        payload: Mapping[str, object],
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Result[dict[str, Any], HttpError]:
        self.calls.append((url, dict(payload)))

        if url not in self._responses:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))

        response = self._responses[url]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)
