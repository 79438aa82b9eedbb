"""HTTP client abstraction for the chart repository API.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RequestsHttpClient: Real implementation using requests
- open_client: builds a RequestsHttpClient for one repository, staging its
  TLS material to temporary files for the lifetime of the client
- MockHttpClient: Mock implementation for testing

Transport-level failures (DNS, refused connections, TLS errors) are
``Err(HttpError)``. Any HTTP status, 4xx/5xx included, is an
``Ok(HttpResponse)``: the caller owns the status policy.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, TypeAlias, runtime_checkable

import requests
from requests.auth import HTTPBasicAuth

from cmr.core.request import RepositoryConfig
from cmr.core.result import Err, Ok, Result
from cmr.core.structured import ObjList, StrDict, as_obj_list, as_str_dict
from cmr.platform.files import scoped_tempdir, write_private

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "ClientFactory",
    "MultipartUpload",
    "StreamUpload",
    "UploadBody",
    "RequestsHttpClient",
    "MockHttpClient",
    "open_client",
]

USER_AGENT = "chartmuseum-resource/1.0"


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@dataclass(frozen=True, slots=True)
class HttpResponse:
    """A complete response, whatever its status."""

    url: str
    status: int
    reason: str
    content: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def _decode(self) -> Result[object, HttpError]:
        try:
            return Ok(json.loads(self.content.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=self.url, status=self.status, message=f"JSON parse error: {e}"))

    def json_object(self) -> Result[StrDict, HttpError]:
        """Decode the body as a JSON object."""
        decoded = self._decode()
        if isinstance(decoded, Err):
            return decoded
        data = as_str_dict(decoded.value)
        if data is None:
            return Err(HttpError(url=self.url, status=self.status, message="Expected JSON object"))
        return Ok(data)

    def json_list(self) -> Result[ObjList, HttpError]:
        """Decode the body as a JSON array."""
        decoded = self._decode()
        if isinstance(decoded, Err):
            return decoded
        data = as_obj_list(decoded.value)
        if data is None:
            return Err(HttpError(url=self.url, status=self.status, message="Expected JSON array"))
        return Ok(data)


@dataclass(frozen=True, slots=True)
class MultipartUpload:
    """Archive sent as a single multipart form field."""

    field: str
    path: Path


@dataclass(frozen=True, slots=True)
class StreamUpload:
    """Archive sent as the raw request body."""

    path: Path
    size: int

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Length": str(self.size),
            "Content-Disposition": f'attachment; filename="{self.path.name}"',
        }


UploadBody: TypeAlias = MultipartUpload | StreamUpload


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations against one repository.

    This abstraction allows injecting mock clients for testing,
    avoiding real network calls in unit tests.
    """

    def get(self, url: str) -> Result[HttpResponse, HttpError]:
        """GET ``url`` with fresh headers."""
        ...

    def post(self, url: str, body: UploadBody) -> Result[HttpResponse, HttpError]:
        """POST an archive to ``url`` encoded as described by ``body``."""
        ...


ClientFactory: TypeAlias = Callable[[RepositoryConfig], AbstractContextManager[HttpClient]]


class RequestsHttpClient:
    """HTTP client backed by a configured ``requests.Session``."""

    def __init__(self, session: requests.Session, user_agent: str = USER_AGENT) -> None:
        self.session = session
        self.user_agent = user_agent

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if extra:
            headers.update(extra)
        return headers

    @staticmethod
    def _response(url: str, resp: requests.Response) -> HttpResponse:
        return HttpResponse(
            url=url,
            status=resp.status_code,
            reason=resp.reason or "",
            content=resp.content,
        )

    def get(self, url: str) -> Result[HttpResponse, HttpError]:
        try:
            resp = self.session.get(url, headers=self._headers())
        except requests.RequestException as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        return Ok(self._response(url, resp))

    def post(self, url: str, body: UploadBody) -> Result[HttpResponse, HttpError]:
        try:
            with body.path.open("rb") as handle:
                match body:
                    case MultipartUpload(field=name, path=path):
                        resp = self.session.post(
                            url,
                            headers=self._headers(),
                            files={name: (path.name, handle, "application/gzip")},
                        )
                    case StreamUpload():
                        resp = self.session.post(
                            url,
                            headers=self._headers(body.headers),
                            data=handle,
                        )
        except requests.RequestException as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=f"cannot read {body.path}: {e}"))
        return Ok(self._response(url, resp))


@contextmanager
def open_client(repo: RepositoryConfig) -> Iterator[HttpClient]:
    """Yield a client for ``repo``; staged TLS files are removed on exit."""
    with scoped_tempdir("cmr-tls-") as tls_dir, requests.Session() as session:
        if repo.tls_ca_cert:
            session.verify = str(write_private(tls_dir / "ca.pem", repo.tls_ca_cert))
        client_cert = repo.client_cert
        if client_cert is not None:
            cert, key = client_cert
            session.cert = (
                str(write_private(tls_dir / "cert.pem", cert)),
                str(write_private(tls_dir / "key.pem", key)),
            )
        credentials = repo.basic_auth
        if credentials is not None:
            session.auth = HTTPBasicAuth(*credentials)
        yield RequestsHttpClient(session)


@dataclass(frozen=True, slots=True)
class RecordedRequest:
    method: str
    url: str
    body: UploadBody | None = None


def _empty_routes() -> dict[tuple[str, str], HttpResponse | HttpError]:
    return {}


def _empty_requests() -> list[RecordedRequest]:
    return []


def _empty_repos() -> list[RepositoryConfig]:
    return []


@dataclass
class MockHttpClient:
    """Mock HTTP client for testing.

    Allows setting predefined responses for specific method/URL pairs.
    Unregistered URLs answer 404.

    Usage:
        client = MockHttpClient()
        client.set_json("GET", "https://charts.example.com/api/charts/demo/1.0.0", {...})
        result = client.get("https://charts.example.com/api/charts/demo/1.0.0")
    """

    routes: dict[tuple[str, str], HttpResponse | HttpError] = field(default_factory=_empty_routes)
    calls: list[RecordedRequest] = field(default_factory=_empty_requests)
    opened_with: list[RepositoryConfig] = field(default_factory=_empty_repos)

    def set_response(
        self, method: str, url: str, status: int, content: bytes = b"", reason: str = ""
    ) -> None:
        self.routes[(method, url)] = HttpResponse(url, status, reason, content)

    def set_json(self, method: str, url: str, data: Any, status: int = 200) -> None:
        self.set_response(method, url, status, json.dumps(data).encode("utf-8"))

    def set_error(self, method: str, url: str, message: str) -> None:
        self.routes[(method, url)] = HttpError(url=url, status=0, message=message)

    def _answer(self, method: str, url: str) -> Result[HttpResponse, HttpError]:
        route = self.routes.get((method, url))
        if route is None:
            return Ok(HttpResponse(url, 404, "Not Found", b"not found (mock)"))
        if isinstance(route, HttpError):
            return Err(route)
        return Ok(route)

    def get(self, url: str) -> Result[HttpResponse, HttpError]:
        self.calls.append(RecordedRequest("GET", url))
        return self._answer("GET", url)

    def post(self, url: str, body: UploadBody) -> Result[HttpResponse, HttpError]:
        self.calls.append(RecordedRequest("POST", url, body))
        return self._answer("POST", url)

    # Test helper methods

    def factory(self) -> ClientFactory:
        """A ClientFactory that always yields this mock."""

        @contextmanager
        def _open(repo: RepositoryConfig) -> Iterator[HttpClient]:
            self.opened_with.append(repo)
            yield self

        return _open

    def urls(self, method: str | None = None) -> list[str]:
        return [c.url for c in self.calls if method is None or c.method == method]
