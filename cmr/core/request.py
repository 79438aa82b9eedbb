"""Typed request loading.

Concourse hands every resource command a single JSON document on stdin.
This module turns that document into frozen dataclasses, validating the
fields each command needs. It plays the role a config file plays for a
regular CLI: all behavior of a run is decided by what is parsed here.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_raw_str, get_str, get_table

__all__ = [
    "RequestError",
    "RepositoryConfig",
    "SourceConfig",
    "VersionRef",
    "OutParams",
    "InParams",
    "CheckRequest",
    "InRequest",
    "OutRequest",
    "parse_check_request",
    "parse_in_request",
    "parse_out_request",
]


@dataclass(frozen=True, slots=True)
class RequestError:
    """Error when the request on stdin cannot be parsed or is incomplete."""

    message: str
    field: str | None = None


@dataclass(frozen=True, slots=True)
class RepositoryConfig:
    """Connection details for a chart repository."""

    server_url: str
    basic_auth_username: str | None = None
    basic_auth_password: str | None = None
    tls_ca_cert: str | None = None
    tls_client_cert: str | None = None
    tls_client_key: str | None = None

    @property
    def basic_auth(self) -> tuple[str, str] | None:
        """Credentials pair, only when both halves are set."""
        if self.basic_auth_username and self.basic_auth_password:
            return (self.basic_auth_username, self.basic_auth_password)
        return None

    @property
    def client_cert(self) -> tuple[str, str] | None:
        """Client certificate and key PEM, only when both are set."""
        if self.tls_client_cert and self.tls_client_key:
            return (self.tls_client_cert, self.tls_client_key)
        return None

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> RepositoryConfig:
        return cls(
            server_url=(get_str(data, "server_url") or "").rstrip("/"),
            basic_auth_username=get_str(data, "basic_auth_username"),
            basic_auth_password=get_raw_str(data, "basic_auth_password"),
            tls_ca_cert=get_raw_str(data, "tls_ca_cert"),
            tls_client_cert=get_raw_str(data, "tls_client_cert"),
            tls_client_key=get_raw_str(data, "tls_client_key"),
        )


@dataclass(frozen=True, slots=True)
class SourceConfig:
    """The resource's ``source`` block."""

    repository: RepositoryConfig
    chart_name: str
    version_range: str | None = None
    harbor_api: bool = False

    @property
    def server_url(self) -> str:
        return self.repository.server_url

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> SourceConfig:
        return cls(
            repository=RepositoryConfig.from_dict(data),
            chart_name=get_str(data, "chart_name") or "",
            version_range=get_str(data, "version_range"),
            harbor_api=get_bool(data, "harbor_api"),
        )


@dataclass(frozen=True, slots=True)
class VersionRef:
    """A Concourse version: the chart version plus its content digest."""

    version: str
    digest: str = ""

    def to_json(self) -> dict[str, str]:
        return {"version": self.version, "digest": self.digest}

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> VersionRef | None:
        version = get_str(data, "version")
        if version is None:
            return None
        return cls(version=version, digest=get_str(data, "digest") or "")


def _empty_repos() -> dict[str, RepositoryConfig]:
    return {}


@dataclass(frozen=True, slots=True)
class OutParams:
    """The ``params`` block of a put step."""

    chart: str
    version: str | None = None
    version_file: str | None = None
    force: bool = False
    sign: bool = False
    key_data: str | None = None
    key_file: str | None = None
    key_passphrase: str | None = None
    dependency_update: bool = False
    dependency_repos: dict[str, RepositoryConfig] = field(default_factory=_empty_repos)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> OutParams:
        repos: dict[str, RepositoryConfig] = {}
        for name, repo in (get_table(data, "dependency_repos") or {}).items():
            repo_table = as_str_dict(repo)
            if repo_table is not None:
                repos[name] = RepositoryConfig.from_dict(repo_table)
        return cls(
            chart=get_str(data, "chart") or "",
            version=get_str(data, "version"),
            version_file=get_str(data, "version_file"),
            force=get_bool(data, "force"),
            sign=get_bool(data, "sign"),
            key_data=get_raw_str(data, "key_data"),
            key_file=get_str(data, "key_file"),
            key_passphrase=get_raw_str(data, "key_passphrase"),
            dependency_update=get_bool(data, "dependency_update"),
            dependency_repos=repos,
        )


@dataclass(frozen=True, slots=True)
class InParams:
    target_basename: str | None = None


@dataclass(frozen=True, slots=True)
class CheckRequest:
    source: SourceConfig
    version: VersionRef | None = None


@dataclass(frozen=True, slots=True)
class InRequest:
    source: SourceConfig
    version: VersionRef
    params: InParams = field(default_factory=InParams)


@dataclass(frozen=True, slots=True)
class OutRequest:
    source: SourceConfig
    params: OutParams


def _parse_document(text: str) -> Result[StrDict, RequestError]:
    try:
        data_obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(RequestError(f"Invalid JSON on stdin: {e}"))
    data = as_str_dict(data_obj)
    if data is None:
        return Err(RequestError("Request root must be a JSON object"))
    return Ok(data)


def _parse_source(data: StrDict) -> Result[SourceConfig, RequestError]:
    table = get_table(data, "source")
    if table is None:
        return Err(RequestError("Missing source configuration", field="source"))
    source = SourceConfig.from_dict(table)
    if not source.server_url:
        return Err(RequestError("Missing source.server_url", field="source.server_url"))
    if not source.chart_name:
        return Err(RequestError("Missing source.chart_name", field="source.chart_name"))
    return Ok(source)


def parse_check_request(text: str) -> Result[CheckRequest, RequestError]:
    """Parse the stdin document of ``check``."""
    data = _parse_document(text)
    if isinstance(data, Err):
        return data
    source = _parse_source(data.value)
    if isinstance(source, Err):
        return source
    version_table = get_table(data.value, "version")
    version = VersionRef.from_dict(version_table) if version_table is not None else None
    return Ok(CheckRequest(source=source.value, version=version))


def parse_in_request(text: str) -> Result[InRequest, RequestError]:
    """Parse the stdin document of ``in``; a version to fetch is mandatory."""
    data = _parse_document(text)
    if isinstance(data, Err):
        return data
    source = _parse_source(data.value)
    if isinstance(source, Err):
        return source

    version_table = get_table(data.value, "version")
    version = VersionRef.from_dict(version_table) if version_table is not None else None
    if version is None:
        return Err(RequestError("Missing version.version", field="version.version"))

    params = get_table(data.value, "params") or {}
    return Ok(
        InRequest(
            source=source.value,
            version=version,
            params=InParams(target_basename=get_str(params, "target_basename")),
        )
    )


def parse_out_request(text: str) -> Result[OutRequest, RequestError]:
    """Parse the stdin document of ``out``; ``params.chart`` is mandatory."""
    data = _parse_document(text)
    if isinstance(data, Err):
        return data
    source = _parse_source(data.value)
    if isinstance(source, Err):
        return source

    params_table = get_table(data.value, "params")
    if params_table is None:
        return Err(RequestError("Missing params", field="params"))
    params = OutParams.from_dict(params_table)
    if not params.chart:
        return Err(RequestError("Missing params.chart", field="params.chart"))
    for name, repo in params.dependency_repos.items():
        if not repo.server_url:
            return Err(
                RequestError(
                    f"Dependency repository '{name}' has no server_url",
                    field=f"params.dependency_repos.{name}.server_url",
                )
            )
    return Ok(OutRequest(source=source.value, params=params))
