"""Repository API dialects.

ChartMuseum answers chart queries with a flat chart object. Harbor's
chartrepo API wraps the same chart fields under ``metadata`` and expects
uploads as a multipart form. Each dialect implements the same small
capability set so the pipeline never branches on ``harbor_api`` itself.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from urllib.parse import urlsplit, urlunsplit

from cmr.core.request import SourceConfig, VersionRef
from cmr.core.structured import StrDict, display, get_table
from cmr.platform.http import MultipartUpload, StreamUpload, UploadBody

__all__ = [
    "BuiltArtifact",
    "Dialect",
    "HarborDialect",
    "MetadataEntry",
    "PlainDialect",
    "dialect_for",
    "download_base",
    "ResourceOutput",
]


@dataclass(frozen=True, slots=True)
class BuiltArtifact:
    """A chart archive ready to upload."""

    path: Path
    size: int


@dataclass(frozen=True, slots=True)
class MetadataEntry:
    name: str
    value: str

    def to_json(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


class Dialect(Protocol):
    name: str

    def chart_info(self, body: StrDict) -> StrDict:
        """The object holding the chart fields (name, version, digest, ...)."""
        ...

    def version(self, body: StrDict) -> VersionRef: ...

    def metadata(self, body: StrDict) -> list[MetadataEntry]: ...

    def upload_body(self, artifact: BuiltArtifact) -> UploadBody: ...


def _version_ref(info: StrDict) -> VersionRef:
    return VersionRef(version=display(info.get("version")), digest=display(info.get("digest")))


def _entries(info: StrDict, keys: tuple[str, ...]) -> list[MetadataEntry]:
    return [MetadataEntry(key, display(info.get(key))) for key in keys]


class PlainDialect:
    """ChartMuseum's own API."""

    name = "chartmuseum"
    metadata_keys = ("created", "description", "appVersion", "home", "tillerVersion")

    def chart_info(self, body: StrDict) -> StrDict:
        return body

    def version(self, body: StrDict) -> VersionRef:
        return _version_ref(self.chart_info(body))

    def metadata(self, body: StrDict) -> list[MetadataEntry]:
        return _entries(self.chart_info(body), self.metadata_keys)

    def upload_body(self, artifact: BuiltArtifact) -> UploadBody:
        return StreamUpload(path=artifact.path, size=artifact.size)


class HarborDialect:
    """Harbor's chartrepo API (``/api/chartrepo/<project>/charts``)."""

    name = "harbor"
    metadata_keys = ("created", "description", "appVersion")
    upload_field = "chart"

    def chart_info(self, body: StrDict) -> StrDict:
        # Chart listings are already flat; single-version bodies nest the
        # chart under "metadata".
        return get_table(body, "metadata") or body

    def version(self, body: StrDict) -> VersionRef:
        return _version_ref(self.chart_info(body))

    def metadata(self, body: StrDict) -> list[MetadataEntry]:
        return _entries(self.chart_info(body), self.metadata_keys)

    def upload_body(self, artifact: BuiltArtifact) -> UploadBody:
        return MultipartUpload(field=self.upload_field, path=artifact.path)


def dialect_for(source: SourceConfig) -> Dialect:
    """Select the dialect once per invocation from ``source.harbor_api``."""
    if source.harbor_api:
        return HarborDialect()
    return PlainDialect()


def download_base(server_url: str) -> str:
    """Archive base URL: the chart API URL without its first ``api`` path segment."""
    parts = urlsplit(server_url)
    segments = parts.path.split("/")
    if "api" in segments:
        segments.remove("api")
    return urlunsplit(parts._replace(path="/".join(segments)))


def _empty_entries() -> list[MetadataEntry]:
    return []


@dataclass(frozen=True, slots=True)
class ResourceOutput:
    """The JSON document ``in`` and ``out`` print on stdout."""

    version: VersionRef
    metadata: list[MetadataEntry] = field(default_factory=_empty_entries)

    def to_json(self) -> dict[str, object]:
        return {
            "version": self.version.to_json(),
            "metadata": [entry.to_json() for entry in self.metadata],
        }
