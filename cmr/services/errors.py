from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal


@dataclass(frozen=True, slots=True)
class BadRequest:
    message: str


@dataclass(frozen=True, slots=True)
class VersionRangeViolation:
    version: str
    version_range: str
    reason: Literal["outside", "invalid_range", "invalid_version"] = "outside"
    # Whether the version came from params or from inspecting the archive.
    source: Literal["requested", "inspected"] = "requested"


@dataclass(frozen=True, slots=True)
class RepoAddFailed:
    name: str
    server_url: str
    stderr: str


@dataclass(frozen=True, slots=True)
class ChartNotFound:
    path: Path


@dataclass(frozen=True, slots=True)
class ChartMetadataInvalid:
    path: Path
    reason: str


@dataclass(frozen=True, slots=True)
class SigningKeyMissing:
    pass


@dataclass(frozen=True, slots=True)
class KeyImportFailed:
    key_file: Path
    returncode: int
    stderr: str


@dataclass(frozen=True, slots=True)
class KeyIdNotFound:
    key_file: Path
    output: str


@dataclass(frozen=True, slots=True)
class PackageFailed:
    returncode: int
    stderr: str


@dataclass(frozen=True, slots=True)
class ArchiveMissing:
    path: Path


@dataclass(frozen=True, slots=True)
class InspectFailed:
    path: Path
    stderr: str


@dataclass(frozen=True, slots=True)
class VersionUnparseable:
    path: Path
    output: str


@dataclass(frozen=True, slots=True)
class VersionMismatch:
    expected: str
    actual: str
    stage: Literal["package", "publish"]


@dataclass(frozen=True, slots=True)
class UploadTransportFailed:
    url: str
    message: str


@dataclass(frozen=True, slots=True)
class UploadRejected:
    url: str
    status: int
    reason: str


@dataclass(frozen=True, slots=True)
class UploadError:
    message: str


@dataclass(frozen=True, slots=True)
class UploadNotSaved:
    saved: object


@dataclass(frozen=True, slots=True)
class MetadataFetchFailed:
    url: str
    status: int
    body: str


@dataclass(frozen=True, slots=True)
class DownloadFailed:
    url: str
    status: int
    message: str


ResourceError = (
    BadRequest
    | VersionRangeViolation
    | RepoAddFailed
    | ChartNotFound
    | ChartMetadataInvalid
    | SigningKeyMissing
    | KeyImportFailed
    | KeyIdNotFound
    | PackageFailed
    | ArchiveMissing
    | InspectFailed
    | VersionUnparseable
    | VersionMismatch
    | UploadTransportFailed
    | UploadRejected
    | UploadError
    | UploadNotSaved
    | MetadataFetchFailed
    | DownloadFailed
)
