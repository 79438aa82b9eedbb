"""Error presentation utilities.

Centralized error formatting and exit code mapping for every stage of the
resource commands.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from cmr.core.errors import ErrorCode
from cmr.output.console import Style
from cmr.services.errors import (
    ArchiveMissing,
    BadRequest,
    ChartMetadataInvalid,
    ChartNotFound,
    DownloadFailed,
    InspectFailed,
    KeyIdNotFound,
    KeyImportFailed,
    MetadataFetchFailed,
    PackageFailed,
    RepoAddFailed,
    ResourceError,
    SigningKeyMissing,
    UploadError,
    UploadNotSaved,
    UploadRejected,
    UploadTransportFailed,
    VersionMismatch,
    VersionRangeViolation,
    VersionUnparseable,
)

if TYPE_CHECKING:
    from cmr.output.console import ConsoleProtocol

__all__ = ["print_error", "error_exit_code"]


def _echo(console: ConsoleProtocol, text: str) -> None:
    text = text.strip()
    if text:
        console.print(text, Style.DIM)


def print_error(error: ResourceError, console: ConsoleProtocol) -> None:
    """Print a stage error with the context needed to diagnose it."""
    match error:
        case BadRequest(message=message):
            console.error(f"Unable to retrieve JSON data from stdin: {message}")
        case VersionRangeViolation(
            version=version, version_range=rng, reason="outside", source="inspected"
        ):
            console.error(
                f"Chart version ({version}) reported by the packaged chart does not satisfy "
                f"contents of source.version_range ({rng})"
            )
        case VersionRangeViolation(version=version, version_range=rng, reason="outside"):
            console.error(
                f"params.version ({version}) does not satisfy contents of "
                f"source.version_range ({rng})"
            )
        case VersionRangeViolation(version_range=rng, reason="invalid_range"):
            console.error(f"source.version_range is not a valid range: {rng}")
        case VersionRangeViolation(version=version, version_range=rng):
            console.error(f"version '{version}' is not a valid semantic version (range {rng})")
        case RepoAddFailed(name=name, server_url=url, stderr=stderr):
            _echo(console, stderr)
            console.error(f"Adding Helm repo '{name}' ({url}) failed")
        case ChartNotFound(path=path):
            console.error(f"Chart file ({path}) not found")
        case ChartMetadataInvalid(path=path, reason=reason):
            console.error(f"Invalid chart metadata: {path} ({reason})")
        case SigningKeyMissing():
            console.error("Either key_data or key_file must be specified, when 'sign' is set to true")
        case KeyImportFailed(key_file=key_file, returncode=rc, stderr=stderr):
            _echo(console, stderr)
            console.error(f"Importing of GPG key '{key_file}' failed (exit {rc})")
        case KeyIdNotFound(key_file=key_file, output=output):
            _echo(console, output)
            console.error(
                f"Unable to determine key ID after successful import of '{key_file}': "
                "no 'secret key imported' line"
            )
        case PackageFailed(returncode=rc, stderr=stderr):
            _echo(console, stderr)
            console.error(f"Packaging of chart file failed (exit {rc})")
        case ArchiveMissing(path=path):
            console.error(f"Packaged chart not found: {path}")
        case InspectFailed(path=path, stderr=stderr):
            _echo(console, stderr)
            console.error(f'Unable to "inspect" Helm chart file: {path}')
        case VersionUnparseable(path=path):
            console.error(f"Unable to parse version information from inspection of {path}")
        case VersionMismatch(expected=expected, actual=actual, stage="package"):
            console.error(f"Packaged chart has version {actual}, expected {expected}")
        case VersionMismatch(expected=expected, actual=actual):
            console.error(
                f"Version mismatch in uploaded Helm chart. Got: {actual}, expected: {expected}"
            )
        case UploadTransportFailed(url=url, message=message):
            console.error(f'Upload of chart file to "{url}" has failed: {message}')
        case UploadRejected(url=url, status=status, reason=reason):
            console.error(
                f'An error occurred while uploading the chart to "{url}": "{status} - {reason}"'
            )
        case UploadError(message=message):
            console.error(f'An error occurred while uploading the chart: "{message}"')
        case UploadNotSaved(saved=saved):
            console.error(f"Helm chart has not been saved (server returned saved={saved!r})")
        case MetadataFetchFailed(url=url, status=status, body=body):
            _echo(console, body)
            console.error(f"Download of chart information from {url} failed (HTTP {status})")
        case DownloadFailed(url=url, message=message):
            console.error(f"Download of {url} failed: {message}")


def error_exit_code(error: ResourceError) -> int:
    """Get the process exit code for a stage error."""
    match error:
        case BadRequest():
            return int(ErrorCode.BAD_REQUEST)
        case VersionRangeViolation():
            return int(ErrorCode.VERSION_RANGE)
        case RepoAddFailed():
            return int(ErrorCode.REPO_ADD_FAILED)
        case ChartNotFound():
            return int(ErrorCode.CHART_NOT_FOUND)
        case ChartMetadataInvalid() | PackageFailed() | ArchiveMissing() | VersionUnparseable():
            return int(ErrorCode.PACKAGE_FAILED)
        case SigningKeyMissing():
            return int(ErrorCode.SIGNING_KEY_MISSING)
        case KeyImportFailed() | KeyIdNotFound():
            return int(ErrorCode.SIGNING_FAILED)
        case InspectFailed():
            return int(ErrorCode.INSPECT_FAILED)
        case VersionMismatch():
            return int(ErrorCode.VERSION_MISMATCH)
        case UploadTransportFailed():
            return int(ErrorCode.UPLOAD_TRANSPORT)
        case UploadRejected(status=status):
            return status
        case UploadError():
            return int(ErrorCode.UPLOAD_ERROR)
        case UploadNotSaved():
            return int(ErrorCode.UPLOAD_NOT_SAVED)
        case MetadataFetchFailed():
            return int(ErrorCode.METADATA_FETCH)
        case DownloadFailed():
            return int(ErrorCode.DOWNLOAD_FAILED)
    # Fallback for exhaustiveness
    return int(ErrorCode.UNEXPECTED)
