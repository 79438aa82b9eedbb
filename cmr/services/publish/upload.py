from __future__ import annotations

from typing import TypeAlias

from cmr.core.request import SourceConfig
from cmr.core.result import Err, Ok, Result
from cmr.core.structured import display
from cmr.output.console import ConsoleProtocol
from cmr.platform.http import HttpClient
from cmr.services.dialect import BuiltArtifact, Dialect
from cmr.services.errors import UploadError, UploadNotSaved, UploadRejected, UploadTransportFailed

UploadFailure: TypeAlias = UploadTransportFailed | UploadRejected | UploadError | UploadNotSaved

CREATED = 201


def upload_url(server_url: str, *, force: bool) -> str:
    return f"{server_url}?force=true" if force else server_url


def upload_chart(
    *,
    client: HttpClient,
    dialect: Dialect,
    source: SourceConfig,
    artifact: BuiltArtifact,
    force: bool,
    console: ConsoleProtocol,
) -> Result[None, UploadFailure]:
    """POST the archive and check that the server saved it.

    Anything but 201 is a rejection. A 201 is still a failure when the body
    carries an ``error`` or does not report ``saved: true``: the server
    acknowledges receipt before it validates the chart.
    """
    console.print(f'Uploading chart file: "{artifact.path}"...')
    url = upload_url(source.server_url, force=force)
    result = client.post(url, dialect.upload_body(artifact))
    if isinstance(result, Err):
        return Err(UploadTransportFailed(url=source.server_url, message=result.error.message))

    resp = result.value
    if resp.status != CREATED:
        return Err(UploadRejected(url=source.server_url, status=resp.status, reason=resp.reason))

    body = resp.json_object()
    if isinstance(body, Err):
        return Err(UploadError(message=f"unreadable response body: {body.error.message}"))
    if body.value.get("error") is not None:
        return Err(UploadError(message=display(body.value.get("error"))))
    if body.value.get("saved") is not True:
        return Err(UploadNotSaved(saved=body.value.get("saved")))
    return Ok(None)
