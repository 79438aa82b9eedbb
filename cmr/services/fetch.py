"""The ``in`` operation: download one chart version into a directory."""

from __future__ import annotations

import json
from pathlib import Path

from cmr.core.request import InRequest
from cmr.core.result import Err, Ok, Result
from cmr.core.structured import get_str
from cmr.output.console import ConsoleProtocol
from cmr.platform.files import atomic_write_bytes
from cmr.platform.http import ClientFactory, HttpClient
from cmr.services.dialect import ResourceOutput, dialect_for, download_base
from cmr.services.errors import DownloadFailed, ResourceError
from cmr.services.publish.verify import fetch_chart

NOT_FOUND = 404


def _download(client: HttpClient, url: str) -> Result[bytes | None, DownloadFailed]:
    """Fetch ``url``; None when the server has no such file."""
    result = client.get(url)
    if isinstance(result, Err):
        return Err(DownloadFailed(url=url, status=0, message=result.error.message))
    resp = result.value
    if resp.status == NOT_FOUND:
        return Ok(None)
    if not resp.ok:
        return Err(DownloadFailed(url=url, status=resp.status, message=f"HTTP {resp.status}"))
    return Ok(resp.content)


class FetchService:
    def __init__(self, *, console: ConsoleProtocol, open_client: ClientFactory) -> None:
        self._console = console
        self._open_client = open_client

    def run(self, request: InRequest, destination: Path) -> Result[ResourceOutput, ResourceError]:
        source = request.source
        dialect = dialect_for(source)

        with self._open_client(source.repository) as client:
            body = fetch_chart(
                client=client,
                source=source,
                version=request.version.version,
                console=self._console,
            )
            if isinstance(body, Err):
                return body

            info = dialect.chart_info(body.value)
            ref = dialect.version(body.value)
            name = get_str(info, "name") or source.chart_name
            basename = request.params.target_basename or f"{name}-{ref.version}"

            archive_url = f"{download_base(source.server_url)}/{source.chart_name}-{ref.version}.tgz"
            self._console.print(f'Downloading "{archive_url}"...')
            archive = _download(client, archive_url)
            if isinstance(archive, Err):
                return archive
            if archive.value is None:
                return Err(DownloadFailed(url=archive_url, status=NOT_FOUND, message="not found"))

            provenance = _download(client, f"{archive_url}.prov")
            if isinstance(provenance, Err):
                return provenance

        destination.mkdir(parents=True, exist_ok=True)
        atomic_write_bytes(destination / f"{basename}.tgz", archive.value)
        if provenance.value is not None:
            atomic_write_bytes(destination / f"{basename}.tgz.prov", provenance.value)
        else:
            self._console.warning(f"no provenance file for {name} {ref.version}; chart is unsigned")
        atomic_write_bytes(
            destination / f"{basename}.json",
            json.dumps(body.value).encode("utf-8"),
        )

        self._console.success(f"Fetched {name} {ref.version} into {destination}")
        return Ok(ResourceOutput(version=ref, metadata=dialect.metadata(body.value)))
