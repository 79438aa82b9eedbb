from __future__ import annotations

from cmr.core.request import SourceConfig
from cmr.core.result import Err, Ok, Result
from cmr.output.console import ConsoleProtocol
from cmr.platform.http import HttpClient
from cmr.services.dialect import Dialect, ResourceOutput
from cmr.services.errors import MetadataFetchFailed, VersionMismatch


def chart_url(source: SourceConfig, version: str) -> str:
    return f"{source.server_url}/{source.chart_name}/{version}"


def fetch_chart(
    *,
    client: HttpClient,
    source: SourceConfig,
    version: str,
    console: ConsoleProtocol,
) -> Result[dict[str, object], MetadataFetchFailed]:
    """GET the metadata of one chart version."""
    url = chart_url(source, version)
    console.print(f'Fetching chart data from "{url}"...')
    result = client.get(url)
    if isinstance(result, Err):
        return Err(MetadataFetchFailed(url=url, status=0, body=result.error.message))
    resp = result.value
    if not resp.ok:
        return Err(MetadataFetchFailed(url=url, status=resp.status, body=resp.text))
    body = resp.json_object()
    if isinstance(body, Err):
        return Err(MetadataFetchFailed(url=url, status=resp.status, body=resp.text))
    return Ok(body.value)


def verify_published(
    *,
    client: HttpClient,
    dialect: Dialect,
    source: SourceConfig,
    version: str,
    console: ConsoleProtocol,
) -> Result[ResourceOutput, MetadataFetchFailed | VersionMismatch]:
    """Read the uploaded chart back and confirm the server kept ``version``."""
    body = fetch_chart(client=client, source=source, version=version, console=console)
    if isinstance(body, Err):
        return body

    ref = dialect.version(body.value)
    if ref.version != version:
        return Err(VersionMismatch(expected=version, actual=ref.version, stage="publish"))
    return Ok(ResourceOutput(version=ref, metadata=dialect.metadata(body.value)))
