"""The ``check`` operation: list chart versions newer than the last seen one."""

from __future__ import annotations

from cmr.core.request import CheckRequest, VersionRef
from cmr.core.result import Err, Ok, Result
from cmr.core.structured import as_str_dict
from cmr.output.console import ConsoleProtocol
from cmr.platform.http import ClientFactory
from cmr.services.dialect import dialect_for
from cmr.services.errors import MetadataFetchFailed, ResourceError, VersionRangeViolation
from cmr.services.semver import Version, parse_range, parse_version

NOT_FOUND = 404


def select_versions(
    available: list[tuple[Version, VersionRef]],
    since: VersionRef | None,
) -> list[VersionRef]:
    """Concourse check semantics over versions sorted ascending.

    Without a previous version only the latest is reported; otherwise every
    version at or after it. A previous version that no longer parses (or
    that everything predates) falls back to the latest.
    """
    if not available:
        return []
    latest = [available[-1][1]]
    if since is None:
        return latest
    floor = parse_version(since.version)
    if floor is None:
        return latest
    newer = [ref for v, ref in available if v >= floor]
    return newer or latest


class DiscoverService:
    def __init__(self, *, console: ConsoleProtocol, open_client: ClientFactory) -> None:
        self._console = console
        self._open_client = open_client

    def run(self, request: CheckRequest) -> Result[list[VersionRef], ResourceError]:
        source = request.source
        dialect = dialect_for(source)

        rng = None
        if source.version_range is not None:
            rng = parse_range(source.version_range)
            if rng is None:
                return Err(
                    VersionRangeViolation(
                        version="", version_range=source.version_range, reason="invalid_range"
                    )
                )

        url = f"{source.server_url}/{source.chart_name}"
        with self._open_client(source.repository) as client:
            result = client.get(url)
        if isinstance(result, Err):
            return Err(MetadataFetchFailed(url=url, status=0, body=result.error.message))
        resp = result.value
        if resp.status == NOT_FOUND:
            self._console.warning(f"chart {source.chart_name} has no published versions")
            return Ok([])
        if not resp.ok:
            return Err(MetadataFetchFailed(url=url, status=resp.status, body=resp.text))
        entries = resp.json_list()
        if isinstance(entries, Err):
            return Err(MetadataFetchFailed(url=url, status=resp.status, body=resp.text))

        available: list[tuple[Version, VersionRef]] = []
        for entry in entries.value:
            table = as_str_dict(entry)
            if table is None:
                continue
            ref = dialect.version(table)
            parsed = parse_version(ref.version)
            if parsed is None:
                self._console.warning(f"skipping unparseable chart version '{ref.version}'")
                continue
            if rng is not None and not rng.test(parsed):
                continue
            available.append((parsed, ref))

        available.sort(key=lambda item: item[0])
        return Ok(select_versions(available, request.version))
