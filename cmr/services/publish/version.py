"""Version resolution for ``out``.

The version to publish comes from, in order: the contents of
``params.version_file``, ``params.version``, or (for chart directories
without either) the version the packaged archive reports on inspection.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from cmr.core.request import OutParams
from cmr.core.result import Err, Ok, Result
from cmr.core.settings import Settings
from cmr.output.console import ConsoleProtocol, Style
from cmr.platform.process import ProcessRunner
from cmr.services.errors import InspectFailed, VersionRangeViolation, VersionUnparseable
from cmr.services.semver import parse_range, parse_version

_VERSION_FIELD = "version:"


def resolve_requested_version(
    *,
    params: OutParams,
    root: Path,
    console: ConsoleProtocol,
) -> str | None:
    """Return the explicitly requested version, if any."""
    if params.version_file is not None:
        path = root / params.version_file
        if path.is_file():
            try:
                content = path.read_text(encoding="utf-8").strip()
            except (OSError, UnicodeDecodeError) as e:
                console.warning(f"cannot read version_file {path}: {e}")
            else:
                if content:
                    return content
                console.warning(f"version_file {path} is empty")
        else:
            console.warning(f"version_file {path} is not a file")
    return params.version


def check_version_range(
    version: str,
    version_range: str | None,
    *,
    source: Literal["requested", "inspected"] = "requested",
) -> Result[None, VersionRangeViolation]:
    if version_range is None:
        return Ok(None)
    rng = parse_range(version_range)
    if rng is None:
        return Err(VersionRangeViolation(version, version_range, "invalid_range", source))
    parsed = parse_version(version)
    if parsed is None:
        return Err(VersionRangeViolation(version, version_range, "invalid_version", source))
    if not rng.test(parsed):
        return Err(VersionRangeViolation(version, version_range, "outside", source))
    return Ok(None)


def parse_chart_version(text: str) -> str | None:
    """Extract the value of the ``version:`` line from chart inspection output."""
    for line in text.splitlines():
        if line.startswith(_VERSION_FIELD):
            value = line[len(_VERSION_FIELD) :].strip()
            return value or None
    return None


def inspect_version(
    *,
    runner: ProcessRunner,
    settings: Settings,
    console: ConsoleProtocol,
    archive: Path,
    cwd: Path,
) -> Result[str, InspectFailed | VersionUnparseable]:
    """Ask helm for the version embedded in ``archive``."""
    console.print(f'Inspecting chart file: "{archive}"...')
    result = runner.run([settings.helm, "show", "chart", str(archive)], cwd=cwd)
    if isinstance(result, Err):
        return Err(InspectFailed(path=archive, stderr=result.error.stderr))

    if result.value.stderr.strip():
        console.print(result.value.stderr.strip(), Style.DIM)

    version = parse_chart_version(result.value.stdout)
    if version is None:
        return Err(VersionUnparseable(path=archive, output=result.value.stdout))
    return Ok(version)
