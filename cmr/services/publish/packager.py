from __future__ import annotations

from typing import TypeAlias

from dataclasses import dataclass
from pathlib import Path

import yaml

from cmr.core.result import Err, Ok, Result
from cmr.core.settings import Settings
from cmr.core.structured import as_str_dict, get_str
from cmr.output.console import ConsoleProtocol, Style
from cmr.platform.process import ProcessRunner
from cmr.services.dialect import BuiltArtifact
from cmr.services.errors import ArchiveMissing, ChartMetadataInvalid, PackageFailed
from cmr.services.publish.signing import SigningKey

CHART_FILE = "Chart.yaml"

PackageError: TypeAlias = ChartMetadataInvalid | PackageFailed | ArchiveMissing


@dataclass(frozen=True, slots=True)
class ChartInfo:
    """The fields of Chart.yaml the packager needs."""

    name: str
    version: str | None


def read_chart_info(chart_dir: Path) -> Result[ChartInfo, ChartMetadataInvalid]:
    path = chart_dir / CHART_FILE
    try:
        data_obj: object = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return Err(ChartMetadataInvalid(path, "file not found"))
    except (OSError, UnicodeDecodeError) as e:
        return Err(ChartMetadataInvalid(path, str(e)))
    except yaml.YAMLError as e:
        return Err(ChartMetadataInvalid(path, f"invalid YAML: {e}"))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ChartMetadataInvalid(path, "expected a mapping"))
    name = get_str(data, "name")
    if name is None:
        return Err(ChartMetadataInvalid(path, "missing name"))
    # YAML may load "1.0" as a float.
    raw_version = data.get("version")
    version = str(raw_version).strip() if raw_version is not None else None
    return Ok(ChartInfo(name=name, version=version or None))


def build_package_command(
    *,
    helm: str,
    chart_dir: Path,
    destination: Path,
    version: str | None,
    dependency_update: bool,
    signing: SigningKey | None,
) -> list[str]:
    cmd = [helm, "package", "--destination", str(destination)]
    if dependency_update:
        cmd.append("--dependency-update")
    if signing is not None:
        cmd += ["--sign", "--key", signing.key_id, "--keyring", str(signing.keyring)]
    if version is not None:
        cmd += ["--version", version]
    cmd.append(str(chart_dir))
    return cmd


def package_chart(
    *,
    runner: ProcessRunner,
    settings: Settings,
    console: ConsoleProtocol,
    chart_dir: Path,
    destination: Path,
    version: str | None,
    dependency_update: bool = False,
    signing: SigningKey | None = None,
    passphrase: str | None = None,
) -> Result[BuiltArtifact, PackageError]:
    """Run ``helm package`` on ``chart_dir`` and locate the produced archive.

    Without an explicit ``version`` helm uses the one declared in Chart.yaml,
    which is also what the archive name is predicted from.
    """
    info = read_chart_info(chart_dir)
    if isinstance(info, Err):
        return info
    archive_version = version or info.value.version
    if archive_version is None:
        return Err(ChartMetadataInvalid(chart_dir / CHART_FILE, "missing version"))

    cmd = build_package_command(
        helm=settings.helm,
        chart_dir=chart_dir,
        destination=destination,
        version=version,
        dependency_update=dependency_update,
        signing=signing,
    )
    env = {"HELM_KEY_PASSPHRASE": passphrase} if signing is not None and passphrase else None

    console.print('Performing "helm package"...')
    result = runner.run(cmd, cwd=chart_dir.parent, env=env)
    if isinstance(result, Err):
        return Err(PackageFailed(returncode=result.error.returncode, stderr=result.error.stderr))
    if result.value.stdout.strip():
        console.print(result.value.stdout.strip(), Style.DIM)

    archive = destination / f"{info.value.name}-{archive_version}.tgz"
    try:
        size = archive.stat().st_size
    except OSError:
        return Err(ArchiveMissing(path=archive))
    return Ok(BuiltArtifact(path=archive, size=size))
