from __future__ import annotations

from contextlib import ExitStack
from pathlib import Path

from cmr.core.request import OutParams, OutRequest
from cmr.core.result import Err, Ok, Result
from cmr.core.settings import Settings
from cmr.output.console import ConsoleProtocol
from cmr.platform.files import scoped_tempdir
from cmr.platform.http import ClientFactory
from cmr.platform.process import ProcessRunner
from cmr.services.dialect import BuiltArtifact, ResourceOutput, dialect_for
from cmr.services.errors import ChartNotFound, ResourceError, VersionMismatch
from cmr.services.publish.packager import package_chart
from cmr.services.publish.repos import register_repos
from cmr.services.publish.signing import import_signing_key, require_key_material, stage_key_file
from cmr.services.publish.upload import upload_chart
from cmr.services.publish.verify import verify_published
from cmr.services.publish.version import (
    check_version_range,
    inspect_version,
    resolve_requested_version,
)

PACKAGE_DIR_PREFIX = "cmr-package-"


class PublishService:
    """The ``out`` pipeline: package, sign, upload and verify one chart version."""

    def __init__(
        self,
        *,
        root: Path,
        console: ConsoleProtocol,
        runner: ProcessRunner,
        open_client: ClientFactory,
        settings: Settings,
    ) -> None:
        self._root = root
        self._console = console
        self._runner = runner
        self._open_client = open_client
        self._settings = settings

    def run(self, request: OutRequest) -> Result[ResourceOutput, ResourceError]:
        # The packaging directory outlives packaging: upload reads from it.
        with ExitStack() as stack:
            return self._run(request, stack)

    def _run(self, request: OutRequest, stack: ExitStack) -> Result[ResourceOutput, ResourceError]:
        source = request.source
        params = request.params

        ok = require_key_material(params)
        if isinstance(ok, Err):
            return ok

        requested = resolve_requested_version(params=params, root=self._root, console=self._console)
        if requested is not None:
            ok = check_version_range(requested, source.version_range)
            if isinstance(ok, Err):
                return ok

        ok = register_repos(
            runner=self._runner,
            settings=self._settings,
            console=self._console,
            repos=params.dependency_repos,
            cwd=self._root,
        )
        if isinstance(ok, Err):
            return ok

        artifact = self._build(params, requested, stack)
        if isinstance(artifact, Err):
            return artifact

        version = inspect_version(
            runner=self._runner,
            settings=self._settings,
            console=self._console,
            archive=artifact.value.path,
            cwd=self._root,
        )
        if isinstance(version, Err):
            return version
        effective = version.value
        if requested is not None and effective != requested:
            return Err(VersionMismatch(expected=requested, actual=effective, stage="package"))
        if requested is None:
            ok = check_version_range(effective, source.version_range, source="inspected")
            if isinstance(ok, Err):
                return ok

        dialect = dialect_for(source)
        with self._open_client(source.repository) as client:
            uploaded = upload_chart(
                client=client,
                dialect=dialect,
                source=source,
                artifact=artifact.value,
                force=params.force,
                console=self._console,
            )
            if isinstance(uploaded, Err):
                return uploaded

            self._console.success("Helm chart has been uploaded")
            self._console.print(f"- Name: {source.chart_name}")
            self._console.print(f"- Version: {effective}")

            return verify_published(
                client=client,
                dialect=dialect,
                source=source,
                version=effective,
                console=self._console,
            )

    def _build(
        self, params: OutParams, version: str | None, stack: ExitStack
    ) -> Result[BuiltArtifact, ResourceError]:
        location = (self._root / params.chart).resolve()
        self._console.print(f'Processing chart at "{location}"...')

        if location.is_file():
            return Ok(BuiltArtifact(path=location, size=location.stat().st_size))
        if not location.is_dir():
            return Err(ChartNotFound(path=location))

        out_dir = stack.enter_context(scoped_tempdir(PACKAGE_DIR_PREFIX))
        if not params.sign:
            return package_chart(
                runner=self._runner,
                settings=self._settings,
                console=self._console,
                chart_dir=location,
                destination=out_dir,
                version=version,
                dependency_update=params.dependency_update,
            )

        key_file = stage_key_file(params=params, root=self._root, work_dir=out_dir)
        with import_signing_key(
            runner=self._runner,
            settings=self._settings,
            console=self._console,
            key_file=key_file,
            passphrase=params.key_passphrase,
        ) as key:
            if isinstance(key, Err):
                return key
            return package_chart(
                runner=self._runner,
                settings=self._settings,
                console=self._console,
                chart_dir=location,
                destination=out_dir,
                version=version,
                dependency_update=params.dependency_update,
                signing=key.value,
                passphrase=params.key_passphrase,
            )
