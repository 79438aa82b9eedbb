"""End-to-end runs of the ``out`` pipeline against scripted helm, gpg and HTTP."""

from __future__ import annotations

from pathlib import Path

import pytest

from cmr.core.request import OutParams, OutRequest, RepositoryConfig, SourceConfig, VersionRef
from cmr.core.result import Err, Ok
from cmr.core.settings import Settings
from cmr.output.console import MockConsole
from cmr.platform.http import MockHttpClient, MultipartUpload, StreamUpload
from cmr.platform.process import MockProcessRunner
from cmr.services.errors import (
    ChartNotFound,
    KeyIdNotFound,
    RepoAddFailed,
    SigningKeyMissing,
    UploadNotSaved,
    VersionMismatch,
    VersionRangeViolation,
)
from cmr.services.publish import PublishService
from cmr.services.publish.signing import KEYRING_PREFIX

SERVER = "https://charts.example.com/api/charts"
CHART_URL = f"{SERVER}/demo/1.0.0"

PLAIN_CHART = {
    "name": "demo",
    "version": "1.0.0",
    "digest": "sha256:abc",
    "created": "2024-01-01T00:00:00Z",
    "description": "Demo chart",
    "appVersion": "2.3",
    "home": "https://example.com",
}

IMPORTED = "gpg: key 0A1B2C3D4E5F6789: secret key imported\n"


class Harness:
    """A workspace with a chart directory and scripted collaborators."""

    def __init__(self, root: Path, *, chart_version: str = "1.0.0") -> None:
        self.root = root
        self.chart_version = chart_version
        self.console = MockConsole()
        self.runner = MockProcessRunner()
        self.client = MockHttpClient()
        self.gpg_homes: list[Path] = []
        self.package_dirs: list[Path] = []

        chart_dir = root / "demo"
        chart_dir.mkdir()
        (chart_dir / "Chart.yaml").write_text(f"apiVersion: v2\nname: demo\nversion: {chart_version}\n")

        self.runner.reply(("helm", "show", "chart"), stdout=f"name: demo\nversion: {chart_version}\n")
        self.runner.on_call = self._on_call

    def _on_call(self, cmd: tuple[str, ...]) -> None:
        if cmd[0] == "gpg" and "--homedir" in cmd:
            self.gpg_homes.append(Path(cmd[cmd.index("--homedir") + 1]))
        if cmd[:2] == ("helm", "package"):
            destination = Path(cmd[cmd.index("--destination") + 1])
            self.package_dirs.append(destination)
            version = cmd[cmd.index("--version") + 1] if "--version" in cmd else self.chart_version
            (destination / f"demo-{version}.tgz").write_bytes(b"chart-archive")
            # The keyring must still exist while helm signs.
            if "--keyring" in cmd:
                assert Path(cmd[cmd.index("--keyring") + 1]).parent.is_dir()

    def accept_upload(self, body: dict[str, object] | None = None) -> None:
        self.client.set_json("POST", SERVER, body if body is not None else {"saved": True}, status=201)

    def run(self, params: OutParams, *, harbor: bool = False, version_range: str | None = None):
        source = SourceConfig(RepositoryConfig(SERVER), "demo", version_range, harbor)
        service = PublishService(
            root=self.root,
            console=self.console,
            runner=self.runner,
            open_client=self.client.factory(),
            settings=Settings(),
        )
        return service.run(OutRequest(source, params))


@pytest.fixture
def harness(tmp_path: Path) -> Harness:
    return Harness(tmp_path)


class TestPublishPlain:
    def test_package_upload_verify(self, harness: Harness) -> None:
        harness.accept_upload()
        harness.client.set_json("GET", CHART_URL, PLAIN_CHART)

        result = harness.run(OutParams(chart="demo", version="1.0.0"))

        assert isinstance(result, Ok)
        output = result.value.to_json()
        assert output["version"] == {"version": "1.0.0", "digest": "sha256:abc"}
        names = [entry["name"] for entry in output["metadata"]]  # type: ignore[index]
        assert names == ["created", "description", "appVersion", "home", "tillerVersion"]

        post = harness.client.calls[0]
        assert post.method == "POST"
        assert isinstance(post.body, StreamUpload)
        assert post.body.path.name == "demo-1.0.0.tgz"
        assert harness.client.urls("GET") == [CHART_URL]
        assert harness.console.find("Helm chart has been uploaded")

    def test_packaging_dir_removed_after_run(self, harness: Harness) -> None:
        harness.accept_upload()
        harness.client.set_json("GET", CHART_URL, PLAIN_CHART)

        harness.run(OutParams(chart="demo"))

        assert harness.package_dirs
        assert not harness.package_dirs[0].exists()

    def test_prebuilt_archive_is_uploaded_as_is(self, harness: Harness) -> None:
        archive = harness.root / "demo-1.0.0.tgz"
        archive.write_bytes(b"prebuilt")
        harness.accept_upload()
        harness.client.set_json("GET", CHART_URL, PLAIN_CHART)

        result = harness.run(OutParams(chart="demo-1.0.0.tgz"))

        assert isinstance(result, Ok)
        assert harness.runner.commands() == [("helm", "show", "chart", str(archive.resolve()))]

    def test_force_upload(self, harness: Harness) -> None:
        harness.client.set_json("POST", f"{SERVER}?force=true", {"saved": True}, status=201)
        harness.client.set_json("GET", CHART_URL, PLAIN_CHART)

        result = harness.run(OutParams(chart="demo", force=True))

        assert isinstance(result, Ok)

    def test_version_file(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, chart_version="1.0.0")
        (tmp_path / "version").write_text("1.0.0\n")
        harness.accept_upload()
        harness.client.set_json("GET", CHART_URL, PLAIN_CHART)

        result = harness.run(OutParams(chart="demo", version="0.0.1", version_file="version"))

        assert isinstance(result, Ok)
        package = harness.runner.commands("helm")[0]
        assert package[package.index("--version") + 1] == "1.0.0"


class TestPublishHarbor:
    def test_multipart_upload_and_nested_metadata(self, harness: Harness) -> None:
        harness.accept_upload()
        harness.client.set_json(
            "GET",
            CHART_URL,
            {"metadata": {k: v for k, v in PLAIN_CHART.items() if k != "home"}, "security": {}},
        )

        result = harness.run(OutParams(chart="demo", version="1.0.0"), harbor=True)

        assert isinstance(result, Ok)
        names = [entry.name for entry in result.value.metadata]
        assert names == ["created", "description", "appVersion"]
        assert isinstance(harness.client.calls[0].body, MultipartUpload)


class TestPublishFailures:
    def test_out_of_range_version_touches_nothing(self, harness: Harness) -> None:
        result = harness.run(OutParams(chart="demo", version="2.0.0"), version_range="^1.0.0")

        assert result == Err(VersionRangeViolation("2.0.0", "^1.0.0"))
        assert harness.runner.calls == []
        assert harness.client.calls == []
        assert harness.client.opened_with == []

    def test_inspected_version_out_of_range(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, chart_version="3.0.0")

        result = harness.run(OutParams(chart="demo"), version_range="^1.0.0")

        assert isinstance(result, Err)
        assert result.error == VersionRangeViolation("3.0.0", "^1.0.0", source="inspected")
        assert harness.client.calls == []

    def test_inspected_version_differs(self, tmp_path: Path) -> None:
        harness = Harness(tmp_path, chart_version="1.0.0")
        harness.runner.reply(("helm", "show", "chart"), stdout="version: 1.0.0-dirty\n")

        result = harness.run(OutParams(chart="demo", version="1.0.0"))

        assert result == Err(VersionMismatch("1.0.0", "1.0.0-dirty", "package"))
        assert harness.client.calls == []

    def test_sign_without_key_fails_before_any_tool(self, harness: Harness) -> None:
        result = harness.run(OutParams(chart="demo", sign=True))

        assert result == Err(SigningKeyMissing())
        assert harness.runner.calls == []

    def test_sign_with_unrecognised_import_output(self, harness: Harness) -> None:
        harness.runner.reply(("gpg",), stderr="gpg: Total number processed: 0\n")

        result = harness.run(OutParams(chart="demo", sign=True, key_data="KEY"))

        assert isinstance(result, Err)
        assert isinstance(result.error, KeyIdNotFound)
        assert harness.runner.commands("helm") == []
        assert harness.gpg_homes
        assert harness.gpg_homes[0].name.startswith(KEYRING_PREFIX)
        assert not harness.gpg_homes[0].exists()
        assert harness.client.calls == []

    def test_signed_package(self, harness: Harness) -> None:
        harness.runner.reply(("gpg", "--batch", "--homedir"), stderr=IMPORTED)
        harness.accept_upload()
        harness.client.set_json("GET", CHART_URL, PLAIN_CHART)

        result = harness.run(
            OutParams(chart="demo", sign=True, key_data="KEY", key_passphrase="pw")
        )

        assert isinstance(result, Ok)
        package = harness.runner.commands("helm")[0]
        assert package[package.index("--key") + 1] == "0A1B2C3D4E5F6789"
        assert not harness.gpg_homes[0].exists()

    def test_upload_not_saved(self, harness: Harness) -> None:
        harness.accept_upload({"saved": False})

        result = harness.run(OutParams(chart="demo"))

        assert result == Err(UploadNotSaved(False))
        assert harness.client.urls("GET") == []

    def test_dependency_repo_failure(self, harness: Harness) -> None:
        harness.runner.reply(("helm", "repo", "add"), returncode=1, stderr="unreachable")
        params = OutParams(
            chart="demo", dependency_repos={"deps": RepositoryConfig("https://deps")}
        )

        result = harness.run(params)

        assert result == Err(RepoAddFailed("deps", "https://deps", "unreachable"))
        assert harness.runner.commands("helm") == [("helm", "repo", "add", "deps", "https://deps")]

    def test_missing_chart(self, harness: Harness) -> None:
        result = harness.run(OutParams(chart="nope"))

        assert result == Err(ChartNotFound((harness.root / "nope").resolve()))

    def test_published_version_differs(self, harness: Harness) -> None:
        harness.accept_upload()
        harness.client.set_json("GET", CHART_URL, dict(PLAIN_CHART, version="1.0.1"))

        result = harness.run(OutParams(chart="demo"))

        assert result == Err(VersionMismatch("1.0.0", "1.0.1", "publish"))


def test_digest_reported_from_server(harness: Harness) -> None:
    harness.accept_upload()
    harness.client.set_json("GET", CHART_URL, dict(PLAIN_CHART, digest="sha256:server"))

    result = harness.run(OutParams(chart="demo"))

    assert isinstance(result, Ok)
    assert result.value.version == VersionRef("1.0.0", "sha256:server")
