from __future__ import annotations

import io
import json
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from cmr import __version__
from cmr.cli.context import CLIContext
from cmr.core.errors import ErrorCode
from cmr.core.settings import Settings
from cmr.output.console import MockConsole
from cmr.platform.http import MockHttpClient
from cmr.platform.process import MockProcessRunner

SERVER = "https://charts.example.com/api/charts"
SOURCE = {"server_url": f"{SERVER}/", "chart_name": "demo"}
CHART = {"name": "demo", "version": "1.0.0", "digest": "sha256:abc", "created": "today"}


def _ctx(client: MockHttpClient, runner: MockProcessRunner | None = None) -> CLIContext:
    return CLIContext(
        console=MockConsole(),
        runner=runner or MockProcessRunner(),
        open_client=client.factory(),
        settings=Settings(),
    )


def _stdin(monkeypatch: pytest.MonkeyPatch, payload: object) -> None:
    raw = payload if isinstance(payload, str) else json.dumps(payload)
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(raw.encode("utf-8"))))


class TestCheckCommand:
    def test_prints_versions(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        import cmr.cli.commands.check as check_cmd

        client = MockHttpClient()
        client.set_json("GET", f"{SERVER}/demo", [CHART])
        monkeypatch.setattr(check_cmd, "build_context", lambda: _ctx(client))
        _stdin(monkeypatch, {"source": SOURCE})

        check_cmd.check()

        assert json.loads(capsys.readouterr().out) == [{"version": "1.0.0", "digest": "sha256:abc"}]
        # The trailing slash of server_url is dropped.
        assert client.urls() == [f"{SERVER}/demo"]

    def test_bad_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        import cmr.cli.commands.check as check_cmd

        ctx = _ctx(MockHttpClient())
        monkeypatch.setattr(check_cmd, "build_context", lambda: ctx)
        _stdin(monkeypatch, "{not json")

        with pytest.raises(typer.Exit) as exc:
            check_cmd.check()

        assert exc.value.exit_code == int(ErrorCode.BAD_REQUEST)
        assert isinstance(ctx.console, MockConsole)
        assert ctx.console.has_error()

    def test_unexpected_exception(self, monkeypatch: pytest.MonkeyPatch) -> None:
        import cmr.cli.commands.check as check_cmd

        ctx = _ctx(MockHttpClient())
        monkeypatch.setattr(check_cmd, "build_context", lambda: ctx)
        _stdin(monkeypatch, {"source": SOURCE})

        class Boom:
            def __init__(self, **_: object) -> None:
                pass

            def run(self, _request: object) -> object:
                raise RuntimeError("boom")

        monkeypatch.setattr(check_cmd, "DiscoverService", Boom)

        with pytest.raises(typer.Exit) as exc:
            check_cmd.check()

        assert exc.value.exit_code == int(ErrorCode.UNEXPECTED)


class TestInCommand:
    def test_fetches_into_destination(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        import cmr.cli.commands.in_cmd as in_cmd

        client = MockHttpClient()
        client.set_json("GET", f"{SERVER}/demo/1.0.0", CHART)
        client.set_response("GET", "https://charts.example.com/charts/demo-1.0.0.tgz", 200, b"tgz")
        monkeypatch.setattr(in_cmd, "build_context", lambda: _ctx(client))
        _stdin(monkeypatch, {"source": SOURCE, "version": {"version": "1.0.0"}})

        in_cmd.in_(destination=tmp_path)

        output = json.loads(capsys.readouterr().out)
        assert output["version"] == {"version": "1.0.0", "digest": "sha256:abc"}
        assert (tmp_path / "demo-1.0.0.tgz").read_bytes() == b"tgz"

    def test_missing_destination(self, monkeypatch: pytest.MonkeyPatch) -> None:
        import cmr.cli.commands.in_cmd as in_cmd

        monkeypatch.setattr(in_cmd, "build_context", lambda: _ctx(MockHttpClient()))

        with pytest.raises(typer.Exit) as exc:
            in_cmd.in_(destination=None)

        assert exc.value.exit_code == int(ErrorCode.ARGS)

    def test_missing_version(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import cmr.cli.commands.in_cmd as in_cmd

        monkeypatch.setattr(in_cmd, "build_context", lambda: _ctx(MockHttpClient()))
        _stdin(monkeypatch, {"source": SOURCE})

        with pytest.raises(typer.Exit) as exc:
            in_cmd.in_(destination=tmp_path)

        assert exc.value.exit_code == int(ErrorCode.BAD_REQUEST)


class TestOutCommand:
    def test_missing_root(self, monkeypatch: pytest.MonkeyPatch) -> None:
        import cmr.cli.commands.out as out_cmd

        monkeypatch.setattr(out_cmd, "build_context", lambda: _ctx(MockHttpClient()))

        with pytest.raises(typer.Exit) as exc:
            out_cmd.out(root=None)

        assert exc.value.exit_code == int(ErrorCode.OUT_ARGS)

    def test_out_of_range_version(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        import cmr.cli.commands.out as out_cmd

        runner = MockProcessRunner()
        monkeypatch.setattr(out_cmd, "build_context", lambda: _ctx(MockHttpClient(), runner))
        _stdin(
            monkeypatch,
            {
                "source": dict(SOURCE, version_range="^1.0.0"),
                "params": {"chart": "demo", "version": "2.0.0"},
            },
        )

        with pytest.raises(typer.Exit) as exc:
            out_cmd.out(root=tmp_path)

        assert exc.value.exit_code == int(ErrorCode.VERSION_RANGE)
        assert runner.calls == []

    def test_publishes_prebuilt_archive(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        import cmr.cli.commands.out as out_cmd

        (tmp_path / "demo-1.0.0.tgz").write_bytes(b"tgz")
        runner = MockProcessRunner()
        runner.reply(("helm", "show", "chart"), stdout="version: 1.0.0\n")
        client = MockHttpClient()
        client.set_json("POST", SERVER, {"saved": True}, status=201)
        client.set_json("GET", f"{SERVER}/demo/1.0.0", CHART)
        monkeypatch.setattr(out_cmd, "build_context", lambda: _ctx(client, runner))
        _stdin(monkeypatch, {"source": SOURCE, "params": {"chart": "demo-1.0.0.tgz"}})

        out_cmd.out(root=tmp_path)

        output = json.loads(capsys.readouterr().out)
        assert output["version"]["version"] == "1.0.0"
        assert {"name": "tillerVersion", "value": ""} in output["metadata"]


def test_version_flag() -> None:
    from cmr.cli.app import app

    result = CliRunner().invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout
