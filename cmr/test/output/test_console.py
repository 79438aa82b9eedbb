"""Tests for cmr.output.console module."""

from __future__ import annotations

import pytest

from cmr.output.console import MockConsole, RichConsole, Style


class TestMockConsole:
    def test_records_styles(self) -> None:
        console = MockConsole()
        console.print("plain")
        console.success("uploaded")
        console.error("failed")
        console.warning("careful")
        console.info("note")
        console.header("Section")

        assert console.messages == [
            "plain",
            "OK uploaded",
            "error: failed",
            "warning: careful",
            "info: note",
            "Section",
        ]
        assert console.outputs[2].style == Style.ERROR
        assert console.has_error()

    def test_find(self) -> None:
        console = MockConsole()
        console.print("Uploading chart file")
        console.print("Fetching chart data")

        assert [o.message for o in console.find("chart data")] == ["Fetching chart data"]


class TestRichConsole:
    def test_writes_to_stderr_only(self, capsys: pytest.CaptureFixture[str]) -> None:
        console = RichConsole(no_color=True)
        console.print("progress")
        console.error("bad [thing]")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert "progress" in captured.err
        # Square brackets from tool output are not treated as markup.
        assert "bad [thing]" in captured.err

    def test_tool_output_is_not_rewritten(
        self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("FORCE_COLOR", raising=False)
        line = (
            "Error: chart requires kubeVersion: >=1.22.0-0 which is incompatible with "
            "Kubernetes v1.20.0 :x: see https://example.com/docs/compatibility-matrix"
        )
        assert len(line) > 80

        console = RichConsole(no_color=True)
        console.print(line, Style.DIM)
        console.error(line)

        err = capsys.readouterr().err
        assert err.startswith(f"{line}\n")
        assert err.endswith(f"{line}\n")
        assert len(err.splitlines()) == 2
