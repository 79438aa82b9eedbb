from __future__ import annotations

from pathlib import Path

import typer

from cmr.cli.commands._helpers import (
    exit_on_error,
    exit_with_code,
    load_request,
    run_guarded,
    write_json,
)
from cmr.cli.context import build_context
from cmr.core.errors import ErrorCode
from cmr.core.request import parse_out_request
from cmr.services.publish import PublishService


def out(
    root: Path | None = typer.Argument(None, help="Build root the params paths are relative to"),
) -> None:
    """Package, sign and publish a chart (stdin: source and params)."""
    ctx = build_context()
    if root is None:
        ctx.console.error("Expected exactly one argument (root)")
        exit_with_code(int(ErrorCode.OUT_ARGS))
    build_root = root.resolve()

    def _run() -> None:
        request = load_request(ctx, parse_out_request)
        service = PublishService(
            root=build_root,
            console=ctx.console,
            runner=ctx.runner,
            open_client=ctx.open_client,
            settings=ctx.settings,
        )
        output = exit_on_error(service.run(request), ctx)
        write_json(output.to_json())

    run_guarded(ctx, _run)
