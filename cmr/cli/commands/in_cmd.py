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
from cmr.core.request import parse_in_request
from cmr.services.fetch import FetchService


def in_(
    destination: Path | None = typer.Argument(None, help="Directory to fetch the chart into"),
) -> None:
    """Download a chart version (stdin: source, version, params)."""
    ctx = build_context()
    if destination is None:
        ctx.console.error("Expected exactly one argument (destination)")
        exit_with_code(int(ErrorCode.ARGS))
    target = destination.resolve()

    def _run() -> None:
        request = load_request(ctx, parse_in_request)
        service = FetchService(console=ctx.console, open_client=ctx.open_client)
        output = exit_on_error(service.run(request, target), ctx)
        write_json(output.to_json())

    run_guarded(ctx, _run)
