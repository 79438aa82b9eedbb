from __future__ import annotations

from cmr.cli.commands._helpers import exit_on_error, load_request, run_guarded, write_json
from cmr.cli.context import build_context
from cmr.core.request import parse_check_request
from cmr.services.discover import DiscoverService


def check() -> None:
    """Report chart versions (stdin: source and last version)."""
    ctx = build_context()

    def _run() -> None:
        request = load_request(ctx, parse_check_request)
        service = DiscoverService(console=ctx.console, open_client=ctx.open_client)
        versions = exit_on_error(service.run(request), ctx)
        write_json([ref.to_json() for ref in versions])

    run_guarded(ctx, _run)
