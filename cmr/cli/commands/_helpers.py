"""Shared helpers for resource commands: stdin/stdout framing and exits."""

from __future__ import annotations

import json
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, NoReturn, TypeVar

import typer

from cmr.core.errors import ErrorCode
from cmr.core.request import RequestError
from cmr.core.result import Err, Ok, Result
from cmr.output.errors import error_exit_code, print_error
from cmr.services.errors import BadRequest, ResourceError

if TYPE_CHECKING:
    from cmr.cli.context import CLIContext

T = TypeVar("T")
V = TypeVar("V")


def read_stdin() -> Result[str, RequestError]:
    """Read the whole request from stdin as UTF-8."""
    try:
        return Ok(sys.stdin.buffer.read().decode("utf-8"))
    except UnicodeDecodeError as e:
        return Err(RequestError(f"stdin is not valid UTF-8: {e}"))


def load_request(ctx: CLIContext, parse: Callable[[str], Result[T, RequestError]]) -> T:
    """Read and parse the request, exiting with BAD_REQUEST on failure."""
    text = read_stdin()
    request = parse(text.value) if isinstance(text, Ok) else text
    if isinstance(request, Err):
        exit_on_error(Err(BadRequest(message=request.error.message)), ctx)
    return request.value


def exit_on_error(result: Result[V, ResourceError], ctx: CLIContext) -> V:
    """Return the value of ``result`` or report its error and exit with its code."""
    if isinstance(result, Err):
        print_error(result.error, ctx.console)
        exit_with_code(error_exit_code(result.error))
    return result.value


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)


def write_json(data: object) -> None:
    """Write the single result document to stdout."""
    typer.echo(json.dumps(data))


def run_guarded(ctx: CLIContext, action: Callable[[], V]) -> V:
    """Run ``action``, turning anything unexpected into the top-level exit code."""
    try:
        return action()
    except typer.Exit:
        raise
    except Exception as e:
        ctx.console.error(f"An unexpected error occurred: {e!r}")
        exit_with_code(int(ErrorCode.UNEXPECTED))
