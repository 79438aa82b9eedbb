from __future__ import annotations

from dataclasses import dataclass

from cmr.core.settings import Settings, load_settings
from cmr.output.console import ConsoleProtocol, RichConsole
from cmr.platform.http import ClientFactory, open_client
from cmr.platform.process import ProcessRunner, SubprocessRunner


@dataclass(frozen=True, slots=True)
class CLIContext:
    """Everything a command touches outside its request."""

    console: ConsoleProtocol
    runner: ProcessRunner
    open_client: ClientFactory
    settings: Settings


def build_context() -> CLIContext:
    return CLIContext(
        console=RichConsole(),
        runner=SubprocessRunner(),
        open_client=open_client,
        settings=load_settings(),
    )
