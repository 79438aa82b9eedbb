"""GPG key import for chart provenance signing.

The private key is imported into a throwaway GNUPGHOME. The secret key is
then exported as a legacy ``secring.gpg`` inside that home, which is the
keyring format ``helm package --sign`` reads. The home directory is removed
when the ``import_signing_key`` block exits, whatever the outcome.
"""

from __future__ import annotations

from typing import TypeAlias

import re
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from cmr.core.request import OutParams
from cmr.core.result import Err, Ok, Result
from cmr.core.settings import Settings
from cmr.output.console import ConsoleProtocol, Style
from cmr.platform.files import scoped_tempdir, write_private
from cmr.platform.process import ProcessRunner
from cmr.services.errors import KeyIdNotFound, KeyImportFailed, SigningKeyMissing

KEYRING_PREFIX = "concourse-gpg-keyring-"
SECRING_NAME = "secring.gpg"

_KEY_IMPORTED_RE = re.compile(r"^gpg: key ([0-9A-Fa-f]+): secret key imported$")

SigningError: TypeAlias = KeyImportFailed | KeyIdNotFound


@dataclass(frozen=True, slots=True)
class SigningKey:
    key_id: str
    keyring: Path


def parse_key_id(text: str) -> str | None:
    """Return the key ID from the first "secret key imported" line of gpg output."""
    for line in text.splitlines():
        m = _KEY_IMPORTED_RE.match(line.strip())
        if m is not None:
            return m.group(1)
    return None


def require_key_material(params: OutParams) -> Result[None, SigningKeyMissing]:
    if params.sign and params.key_data is None and params.key_file is None:
        return Err(SigningKeyMissing())
    return Ok(None)


def stage_key_file(*, params: OutParams, root: Path, work_dir: Path) -> Path:
    """Inline key data is written to ``work_dir``; a key_file is resolved from ``root``."""
    if params.key_data is not None:
        return write_private(work_dir / "gpg-key.asc", params.key_data)
    assert params.key_file is not None
    return (root / params.key_file).resolve()


def _import(
    *,
    runner: ProcessRunner,
    settings: Settings,
    home: Path,
    key_file: Path,
    passphrase: str | None,
) -> Result[SigningKey, SigningError]:
    result = runner.run(
        [settings.gpg, "--batch", "--homedir", str(home), "--import", str(key_file)],
        cwd=home,
        input=passphrase,
    )
    if isinstance(result, Err):
        return Err(
            KeyImportFailed(
                key_file=key_file,
                returncode=result.error.returncode,
                stderr=result.error.stderr,
            )
        )

    # gpg reports imports on stderr.
    output = f"{result.value.stderr}\n{result.value.stdout}"
    key_id = parse_key_id(output)
    if key_id is None:
        return Err(KeyIdNotFound(key_file=key_file, output=output))

    keyring = home / SECRING_NAME
    export_cmd = [settings.gpg, "--batch", "--yes", "--homedir", str(home)]
    if passphrase is not None:
        export_cmd += ["--pinentry-mode", "loopback", "--passphrase-fd", "0"]
    export_cmd += ["--output", str(keyring), "--export-secret-keys", key_id]
    exported = runner.run(export_cmd, cwd=home, input=passphrase)
    if isinstance(exported, Err):
        return Err(
            KeyImportFailed(
                key_file=key_file,
                returncode=exported.error.returncode,
                stderr=exported.error.stderr,
            )
        )
    return Ok(SigningKey(key_id=key_id, keyring=keyring))


@contextmanager
def import_signing_key(
    *,
    runner: ProcessRunner,
    settings: Settings,
    console: ConsoleProtocol,
    key_file: Path,
    passphrase: str | None,
) -> Iterator[Result[SigningKey, SigningError]]:
    """Import ``key_file`` into an ephemeral keyring for the duration of the block."""
    with scoped_tempdir(KEYRING_PREFIX) as home:
        console.print(f'Using new empty temporary GNUPGHOME: "{home}"', Style.DIM)
        console.print(f'Importing GPG private key: "{key_file}"...')
        try:
            key = _import(
                runner=runner,
                settings=settings,
                home=home,
                key_file=key_file,
                passphrase=passphrase,
            )
            if isinstance(key, Ok):
                console.success(f'GPG key imported. Key ID: "{key.value.key_id}"')
            yield key
        finally:
            console.print(f'Removing temporary GNUPGHOME "{home}"', Style.DIM)
