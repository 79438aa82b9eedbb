"""Error codes for resource exit status.

The numeric values are part of the resource's external contract: pipelines
that wrap ``out`` may branch on them, so they must remain stable.

- 0: Success
- 1: Unexpected error (anything outside the modeled failure classes)
- 2: Wrong command line for ``in``/``check``
- 1xx: Request, version and packaging stages of ``out``
- 2xx: Post-upload verification
- 3xx: Signing
- 5xx/6xx/7xx: Request framing, upload response and metadata round trip

An upload rejected by the server exits with the HTTP status itself (for
example 409 when the version already exists). POSIX truncates exit statuses
to 8 bits, so codes above 255 reach the shell modulo 256.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for resource commands."""

    OK = 0
    UNEXPECTED = 1
    ARGS = 2
    OUT_ARGS = 102
    VERSION_RANGE = 104
    CHART_NOT_FOUND = 110
    INSPECT_FAILED = 120
    PACKAGE_FAILED = 121
    UPLOAD_TRANSPORT = 124
    REPO_ADD_FAILED = 193
    VERSION_MISMATCH = 203
    SIGNING_KEY_MISSING = 332
    SIGNING_FAILED = 333
    BAD_REQUEST = 502
    UPLOAD_ERROR = 602
    UPLOAD_NOT_SAVED = 603
    METADATA_FETCH = 710
    DOWNLOAD_FAILED = 711

    def __str__(self) -> str:
        """Return human-readable name."""
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
