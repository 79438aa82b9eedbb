"""Platform abstraction layer: processes, files and HTTP."""

from .files import atomic_write_bytes, scoped_tempdir, write_private
from .http import (
    ClientFactory,
    HttpClient,
    HttpError,
    HttpResponse,
    MockHttpClient,
    MultipartUpload,
    StreamUpload,
    UploadBody,
    open_client,
)
from .process import (
    MockProcessRunner,
    ProcessError,
    ProcessOutput,
    ProcessRunner,
    SubprocessRunner,
)

__all__ = [
    # files
    "atomic_write_bytes",
    "scoped_tempdir",
    "write_private",
    # http
    "ClientFactory",
    "HttpClient",
    "HttpError",
    "HttpResponse",
    "MockHttpClient",
    "MultipartUpload",
    "StreamUpload",
    "UploadBody",
    "open_client",
    # process
    "MockProcessRunner",
    "ProcessError",
    "ProcessOutput",
    "ProcessRunner",
    "SubprocessRunner",
]
