"""Core domain types and logic."""

from .errors import ErrorCode
from .request import (
    CheckRequest,
    InRequest,
    OutRequest,
    RepositoryConfig,
    RequestError,
    SourceConfig,
    VersionRef,
)
from .result import Err, Ok, Result, is_err, is_ok
from .settings import Settings, load_settings

__all__ = [
    # errors
    "ErrorCode",
    # request
    "CheckRequest",
    "InRequest",
    "OutRequest",
    "RepositoryConfig",
    "RequestError",
    "SourceConfig",
    "VersionRef",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # settings
    "Settings",
    "load_settings",
]
