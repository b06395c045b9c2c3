"""Platform layer: processes, files and HTTP."""

from .files import FileSnapshot, atomic_write_text
from .http import HttpClient, HttpError, MockHttpClient, RealHttpClient
from .process import ProcessError, run, which

__all__ = [
    # files
    "FileSnapshot",
    "atomic_write_text",
    # http
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    # process
    "ProcessError",
    "run",
    "which",
]
