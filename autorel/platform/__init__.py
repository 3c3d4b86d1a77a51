"""Platform abstraction layer."""

from .detection import Platform, detect_platform
from .files import atomic_write_text, read_text
from .http import HttpClient, HttpError, MockHttpClient, RealHttpClient
from .process import ProcessError, run

__all__ = [
    # detection
    "Platform",
    "detect_platform",
    # files
    "atomic_write_text",
    "read_text",
    # http
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    # process
    "ProcessError",
    "run",
]
