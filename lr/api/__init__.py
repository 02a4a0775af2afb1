"""Release-tracking API client and HTTP transport."""

from .client import FatalIncompatibility, MissingUploadUrlError, ReleaseClient, SignedUploadTarget
from .http import HttpError, HttpResponse, HttpTransport, MockHttpTransport, RealHttpTransport

__all__ = [
    "FatalIncompatibility",
    "HttpError",
    "HttpResponse",
    "HttpTransport",
    "MissingUploadUrlError",
    "MockHttpTransport",
    "RealHttpTransport",
    "ReleaseClient",
    "SignedUploadTarget",
]
