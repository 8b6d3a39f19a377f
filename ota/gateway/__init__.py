"""Remote gateway: transport, canonical envelope, endpoint adapters."""

from .client import CredentialSource, Gateway
from .endpoints import ReleaseApi
from .envelope import ApiError, ApiErrorKind, normalize
from .http import HttpClient, HttpError, HttpRequest, HttpResponse, MockHttpClient, RealHttpClient

__all__ = [
    "ApiError",
    "ApiErrorKind",
    "CredentialSource",
    "Gateway",
    "HttpClient",
    "HttpError",
    "HttpRequest",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
    "ReleaseApi",
    "normalize",
]
