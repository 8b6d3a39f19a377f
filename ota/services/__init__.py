"""Account services outside release coordination."""

from .auth_keys import AuthKeyService, mask_key
from .errors import ServiceError, ServiceErrorKind
from .setup import SetupService

__all__ = [
    "AuthKeyService",
    "ServiceError",
    "ServiceErrorKind",
    "SetupService",
    "mask_key",
]
