"""Release coordination: version/bundle reads and bundle mutations."""

from .coordinator import ReleaseCoordinator
from .errors import ReleaseError, ReleaseErrorKind, from_api_error
from .history import ReleaseView, build_view, mark_active, recent_first, split_active

__all__ = [
    "ReleaseCoordinator",
    "ReleaseError",
    "ReleaseErrorKind",
    "ReleaseView",
    "build_view",
    "from_api_error",
    "mark_active",
    "recent_first",
    "split_active",
]
