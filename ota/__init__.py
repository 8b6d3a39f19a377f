"""Administrative client for an over-the-air release server."""

__version__ = "0.3.0"
