"""Error types raised by cluster-refs.

Every error is returned to the immediate caller. A lookup that finds nothing
(no owner of the requested kind, no labelled siblings) is not an error and is
reported as ``None`` or an empty list instead.
"""

from __future__ import annotations


class ClusterRefsError(Exception):
    """Base exception for cluster-refs."""

    pass


class ParseError(ClusterRefsError, ValueError):
    """Raised when a version string or apiVersion cannot be parsed."""

    pass


class ImageReferenceError(ClusterRefsError, ValueError):
    """Raised when an image reference violates the distribution grammar.

    ``reason`` carries the underlying grammar violation so callers can tell a
    too-long name from a missing tag without matching on the full message.
    """

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason or message


class StoreError(ClusterRefsError):
    """Raised when the object store cannot serve a request."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class NotFoundError(StoreError):
    """Raised when the requested object does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status=404)


class OwnerLookupError(StoreError):
    """Raised when an owner named by an ownership reference cannot be fetched."""

    pass


class MissingClusterLabelError(ClusterRefsError):
    """Raised when an object carries no cluster-name label."""

    pass


class SchemeError(ClusterRefsError):
    """Raised when a kind is not registered in the supplied scheme."""

    pass
