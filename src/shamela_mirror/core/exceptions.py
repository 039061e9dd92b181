"""
Custom exceptions for the mirror engine.

Every failure that can end a sync attempt is one of the classes below.
None of them are retried internally; they are surfaced to the caller.

Exception Hierarchy:
    MirrorError (base)
    ├── NetworkError (remote patch API or archive download failures)
    ├── ExtractionError (archive or table extract unreadable)
    ├── MalformedOutlineError (title graph contains a cycle)
    └── PersistenceError (snapshot or cursor read/write failures)

Example:
    >>> from shamela_mirror.core.exceptions import NetworkError
    >>> try:
    ...     raise NetworkError("Patch API returned 503", status_code=503)
    ... except NetworkError as e:
    ...     print(e, e.context)
    Patch API returned 503 {'status_code': 503}
"""


class MirrorError(Exception):
    """
    Base exception for all mirror errors.

    Attributes:
        message: Human-readable error message
        context: Optional dictionary of additional context
    """

    def __init__(self, message: str, **context: object) -> None:
        """
        Initialize a mirror error with message and context.

        Args:
            message: Human-readable error message
            **context: Additional context as keyword arguments
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class NetworkError(MirrorError):
    """
    Exception for remote patch API failures.

    Raised when the API is unreachable, answers with a non-success status
    other than the documented "no update" code, returns a payload that does
    not match the patch contract, or an archive download fails.

    Example:
        >>> import httpx
        >>> try:
        ...     raise httpx.ConnectError("Connection refused")
        ... except httpx.ConnectError as e:
        ...     raise NetworkError(
        ...         "Failed to reach patch API",
        ...         url="https://example.invalid/patches/master",
        ...     ) from e
    """


class ExtractionError(MirrorError):
    """
    Exception for unreadable patch archives.

    Raised when the archive container cannot be opened, or (in strict mode)
    when one or more of its table extracts could not be read.
    """


class MalformedOutlineError(MirrorError):
    """Exception raised when a book's title graph contains a cycle."""


class PersistenceError(MirrorError):
    """
    Exception for snapshot and version cursor storage failures.

    Example:
        >>> try:
        ...     path.write_text(data)
        ... except OSError as e:
        ...     raise PersistenceError(
        ...         "Failed to write snapshot",
        ...         path=str(path),
        ...     ) from e
    """


__all__ = [
    "MirrorError",
    "NetworkError",
    "ExtractionError",
    "MalformedOutlineError",
    "PersistenceError",
]
