"""ACS client error definitions for netstorage."""


class NetStorageError(Exception):
    """A NetStorage error with code, message, HTTP status and path.

    Attributes:
        code: Short error code string (e.g. "NotFound", "AlreadyExists").
        message: Human-readable error description.
        http_status: The upstream HTTP status, or 0 when no response was involved.
        path: The path the failing operation was addressed to, if known.
    """

    def __init__(
        self,
        code: str,
        message: str,
        http_status: int = 0,
        path: str = "",
    ) -> None:
        """Initialize the error.

        Args:
            code: Error code.
            message: Error description.
            http_status: Upstream HTTP status code (default 0).
            path: Path the operation targeted.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.http_status = http_status
        self.path = path


class ConfigurationError(NetStorageError):
    """Signing or client construction attempted with incomplete configuration."""

    def __init__(self, message: str = "Client is not configured") -> None:
        super().__init__(code="ConfigurationError", message=message)


class NotFoundError(NetStorageError):
    """The path does not exist upstream."""

    def __init__(self, path: str = "") -> None:
        super().__init__(
            code="NotFound",
            message=f"File not found at path: {path}",
            http_status=404,
            path=path,
        )


class AlreadyExistsError(NetStorageError):
    """The target of a create, write or rename already exists."""

    def __init__(self, path: str = "", http_status: int = 409) -> None:
        super().__init__(
            code="AlreadyExists",
            message=f"File already exists at path: {path}",
            http_status=http_status,
            path=path,
        )


class NotADirectoryError(NetStorageError):
    """A listing targeted a non-directory, or the directory vanished mid-listing.

    This is not the builtin ``NotADirectoryError`` (an ``OSError`` subclass);
    catching the builtin does not catch it. Import it from ``netstorage.errors``.
    """

    def __init__(self, path: str = "") -> None:
        super().__init__(
            code="NotADirectory",
            message=f"Not a directory: {path}",
            http_status=412,
            path=path,
        )


class RootViolationError(NetStorageError):
    """A delete or rmdir addressed the storage root itself."""

    def __init__(self, operation: str = "delete") -> None:
        super().__init__(
            code="RootViolation",
            message=f"Refusing to {operation} the storage root",
            http_status=400,
            path="/",
        )


class UpstreamError(NetStorageError):
    """Any other transport or protocol failure."""

    def __init__(self, message: str = "Upstream error", http_status: int = 0, path: str = "") -> None:
        super().__init__(
            code="UpstreamError",
            message=message,
            http_status=http_status,
            path=path,
        )


def error_for_status(status: int, path: str = "", message: str = "") -> NetStorageError:
    """Map an upstream HTTP status to the matching error.

    Args:
        status: The HTTP status code of the failed response.
        path: The path the request targeted.
        message: Optional detail for generic failures.

    Returns:
        The error instance (not raised).
    """
    if status == 404:
        return NotFoundError(path)
    if status == 409:
        return AlreadyExistsError(path)
    if status == 412:
        return NotADirectoryError(path)
    return UpstreamError(
        message or f"Upstream request failed with status {status}",
        http_status=status,
        path=path,
    )
