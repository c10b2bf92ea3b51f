"""
Error taxonomy for panfs.

Every error raised by the library derives from PanError and also from the
closest built-in exception, so callers that only know about OSError and
friends (FileNotFoundError, PermissionError, ...) keep working.
"""


class PanError(Exception):
    """Base class for all panfs errors.

    Attributes:
        path: Normalized path the failing call was working on, if any.
        node_id: Remote node identifier involved, if any.
    """

    def __init__(self, message: str, *, path: str | None = None, node_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.path = path
        self.node_id = node_id


class TransportError(PanError, ConnectionError):
    """Network failure or an unexpected HTTP status from the service."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        node_id: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, path=path, node_id=node_id)
        self.status_code = status_code


class DecodeError(PanError, ValueError):
    """Response body could not be decoded into the expected shape."""


class NotFoundError(PanError, FileNotFoundError):
    """No node matches the requested name and kind under its parent."""


class PreconditionError(PanError, PermissionError):
    """Operation is not allowed on the target (e.g. the root folder)."""


class ConflictError(PanError, FileExistsError):
    """The service refused a create because the name is already taken."""


class CancelledError(PanError, TimeoutError):
    """The caller's deadline expired before or during a request."""


def with_context(exc: PanError, message: str, *, path: str | None = None) -> PanError:
    """Return a copy of ``exc`` with ``message`` prefixed and ``path`` attached.

    The copy keeps the concrete error class so callers can still catch
    NotFoundError, TransportError, etc. Chain it with ``raise ... from exc``.
    """
    kwargs = {"path": path if path is not None else exc.path, "node_id": exc.node_id}
    if isinstance(exc, TransportError):
        kwargs["status_code"] = exc.status_code
    return type(exc)(f"{message}: {exc.message}", **kwargs)
