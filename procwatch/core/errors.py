"""Domain error taxonomy.

Services raise these close to the call site; the API layer maps them to
HTTP responses through ``status_code``.
"""


class ProcWatchError(Exception):
    """Base class for expected domain failures."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(ProcWatchError):
    """Missing or malformed input."""

    status_code = 400


class NotFoundError(ProcWatchError):
    """Process, monitor, execution or alert does not exist."""

    status_code = 404


class ConflictError(ProcWatchError):
    """Resource already exists (e.g. a second monitor for one process)."""

    status_code = 400


class InvalidStateError(ProcWatchError):
    """Operation not allowed in the resource's current state."""

    status_code = 400


class ConcurrentModificationError(ProcWatchError):
    """Optimistic update kept losing to concurrent writers."""

    status_code = 409
