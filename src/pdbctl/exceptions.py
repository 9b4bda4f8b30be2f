"""Errors raised by PDB lifecycle operations."""


class LifecycleError(Exception):
    """Base class for every lifecycle failure.

    Carries the operation that failed and the PDB it targeted so that a
    message reaching an operator is diagnosable on its own.
    """

    def __init__(self, message, operation=None, pdb_name=None, cause=None):
        self.message = message
        self.operation = operation
        self.pdb_name = pdb_name
        self.cause = cause
        super().__init__(str(self))

    def __str__(self):
        prefix = " ".join(p for p in (self.operation, self.pdb_name) if p)
        text = f"{prefix}: {self.message}" if prefix else self.message
        if self.cause is not None:
            text = f"{text} ({self.cause})"
        return text


class PreconditionError(LifecycleError):
    """Wrong container, or a seed directory that does not sit under the root."""


class NotFoundError(LifecycleError):
    """A catalog lookup returned no rows."""


class AmbiguousResultError(LifecycleError):
    """A catalog lookup expected to be single-valued returned several values."""

    def __init__(self, message, candidates=(), **kwargs):
        self.candidates = tuple(candidates)
        super().__init__(message, **kwargs)


class AlreadyExistsError(LifecycleError):
    """A PDB with the requested name is already listed in DBA_PDBS."""


class ResourceBusyError(LifecycleError):
    """User sessions did not clear within the retry budget."""

    def __init__(self, message, remaining=0, attempts=0, **kwargs):
        self.remaining = remaining
        self.attempts = attempts
        super().__init__(message, **kwargs)


class StatementFailedError(LifecycleError):
    """The database rejected a statement."""


class InconsistentStateError(LifecycleError):
    """A post-condition check disagrees with what a statement reported."""


class InvalidIdentifierError(LifecycleError, ValueError):
    """A name or credential failed validation before reaching SQL text."""
