"""Lifecycle management for Oracle pluggable databases."""
from .cdb import CDB, verify_seed_directory_matches
from .config import LifecycleSettings
from .exceptions import (
    AlreadyExistsError,
    AmbiguousResultError,
    InconsistentStateError,
    InvalidIdentifierError,
    LifecycleError,
    NotFoundError,
    PreconditionError,
    ResourceBusyError,
    StatementFailedError,
)
from .naming import generate_pdb_name
from .pdb import PDB, SavedState, UserSession

__all__ = [
    "CDB",
    "PDB",
    "LifecycleSettings",
    "SavedState",
    "UserSession",
    "generate_pdb_name",
    "verify_seed_directory_matches",
    "LifecycleError",
    "PreconditionError",
    "NotFoundError",
    "AmbiguousResultError",
    "AlreadyExistsError",
    "ResourceBusyError",
    "StatementFailedError",
    "InconsistentStateError",
    "InvalidIdentifierError",
]
