"""
Exception hierarchy for TimeCapsule.

Domain rejections (empty contents, capsule not due yet, wrong caller...) are
returned as values, see `timecapsule.schema.OpResult`. Exceptions are kept
for infrastructure faults and for callers that explicitly ask for one via
`OpResult.unwrap()`.

All TimeCapsule exceptions inherit from TimeCapsuleError, allowing callers
to catch them with a single except clause.

Exception Categories:
    - CapsuleRejectedError: An operation was rejected (raised by unwrap)
    - ConfigError: Invalid configuration file or values
    - StorageError: Database operation failed
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Rejections: 1xxx (one per ErrorKind)
ERROR_INVALID_INPUT = 1001
ERROR_INVALID_SCHEDULE = 1002
ERROR_MALFORMED_ID = 1003
ERROR_NOT_FOUND = 1004
ERROR_ALREADY_OPENED = 1005
ERROR_NOT_YET_UNLOCKABLE = 1006
ERROR_FORBIDDEN = 1007

# Config errors: 2xxx
ERROR_CONFIG_INVALID = 2001

# Storage errors: 5xxx
ERROR_STORAGE_CONNECTION = 5001
ERROR_STORAGE_WRITE = 5002
ERROR_STORAGE_READ = 5003
ERROR_STORAGE_ID_COLLISION = 5004

REJECTION_CODES: dict[str, int] = {
    "InvalidInput": ERROR_INVALID_INPUT,
    "InvalidSchedule": ERROR_INVALID_SCHEDULE,
    "MalformedId": ERROR_MALFORMED_ID,
    "NotFound": ERROR_NOT_FOUND,
    "AlreadyOpened": ERROR_ALREADY_OPENED,
    "NotYetUnlockable": ERROR_NOT_YET_UNLOCKABLE,
    "Forbidden": ERROR_FORBIDDEN,
}


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class TimeCapsuleError(Exception):
    """
    Base exception for all TimeCapsule errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Rejections
# =============================================================================


@dataclass
class CapsuleRejectedError(TimeCapsuleError):
    """
    Raised by OpResult.unwrap() when an operation was rejected.

    Attributes:
        kind: The ErrorKind value (e.g. "NotFound")
        capsule_id: The capsule involved, if any
    """

    kind: str = ""
    capsule_id: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Operation rejected: {self.kind}"
        if self.code == 0:
            self.code = REJECTION_CODES.get(self.kind, 1000)
        self.context.update({
            "kind": self.kind,
            "capsule_id": self.capsule_id,
        })


# =============================================================================
# Config Errors
# =============================================================================


@dataclass
class ConfigError(TimeCapsuleError):
    """Raised when a configuration file cannot be loaded or validated."""

    path: str | None = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration: {self.path}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        if not self.suggestion:
            self.suggestion = "Check the config file against the documented keys"
        self.context["path"] = self.path


# =============================================================================
# Storage Errors
# =============================================================================


@dataclass
class StorageError(TimeCapsuleError):
    """
    Base class for storage/database errors.

    Attributes:
        operation: The operation that failed (e.g., "insert", "get")
    """

    operation: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["operation"] = self.operation


@dataclass
class StorageConnectionError(StorageError):
    """Raised when database connection fails."""

    db_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to connect to database: {self.db_path}"
        if self.code == 0:
            self.code = ERROR_STORAGE_CONNECTION
        if not self.suggestion:
            self.suggestion = "Check that the database path is valid and writable"
        super().__post_init__()
        self.context["db_path"] = self.db_path


@dataclass
class StorageWriteError(StorageError):
    """Raised when a write operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database write failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_WRITE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class StorageReadError(StorageError):
    """Raised when a read operation fails."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Database read failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_STORAGE_READ
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


@dataclass
class IdCollisionError(StorageError):
    """Raised when no unused capsule id could be generated."""

    attempts: int = 0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Could not generate an unused capsule id after {self.attempts} attempts"
        if self.code == 0:
            self.code = ERROR_STORAGE_ID_COLLISION
        if not self.suggestion:
            self.suggestion = "Check the random source; collisions should be practically impossible"
        super().__post_init__()
        self.context["attempts"] = self.attempts
