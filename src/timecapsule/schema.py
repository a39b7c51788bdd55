"""
Schema definitions for TimeCapsule.

This module defines the models used throughout TimeCapsule:
- Capsule: The persisted record
- CapsulePayload: What a caller submits to create a capsule
- ErrorKind/OpResult: Tagged results returned by store operations
- StoreConfig: Settings loaded from YAML

Design Decisions:
    - Capsule is frozen; opening is a storage update, never an in-place
      change to a loaded record
    - CapsulePayload only checks shape; emptiness and scheduling are store
      rules so they surface as ErrorKind values
    - Timestamps are integer nanoseconds since the Unix epoch
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Generic, TypeVar

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from timecapsule.errors import CapsuleRejectedError, ConfigError
from timecapsule.ids import DEFAULT_ID_BYTES, MAX_ID_BYTES, MIN_ID_BYTES

T = TypeVar("T")

# Largest timestamp an unsigned 64-bit field can hold
MAX_TIMESTAMP = 2**64 - 1


# =============================================================================
# Enums
# =============================================================================


class ErrorKind(str, Enum):
    """Why a store operation was rejected."""

    INVALID_INPUT = "InvalidInput"
    INVALID_SCHEDULE = "InvalidSchedule"
    MALFORMED_ID = "MalformedId"
    NOT_FOUND = "NotFound"
    ALREADY_OPENED = "AlreadyOpened"
    NOT_YET_UNLOCKABLE = "NotYetUnlockable"
    FORBIDDEN = "Forbidden"


# =============================================================================
# Capsule Models
# =============================================================================


class CapsulePayload(BaseModel):
    """
    A request to create a capsule.

    Attributes:
        contents: Ordered strings to seal in the capsule
        open_date: Unlock time in nanoseconds since the epoch
    """

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    contents: list[str] = Field(
        default_factory=list,
        description="Ordered strings to seal in the capsule",
    )
    open_date: int = Field(
        ...,
        description="Unlock time in nanoseconds since the epoch",
        ge=0,
        le=MAX_TIMESTAMP,
    )


class Capsule(BaseModel):
    """
    A persisted time capsule.

    Attributes:
        id: Lowercase hex identifier, also the store key
        creator: Identity of the caller that created the capsule
        contents: Sealed strings, never empty
        open_date: Unlock time in nanoseconds since the epoch
        is_opened: Whether the creator has opened it (one-way flag)
        created_date: Creation time in nanoseconds since the epoch
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Capsule identifier", min_length=1)
    creator: str = Field(..., description="Identity of the creator")
    contents: list[str] = Field(..., description="Sealed strings", min_length=1)
    open_date: int = Field(..., description="Unlock time (ns since epoch)", ge=0, le=MAX_TIMESTAMP)
    is_opened: bool = Field(default=False, description="Whether it was opened")
    created_date: int = Field(..., description="Creation time (ns since epoch)", ge=0, le=MAX_TIMESTAMP)

    @model_validator(mode="after")
    def validate_schedule(self) -> "Capsule":
        """A capsule must unlock strictly after it was created."""
        if self.open_date <= self.created_date:
            msg = "open_date must be greater than created_date"
            raise ValueError(msg)
        return self

    def is_due(self, now: int) -> bool:
        """Whether the capsule may be opened at time `now`."""
        return now >= self.open_date


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class OpResult(Generic[T]):
    """
    Tagged outcome of a store operation.

    Either `value` is set (success) or `error` is set (rejection), never
    both. Rejections carry a human-readable `message` alongside the kind.

    Attributes:
        value: Payload on success
        error: ErrorKind on rejection
        message: Description of the rejection
        capsule_id: The capsule involved, if any
    """

    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""
    capsule_id: str | None = None

    @classmethod
    def ok(cls, value: T, capsule_id: str | None = None) -> "OpResult[T]":
        """Create a successful result."""
        return cls(value=value, capsule_id=capsule_id)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        capsule_id: str | None = None,
    ) -> "OpResult[T]":
        """Create a rejected result."""
        return cls(error=kind, message=message, capsule_id=capsule_id)

    @property
    def is_ok(self) -> bool:
        """Whether the operation succeeded."""
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise CapsuleRejectedError."""
        if self.error is not None:
            raise CapsuleRejectedError(
                message=self.message,
                kind=self.error.value,
                capsule_id=self.capsule_id,
            )
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        """Render as {"Ok": value} or {"Err": message}."""
        if self.error is None:
            return {"Ok": self.value}
        return {"Err": self.message}


# =============================================================================
# Configuration
# =============================================================================


class StoreConfig(BaseModel):
    """
    Settings for a capsule store.

    Attributes:
        db_path: SQLite database file (":memory:" for a throwaway store)
        id_bytes: Random bytes per capsule id (hex length is twice this)
        contents_separator: Joins contents when a capsule is opened
        max_id_attempts: How many fresh ids to try if one is already taken
        log_level: Logging level name for the CLI
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    db_path: str = Field(
        default="timecapsule.db",
        description="SQLite database file",
        min_length=1,
    )
    id_bytes: int = Field(
        default=DEFAULT_ID_BYTES,
        description="Random bytes per capsule id (at least 128 bits)",
        ge=MIN_ID_BYTES,
        le=MAX_ID_BYTES,
    )
    contents_separator: str = Field(
        default=", ",
        description="Separator used to join contents on open",
    )
    max_id_attempts: int = Field(
        default=8,
        description="Fresh ids to try before giving up",
        gt=0,
    )
    log_level: str = Field(
        default="WARNING",
        description="Logging level name",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept standard logging level names, case-insensitively."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            msg = f"Unknown log level: {v}"
            raise ValueError(msg)
        return level


def load_config(path: Path | str) -> StoreConfig:
    """
    Load a store config from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated StoreConfig object

    Raises:
        ConfigError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    try:
        with path.open() as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(
            message=f"Cannot read config file {path}: {e}",
            path=str(path),
        ) from e
    return _parse_config(content, str(path))


def load_config_from_string(content: str) -> StoreConfig:
    """Load a store config from a YAML string."""
    return _parse_config(content, None)


def _parse_config(content: str, path: str | None) -> StoreConfig:
    try:
        data = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigError(message=f"Config is not valid YAML: {e}", path=path) from e
    if not isinstance(data, dict):
        raise ConfigError(message="Config must be a mapping", path=path)
    try:
        return StoreConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(message=f"Invalid config: {e}", path=path) from e
