"""
Unit tests for error hierarchy.

Tests cover:
- Base TimeCapsuleError behavior
- Rejection errors and their codes
- Config and storage errors
- Error serialization
"""

import pytest

from timecapsule.errors import (
    ERROR_ALREADY_OPENED,
    ERROR_CONFIG_INVALID,
    ERROR_FORBIDDEN,
    ERROR_STORAGE_CONNECTION,
    ERROR_STORAGE_ID_COLLISION,
    ERROR_STORAGE_WRITE,
    REJECTION_CODES,
    CapsuleRejectedError,
    ConfigError,
    IdCollisionError,
    StorageConnectionError,
    StorageError,
    StorageReadError,
    StorageWriteError,
    TimeCapsuleError,
)
from timecapsule.schema import ErrorKind


class TestTimeCapsuleError:
    """Tests for base TimeCapsuleError."""

    def test_basic_error(self) -> None:
        """Create a basic error with message."""
        err = TimeCapsuleError(message="Something went wrong", code=9999)
        assert err.message == "Something went wrong"
        assert err.code == 9999
        assert err.suggestion is None
        assert err.context == {}

    def test_str_format(self) -> None:
        """String format includes code and message."""
        err = TimeCapsuleError(message="Test error", code=1234)
        assert str(err) == "[E1234] Test error"

    def test_str_with_suggestion(self) -> None:
        """Suggestion is appended on its own line."""
        err = TimeCapsuleError(message="Failed", code=1, suggestion="Try again")
        assert "Suggestion: Try again" in str(err)

    def test_repr_format(self) -> None:
        """Repr includes class name and details."""
        err = TimeCapsuleError(message="Test", code=1)
        assert "TimeCapsuleError" in repr(err)
        assert "message='Test'" in repr(err)

    def test_to_dict(self) -> None:
        """Convert error to dictionary."""
        err = TimeCapsuleError(
            message="Test",
            code=1,
            suggestion="Try again",
            context={"foo": "bar"},
        )
        d = err.to_dict()
        assert d["error_type"] == "TimeCapsuleError"
        assert d["message"] == "Test"
        assert d["code"] == 1
        assert d["suggestion"] == "Try again"
        assert d["context"]["foo"] == "bar"

    def test_is_exception(self) -> None:
        """TimeCapsuleError is a proper exception."""
        with pytest.raises(TimeCapsuleError):
            raise TimeCapsuleError(message="Test", code=1)


class TestCapsuleRejectedError:
    """Tests for rejection errors."""

    def test_code_follows_kind(self) -> None:
        """Each kind maps to its own code."""
        err = CapsuleRejectedError(kind="Forbidden", capsule_id="ab" * 32)
        assert err.code == ERROR_FORBIDDEN
        assert err.context["kind"] == "Forbidden"
        assert err.context["capsule_id"] == "ab" * 32

    def test_default_message(self) -> None:
        """Message defaults to the kind."""
        err = CapsuleRejectedError(kind="AlreadyOpened")
        assert err.code == ERROR_ALREADY_OPENED
        assert "AlreadyOpened" in str(err)

    def test_every_error_kind_has_a_code(self) -> None:
        """No ErrorKind falls through to the generic code."""
        assert set(REJECTION_CODES) == {kind.value for kind in ErrorKind}
        assert len(set(REJECTION_CODES.values())) == len(ErrorKind)


class TestConfigError:
    """Tests for config errors."""

    def test_defaults(self) -> None:
        """Config errors carry the path and a suggestion."""
        err = ConfigError(path="/tmp/x.yaml")
        assert err.code == ERROR_CONFIG_INVALID
        assert "/tmp/x.yaml" in err.message
        assert err.suggestion
        assert err.context["path"] == "/tmp/x.yaml"


class TestStorageErrors:
    """Tests for storage errors."""

    def test_connection_error(self) -> None:
        """Connection error with db path."""
        err = StorageConnectionError(db_path="/nope/capsules.db", operation="connect")
        assert err.code == ERROR_STORAGE_CONNECTION
        assert err.context["db_path"] == "/nope/capsules.db"
        assert err.context["operation"] == "connect"
        assert isinstance(err, StorageError)

    def test_write_error(self) -> None:
        """Write error includes the underlying message."""
        err = StorageWriteError(operation="insert", underlying_error="UNIQUE constraint failed")
        assert err.code == ERROR_STORAGE_WRITE
        assert "UNIQUE constraint failed" in err.message

    def test_read_error(self) -> None:
        """Read error is a storage error."""
        err = StorageReadError(operation="get", underlying_error="disk I/O error")
        assert isinstance(err, StorageError)
        assert err.context["underlying_error"] == "disk I/O error"

    def test_id_collision_error(self) -> None:
        """Collision error records the attempts."""
        err = IdCollisionError(operation="create", attempts=8)
        assert err.code == ERROR_STORAGE_ID_COLLISION
        assert "8 attempts" in err.message
        assert err.context["attempts"] == 8
