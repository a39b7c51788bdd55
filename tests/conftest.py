"""
Pytest configuration and fixtures for TimeCapsule tests.

This module provides shared fixtures used across unit and integration tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest

from timecapsule.context import NANOS_PER_SECOND, CallContext
from timecapsule.engine import CapsuleStore
from timecapsule.ids import SecureRandomSource
from timecapsule.schema import StoreConfig

# 2026-01-01T00:00:00Z
T0 = 1_767_225_600 * NANOS_PER_SECOND


class CountingRandomSource(SecureRandomSource):
    """Deterministic source: the n-th call returns 0xcafe followed by n, big-endian."""

    def __init__(self, start: int = 1) -> None:
        self.next_value = start
        self.calls = 0

    def random_bytes(self, n: int) -> bytes:
        value = self.next_value
        self.next_value += 1
        self.calls += 1
        return b"\xca\xfe" + value.to_bytes(n - 2, "big")


class RepeatingRandomSource(SecureRandomSource):
    """Returns the same bytes `repeat` times before moving on."""

    def __init__(self, repeat: int) -> None:
        self.repeat = repeat
        self.calls = 0

    def random_bytes(self, n: int) -> bytes:
        self.calls += 1
        if self.calls <= self.repeat:
            return b"\xab" * n
        return self.calls.to_bytes(n, "big")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db_path(temp_dir: Path) -> Path:
    """Path for a fresh database file."""
    return temp_dir / "capsules.db"


@pytest.fixture
def random_source() -> CountingRandomSource:
    """Deterministic id source."""
    return CountingRandomSource()


@pytest.fixture
def store(db_path: Path, random_source: CountingRandomSource) -> Generator[CapsuleStore, None, None]:
    """Store backed by a temporary database and deterministic ids."""
    s = CapsuleStore(StoreConfig(db_path=str(db_path)), random_source=random_source)
    yield s
    s.close()


@pytest.fixture
def alice() -> CallContext:
    """Alice, at T0."""
    return CallContext(caller="alice", now=T0)


@pytest.fixture
def bob() -> CallContext:
    """Bob, at T0."""
    return CallContext(caller="bob", now=T0)


@pytest.fixture
def repeating_source() -> type[RepeatingRandomSource]:
    """Factory for sources that repeat the same id a given number of times."""
    return RepeatingRandomSource
