"""
Storage module for TimeCapsule.

This module provides SQLite-based persistence for capsule records.

Tables:
    - capsules: One row per capsule, keyed by capsule id
    - schema_version: Migration tracking

Why SQLite?
    - Zero configuration (no server needed)
    - ACID transactions built-in
    - Ordered primary key iteration
    - Portable single-file format
"""

from timecapsule.store.db import CapsuleDB

__all__ = [
    "CapsuleDB",
]
