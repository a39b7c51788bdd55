"""
TimeCapsule - Seal content until a future date, readable once by its creator.

A capsule is an immutable list of strings with an unlock timestamp. Only
the caller who created it can open it, only after that timestamp, and only
once. Unlocking is lazy: nothing happens until someone asks.

Example usage:
    $ timecapsule create "hello" "world" --in 3600
    $ timecapsule open <capsule_id>
    $ timecapsule list
"""

__version__ = "0.1.0"
__author__ = "TimeCapsule Contributors"

from timecapsule.context import CallContext
from timecapsule.engine import CapsuleStore
from timecapsule.schema import Capsule, ErrorKind, OpResult, StoreConfig

__all__ = [
    "__version__",
    "__author__",
    "CallContext",
    "Capsule",
    "CapsuleStore",
    "ErrorKind",
    "OpResult",
    "StoreConfig",
]
