"""
Per-call context: who is calling and what time it is.

Store operations never read the clock or resolve the caller themselves;
the hosting layer (CLI, API adapter, tests) builds a CallContext and passes
it in.
"""

import time
from dataclasses import dataclass

NANOS_PER_SECOND = 1_000_000_000


def now_ns() -> int:
    """Current wall-clock time in nanoseconds since the epoch."""
    return time.time_ns()


@dataclass(frozen=True)
class CallContext:
    """
    Identity and time for one store operation.

    Attributes:
        caller: Identity of the caller
        now: Current time in nanoseconds since the epoch
    """

    caller: str
    now: int

    @classmethod
    def current(cls, caller: str) -> "CallContext":
        """Build a context for `caller` at the current system time."""
        return cls(caller=caller, now=now_ns())

    def later(self, seconds: float) -> "CallContext":
        """Same caller, `seconds` later."""
        return CallContext(caller=self.caller, now=self.now + int(seconds * NANOS_PER_SECOND))

    def as_caller(self, caller: str) -> "CallContext":
        """Same time, different caller."""
        return CallContext(caller=caller, now=self.now)
