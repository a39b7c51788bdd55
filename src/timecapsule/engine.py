"""
Capsule store for TimeCapsule.

CapsuleStore owns the database and enforces every capsule rule. It
coordinates between:
- Ids: Fresh random identifiers from the injected random source
- Storage: The durable, ordered capsule table
- CallContext: Caller identity and current time, passed per call

Open Flow:
    1. Check the id shape            -> MalformedId
    2. Look the capsule up           -> NotFound
    3. Check it is still sealed      -> AlreadyOpened
    4. Check it is due               -> NotYetUnlockable
    5. Check the caller is creator   -> Forbidden
    6. Mark opened and return the joined contents

All operations on one store run under a single lock, so a check and the
mutation it guards are never interleaved with another call.
"""

import logging
import threading
from pathlib import Path
from typing import Any

from timecapsule.context import CallContext
from timecapsule.errors import IdCollisionError
from timecapsule.ids import SecureRandomSource, SystemRandomSource, generate_id, is_valid_capsule_id
from timecapsule.schema import MAX_TIMESTAMP, Capsule, ErrorKind, OpResult, StoreConfig
from timecapsule.store import CapsuleDB

logger = logging.getLogger(__name__)


class CapsuleStore:
    """
    Time capsule store.

    Usage:
        with CapsuleStore(StoreConfig(db_path="capsules.db")) as store:
            ctx = CallContext.current("alice")
            result = store.create(["hello", "world"], ctx.now + 10**9, ctx)
            capsule_id = result.unwrap()

    Attributes:
        config: Store settings
        db: Database holding the capsule records
        random_source: Where id bytes come from
    """

    def __init__(
        self,
        config: StoreConfig | None = None,
        random_source: SecureRandomSource | None = None,
        db: CapsuleDB | None = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            config: Store settings (defaults to StoreConfig())
            random_source: Id byte source (defaults to the system CSPRNG)
            db: Existing database to use instead of opening config.db_path
        """
        self.config = config or StoreConfig()
        self.random_source = random_source or SystemRandomSource()
        self.db = db or CapsuleDB(self.config.db_path)
        self._lock = threading.RLock()

    def close(self) -> None:
        """Close database connection."""
        self.db.close()

    def __enter__(self) -> "CapsuleStore":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager."""
        self.close()

    @classmethod
    def at(cls, db_path: str | Path, **kwargs: Any) -> "CapsuleStore":
        """Open a store with default settings at `db_path`."""
        return cls(StoreConfig(db_path=str(db_path)), **kwargs)

    # =========================================================================
    # Operations
    # =========================================================================

    def create(
        self,
        contents: list[str],
        open_date: int,
        ctx: CallContext,
    ) -> OpResult[str]:
        """
        Seal a new capsule.

        Args:
            contents: Strings to seal, must not be empty
            open_date: Unlock time in ns, must be strictly after ctx.now
            ctx: Caller and current time

        Returns:
            OpResult with the new capsule id, or InvalidInput/InvalidSchedule
            (an open_date past 2**64 - 1 is InvalidSchedule)
        """
        if not contents:
            logger.debug("create rejected for %s: empty contents", ctx.caller)
            return OpResult.fail(ErrorKind.INVALID_INPUT, "Contents cannot be empty")

        if open_date <= ctx.now:
            logger.debug("create rejected for %s: open_date %d not after %d", ctx.caller, open_date, ctx.now)
            return OpResult.fail(ErrorKind.INVALID_SCHEDULE, "Open date must be in the future")

        if open_date > MAX_TIMESTAMP:
            logger.debug("create rejected for %s: open_date %d out of range", ctx.caller, open_date)
            return OpResult.fail(ErrorKind.INVALID_SCHEDULE, "Open date is out of range")

        with self._lock:
            capsule_id = self._fresh_id()
            capsule = Capsule(
                id=capsule_id,
                creator=ctx.caller,
                contents=list(contents),
                open_date=open_date,
                is_opened=False,
                created_date=ctx.now,
            )
            self.db.insert(capsule)

        logger.info("capsule %s created by %s, opens at %d", capsule_id, ctx.caller, open_date)
        return OpResult.ok(capsule_id, capsule_id=capsule_id)

    def open(self, capsule_id: str, ctx: CallContext) -> OpResult[str]:
        """
        Open a capsule, once, as its creator, after its open date.

        Args:
            capsule_id: Id returned by create
            ctx: Caller and current time

        Returns:
            OpResult with the contents joined by the configured separator,
            or the first failing ErrorKind in the documented order
        """
        if not is_valid_capsule_id(capsule_id):
            logger.debug("open rejected: malformed id %r", capsule_id)
            return OpResult.fail(ErrorKind.MALFORMED_ID, "Invalid capsule ID format")

        with self._lock:
            capsule = self.db.get(capsule_id)
            if capsule is None:
                return self._reject(
                    ErrorKind.NOT_FOUND,
                    f"Time Capsule with ID {capsule_id} not found",
                    capsule_id,
                )

            if capsule.is_opened:
                return self._reject(
                    ErrorKind.ALREADY_OPENED,
                    "Time Capsule has already been opened",
                    capsule_id,
                )

            if not capsule.is_due(ctx.now):
                return self._reject(
                    ErrorKind.NOT_YET_UNLOCKABLE,
                    "Time Capsule cannot be opened before the specified date",
                    capsule_id,
                )

            if capsule.creator != ctx.caller:
                return self._reject(
                    ErrorKind.FORBIDDEN,
                    "Only the creator can open the Time Capsule",
                    capsule_id,
                )

            # Another store on the same file may have opened it since the read
            if not self.db.mark_opened(capsule_id):
                return self._reject(
                    ErrorKind.ALREADY_OPENED,
                    "Time Capsule has already been opened",
                    capsule_id,
                )

        logger.info("capsule %s opened by %s", capsule_id, ctx.caller)
        return OpResult.ok(
            self.config.contents_separator.join(capsule.contents),
            capsule_id=capsule_id,
        )

    def list_all(self) -> list[Capsule]:
        """
        List every capsule, opened or not, with all fields.

        No access control is applied here; any caller sees every record.
        """
        with self._lock:
            return self.db.list_all()

    def get(self, capsule_id: str) -> Capsule | None:
        """Look up one capsule by id, without access control."""
        with self._lock:
            return self.db.get(capsule_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _fresh_id(self) -> str:
        """Draw ids until one is unused."""
        for attempt in range(1, self.config.max_id_attempts + 1):
            capsule_id = generate_id(self.random_source, self.config.id_bytes)
            if not self.db.contains(capsule_id):
                return capsule_id
            logger.warning("capsule id collision on attempt %d, drawing again", attempt)
        raise IdCollisionError(
            operation="create",
            attempts=self.config.max_id_attempts,
        )

    def _reject(self, kind: ErrorKind, message: str, capsule_id: str) -> OpResult[str]:
        logger.debug("open rejected for %s: %s", capsule_id, kind.value)
        return OpResult.fail(kind, message, capsule_id=capsule_id)
