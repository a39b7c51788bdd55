"""
Plain-data operations for hosting layers.

Each function takes and returns JSON-compatible values so a transport (RPC
handler, message queue consumer, HTTP view...) can call the store without
knowing about the model classes:

    create_time_capsule -> {"Ok": id} | {"Err": message}
    open_time_capsule   -> {"Ok": contents} | {"Err": message}
    get_all_time_capsules -> [capsule dict, ...]
"""

from typing import Any

from pydantic import ValidationError

from timecapsule.context import CallContext
from timecapsule.engine import CapsuleStore
from timecapsule.schema import CapsulePayload, ErrorKind, OpResult


def create_time_capsule(
    store: CapsuleStore,
    payload: dict[str, Any],
    ctx: CallContext,
) -> dict[str, Any]:
    """Create a capsule from a {"contents": [...], "open_date": ns} payload."""
    try:
        request = CapsulePayload.model_validate(payload)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        return OpResult.fail(ErrorKind.INVALID_INPUT, f"Invalid payload: {errors}").to_dict()
    return store.create(request.contents, request.open_date, ctx).to_dict()


def open_time_capsule(
    store: CapsuleStore,
    capsule_id: str,
    ctx: CallContext,
) -> dict[str, Any]:
    """Open a capsule by id."""
    return store.open(capsule_id, ctx).to_dict()


def get_all_time_capsules(store: CapsuleStore) -> list[dict[str, Any]]:
    """Every capsule record, all fields."""
    return [capsule.model_dump() for capsule in store.list_all()]
