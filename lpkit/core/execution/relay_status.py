"""
Relay bundle status parsing.

``getBundleStatuses`` answers with a sparse shape: the row may be missing,
and its ``err`` field encodes success as ``{"Ok": null}``. The response is
turned into one of three variants here, once, so no caller re-derives it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

FINAL_CONFIRMATION_STATUSES = frozenset({"confirmed", "finalized"})


@dataclass(frozen=True)
class RelayPending:
    """No row yet, or a row that is neither failed nor final."""
    confirmation_status: Optional[str] = None


@dataclass(frozen=True)
class RelayLanded:
    slot: int
    confirmation_status: str


@dataclass(frozen=True)
class RelayFailed:
    raw_error: Any
    slot: Optional[int] = None


RelayStatus = Union[RelayPending, RelayLanded, RelayFailed]


def is_success_sentinel(err: Any) -> bool:
    """True for an absent error or the relay's ``{"Ok": null}`` success marker."""
    if err is None:
        return True
    return isinstance(err, dict) and set(err) == {"Ok"} and err["Ok"] is None


def status_row(result: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """``result.value[0]``, or None when the relay has nothing for the bundle."""
    if not isinstance(result, dict):
        return None
    value = result.get("value")
    if not isinstance(value, list) or not value:
        return None
    row = value[0]
    return row if isinstance(row, dict) else None


def parse_bundle_status(result: Optional[Dict[str, Any]]) -> RelayStatus:
    """
    Parse the ``result`` member of a ``getBundleStatuses`` response.

    - No row: pending.
    - Any error other than the success sentinel: failed, regardless of
      confirmation status.
    - Confirmed or finalized without error: landed at the reported slot.
    - Anything else (e.g. "processed"): pending.
    """
    row = status_row(result)
    if row is None:
        return RelayPending()

    err = row.get("err")
    slot = row.get("slot")
    confirmation = row.get("confirmation_status")

    if not is_success_sentinel(err):
        return RelayFailed(raw_error=err, slot=slot)

    if confirmation in FINAL_CONFIRMATION_STATUSES and slot is not None:
        return RelayLanded(slot=int(slot), confirmation_status=confirmation)

    return RelayPending(confirmation_status=confirmation)


__all__ = [
    "FINAL_CONFIRMATION_STATUSES",
    "RelayPending",
    "RelayLanded",
    "RelayFailed",
    "RelayStatus",
    "is_success_sentinel",
    "status_row",
    "parse_bundle_status",
]
