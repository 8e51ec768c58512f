"""Tests for parsing relay getBundleStatuses responses."""

import pytest

from lpkit.core.execution.relay_status import (
    RelayFailed,
    RelayLanded,
    RelayPending,
    is_success_sentinel,
    parse_bundle_status,
)


def _result(**row):
    return {"context": {"slot": 250_000_000}, "value": [row]}


@pytest.mark.parametrize(
    "result",
    [
        None,
        {},
        {"value": []},
        {"value": None},
        "garbage",
        {"value": {"slot": 1}},
        {"value": "confirmed"},
    ],
)
def test_missing_row_is_pending(result):
    assert parse_bundle_status(result) == RelayPending()


def test_ok_sentinel_with_final_status_is_landed():
    status = parse_bundle_status(_result(
        bundle_id="abc",
        slot=250_000_123,
        confirmation_status="confirmed",
        err={"Ok": None},
    ))

    assert status == RelayLanded(slot=250_000_123, confirmation_status="confirmed")


def test_finalized_without_err_is_landed():
    status = parse_bundle_status(_result(slot=7, confirmation_status="finalized"))

    assert isinstance(status, RelayLanded)


def test_error_wins_over_confirmation():
    status = parse_bundle_status(_result(slot=9, confirmation_status="confirmed", err={"Custom": 1}))

    assert status == RelayFailed(raw_error={"Custom": 1}, slot=9)


def test_processed_is_still_pending():
    status = parse_bundle_status(_result(slot=9, confirmation_status="processed", err={"Ok": None}))

    assert status == RelayPending(confirmation_status="processed")


def test_success_sentinel():
    assert is_success_sentinel(None)
    assert is_success_sentinel({"Ok": None})
    assert not is_success_sentinel({"Ok": None, "Err": 1})
    assert not is_success_sentinel({"Custom": 1})
    assert not is_success_sentinel("BundleDropped")
