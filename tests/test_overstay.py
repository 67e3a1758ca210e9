"""Overstay scanner tests.

The sweep is exercised with txn and mark_overstayed patched; the
DB-backed class runs the 2025-06-02 sweep end to end.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

from helpers import occupying_count, outbox_event_types, requires_db, room_state
from hostelly.domain.errors import NotActiveError
from hostelly.domain.overstay import DEFAULT_SCAN_LIMIT, scan_overstays

JUN_02 = datetime(2025, 6, 2, tzinfo=timezone.utc)


def _patched_txn(candidates: list[int]):
    cur = MagicMock()
    cur.fetchall.return_value = [(allocation_id,) for allocation_id in candidates]

    @contextmanager
    def fake_txn():
        yield cur

    return cur, fake_txn


class TestScanOverstays:
    def test_marks_every_candidate(self):
        cur, fake_txn = _patched_txn([1, 2])
        with patch("hostelly.domain.overstay.txn", fake_txn), patch(
            "hostelly.domain.overstay.mark_overstayed",
            side_effect=[
                {"status": "overstayed", "allocation_id": 1, "room_id": 20},
                {"status": "overstayed", "allocation_id": 2, "room_id": 21},
            ],
        ) as mock_mark:
            summary = scan_overstays(as_of=JUN_02)

        assert summary == {
            "as_of": JUN_02.isoformat(),
            "scanned": 2,
            "overstayed": 2,
            "noop": 0,
            "failed": 0,
        }
        assert [c.kwargs["allocation_id"] for c in mock_mark.call_args_list] == [1, 2]
        assert all(c.kwargs["as_of"] == JUN_02 for c in mock_mark.call_args_list)

    def test_one_failure_does_not_stop_the_sweep(self):
        cur, fake_txn = _patched_txn([1, 2, 3])
        with patch("hostelly.domain.overstay.txn", fake_txn), patch(
            "hostelly.domain.overstay.mark_overstayed",
            side_effect=[
                {"status": "overstayed", "allocation_id": 1, "room_id": 20},
                RuntimeError("connection reset"),
                {"status": "noop", "allocation_id": 3},
            ],
        ) as mock_mark:
            summary = scan_overstays(as_of=JUN_02)

        assert mock_mark.call_count == 3
        assert summary["overstayed"] == 1
        assert summary["failed"] == 1
        assert summary["noop"] == 1

    def test_domain_error_counts_as_failure(self):
        cur, fake_txn = _patched_txn([1])
        with patch("hostelly.domain.overstay.txn", fake_txn), patch(
            "hostelly.domain.overstay.mark_overstayed",
            side_effect=NotActiveError("allocation 1 is completed"),
        ):
            summary = scan_overstays(as_of=JUN_02)

        assert summary["failed"] == 1

    def test_date_as_of_is_midnight_utc(self):
        cur, fake_txn = _patched_txn([])
        with patch("hostelly.domain.overstay.txn", fake_txn), patch(
            "hostelly.domain.overstay.mark_overstayed"
        ) as mock_mark:
            summary = scan_overstays(as_of=date(2025, 6, 2))

        assert summary["as_of"] == JUN_02.isoformat()
        assert summary["scanned"] == 0
        mock_mark.assert_not_called()

    def test_defaults_to_database_clock(self):
        cur, fake_txn = _patched_txn([])
        cur.fetchone.return_value = (JUN_02,)
        with patch("hostelly.domain.overstay.txn", fake_txn):
            summary = scan_overstays()

        assert summary["as_of"] == JUN_02.isoformat()
        assert cur.execute.call_args_list[0].args[0] == "SELECT now()"

    def test_limit_from_environment(self, monkeypatch):
        monkeypatch.setenv("OVERSTAY_SCAN_LIMIT", "7")
        cur, fake_txn = _patched_txn([])
        with patch("hostelly.domain.overstay.txn", fake_txn):
            scan_overstays(as_of=JUN_02)

        sql, params = cur.execute.call_args_list[-1].args
        assert "LIMIT" in sql
        assert params[-1] == 7

    def test_default_limit(self, monkeypatch):
        monkeypatch.delenv("OVERSTAY_SCAN_LIMIT", raising=False)
        cur, fake_txn = _patched_txn([])
        with patch("hostelly.domain.overstay.txn", fake_txn):
            scan_overstays(as_of=JUN_02)

        assert cur.execute.call_args_list[-1].args[1][-1] == DEFAULT_SCAN_LIMIT


@requires_db
class TestOverstaySweepAgainstDatabase:
    def test_sweep_flags_overdue_allocation_and_keeps_occupancy(self, db):
        from hostelly.domain.allocations import check_in, get_allocation

        room_id = db.room(max_capacity=2)
        overdue = check_in(
            member_id=db.member(),
            room_id=room_id,
            check_in_at=date(2025, 1, 10),
            expected_check_out_at=date(2025, 6, 1),
        )
        on_time = check_in(
            member_id=db.member(),
            room_id=room_id,
            check_in_at=date(2025, 1, 10),
            expected_check_out_at=date(2025, 6, 30),
        )

        summary = scan_overstays(as_of=JUN_02)

        assert summary["overstayed"] >= 1
        assert get_allocation(overdue["id"])["status"] == "overstayed"
        assert get_allocation(on_time["id"])["status"] == "active"
        assert room_state(room_id) == (2, "occupied")
        assert occupying_count(room_id) == 2
        assert outbox_event_types(overdue["id"]) == ["ALLOCATION_ACTIVATED", "ALLOCATION_OVERSTAYED"]

        # A second sweep finds nothing new for this allocation.
        scan_overstays(as_of=JUN_02)
        assert outbox_event_types(overdue["id"]) == ["ALLOCATION_ACTIVATED", "ALLOCATION_OVERSTAYED"]
