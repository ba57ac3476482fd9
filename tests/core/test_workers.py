"""Tests for the bounded worker pool."""

import random
import threading
import time

from relscout.core.workers import SlotStatus, run_bounded


class TestRunBounded:
    """Tests for run_bounded."""

    def test_preserves_input_order_under_random_delays(self):
        """Slot i belongs to item i regardless of completion order."""
        rng = random.Random(7)
        delays = [rng.uniform(0, 0.03) for _ in range(25)]

        def work(i: int) -> int:
            time.sleep(delays[i])
            return i * 10

        slots = run_bounded(list(range(25)), work, max_workers=5, poll_interval=0.01)

        assert [s.index for s in slots] == list(range(25))
        assert [s.item for s in slots] == list(range(25))
        assert all(s.status == SlotStatus.COMPLETED for s in slots)
        assert [s.value for s in slots] == [i * 10 for i in range(25)]

    def test_never_exceeds_max_workers(self):
        lock = threading.Lock()
        state = {"running": 0, "peak": 0}

        def work(_: int) -> None:
            with lock:
                state["running"] += 1
                state["peak"] = max(state["peak"], state["running"])
            time.sleep(0.01)
            with lock:
                state["running"] -= 1

        run_bounded(list(range(20)), work, max_workers=3, poll_interval=0.01)

        assert 1 <= state["peak"] <= 3

    def test_failures_are_isolated(self):
        def work(i: int) -> int:
            if i % 3 == 0:
                raise RuntimeError(f"bad {i}")
            return i

        slots = run_bounded(list(range(9)), work, max_workers=4, poll_interval=0.01)

        failed = [s.index for s in slots if s.status == SlotStatus.FAILED]
        assert failed == [0, 3, 6]
        assert str(slots[3].error) == "bad 3"
        assert [s.value for s in slots if s.status == SlotStatus.COMPLETED] == [1, 2, 4, 5, 7, 8]

    def test_on_complete_runs_on_calling_thread(self):
        caller = threading.current_thread().name
        seen: list[tuple[str, int]] = []

        def on_complete(slot, settled):
            seen.append((threading.current_thread().name, settled))

        run_bounded(
            list(range(6)), lambda i: i, max_workers=3, on_complete=on_complete, poll_interval=0.01
        )

        assert [settled for _, settled in seen] == [1, 2, 3, 4, 5, 6]
        assert {name for name, _ in seen} == {caller}

    def test_cancel_before_start_skips_everything(self):
        cancel = threading.Event()
        cancel.set()
        calls: list[int] = []

        slots = run_bounded(list(range(4)), calls.append, max_workers=2, cancel_event=cancel)

        assert calls == []
        assert all(s.status == SlotStatus.SKIPPED for s in slots)

    def test_cancel_discards_results_finishing_after_signal(self):
        """In-flight work completes, but its results are dropped."""
        cancel = threading.Event()
        started = threading.Event()

        def work(i: int) -> int:
            if i == 0:
                return i
            started.set()
            time.sleep(0.05)
            return i

        def on_complete(slot, settled):
            if slot.index == 0:
                started.wait(1)
                cancel.set()

        slots = run_bounded(
            list(range(10)),
            work,
            max_workers=2,
            cancel_event=cancel,
            on_complete=on_complete,
            poll_interval=0.01,
        )

        assert slots[0].status == SlotStatus.COMPLETED
        assert all(s.status == SlotStatus.SKIPPED for s in slots[1:])
        assert len(slots) == 10

    def test_empty_input(self):
        assert run_bounded([], lambda i: i, max_workers=3) == []
