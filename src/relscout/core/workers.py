"""Bounded worker pool with order-preserving result slots.

A single dispatcher loop (the calling thread) submits work to a
ThreadPoolExecutor as slots free up and is the only writer of the result
slots. Workers only return values.

Usage:
    slots = run_bounded(candidates, validate, max_workers=5, cancel_event=event)
    for slot in slots:
        if slot.status == SlotStatus.COMPLETED:
            ...
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError, as_completed
from dataclasses import dataclass
from enum import Enum

from relscout.core.logging import get_logger

logger = get_logger(__name__)


class SlotStatus(str, Enum):
    """Lifecycle of one result slot."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class WorkSlot[T, R]:
    """Output position for one input item."""

    index: int
    item: T
    status: SlotStatus = SlotStatus.PENDING
    value: R | None = None
    error: BaseException | None = None


@dataclass
class _Finished[R]:
    value: R | None
    error: BaseException | None
    after_cancel: bool


def _invoke[T, R](fn: Callable[[T], R], item: T, cancel_event: threading.Event) -> _Finished[R]:
    try:
        value = fn(item)
    except Exception as e:
        return _Finished(value=None, error=e, after_cancel=cancel_event.is_set())
    return _Finished(value=value, error=None, after_cancel=cancel_event.is_set())


def run_bounded[T, R](
    items: Sequence[T],
    fn: Callable[[T], R],
    max_workers: int,
    cancel_event: threading.Event | None = None,
    on_complete: Callable[[WorkSlot[T, R], int], None] | None = None,
    poll_interval: float = 0.5,
    thread_name_prefix: str = "relscout-worker",
) -> list[WorkSlot[T, R]]:
    """Run ``fn`` over ``items`` with at most ``max_workers`` in flight.

    Args:
        items: Work items; slot i of the result belongs to items[i]
        fn: Callable applied to each item in a worker thread
        max_workers: Upper bound on concurrently running calls
        cancel_event: When set, nothing new is dispatched. Calls already
            running finish, but if they finish after the signal their
            results are discarded and the slot is marked skipped.
        on_complete: Called on the dispatcher thread after each completed or
            failed slot, with the slot and the number of settled slots so far
        poll_interval: Seconds to wait for a completion before re-checking
            for cancellation
        thread_name_prefix: Prefix for worker thread names

    Returns:
        One slot per input item, in input order
    """
    slots: list[WorkSlot[T, R]] = [WorkSlot(index=i, item=item) for i, item in enumerate(items)]
    if not slots:
        return slots

    cancel = cancel_event or threading.Event()
    workers = max(1, min(max_workers, len(slots)))
    next_index = 0
    settled = 0

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=thread_name_prefix) as pool:
        active: dict[Future[_Finished[R]], int] = {}

        while True:
            # Fill available slots unless cancelled
            if not cancel.is_set():
                while len(active) < workers and next_index < len(slots):
                    future = pool.submit(_invoke, fn, slots[next_index].item, cancel)
                    active[future] = next_index
                    next_index += 1

            if not active:
                break

            try:
                done = next(as_completed(active.keys(), timeout=poll_interval))
            except TimeoutError:
                continue

            slot = slots[active.pop(done)]
            finished = done.result()

            if finished.after_cancel:
                slot.status = SlotStatus.SKIPPED
                slot.error = finished.error
                continue

            if finished.error is not None:
                slot.status = SlotStatus.FAILED
                slot.error = finished.error
            else:
                slot.status = SlotStatus.COMPLETED
                slot.value = finished.value

            settled += 1
            if on_complete is not None:
                on_complete(slot, settled)

    if next_index < len(slots):
        logger.info(
            "bounded_run_cancelled",
            dispatched=next_index,
            undispatched=len(slots) - next_index,
        )
    for slot in slots[next_index:]:
        slot.status = SlotStatus.SKIPPED

    return slots
