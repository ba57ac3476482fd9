"""Progress reporting helpers."""

from __future__ import annotations

from relscout.core.logging import get_logger
from relscout.core.models.base import ProgressCallback

logger = get_logger(__name__)


def report_progress(
    callback: ProgressCallback | None, current: int, total: int, message: str
) -> None:
    """Invoke a progress callback. Errors raised by the callback are logged and ignored."""
    if callback is None:
        return
    try:
        callback(current, total, message)
    except Exception as e:
        logger.warning("progress_callback_failed", error=str(e), message=message)


def scaled_progress(
    callback: ProgressCallback | None, start: int, end: int, total: int = 100
) -> ProgressCallback | None:
    """Map a sub-step's (current, total) onto the range [start, end] of a parent callback."""
    if callback is None:
        return None

    def _scaled(current: int, sub_total: int, message: str) -> None:
        fraction = current / sub_total if sub_total > 0 else 1.0
        fraction = min(max(fraction, 0.0), 1.0)
        report_progress(callback, start + int((end - start) * fraction), total, message)

    return _scaled
