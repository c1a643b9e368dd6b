"""
Recompute scheduler for commission records.

Typing a COMM amount fires an edit per keystroke. Instead of recomputing
on every one, the scheduler waits for a quiet window (0.7 s by default)
and then recomputes all three tiers once, from whatever the record holds
at that moment. Rate and treatment edits recompute their tier right away.

Each (record, scope) key moves through:

    IDLE -> PENDING_DEBOUNCE -> COMPUTING -> IDLE

where scope is "record" for debounced whole-record recomputes and the
tier name for immediate ones. A record has at most one pending recompute.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Optional, Tuple

from commission_engine.config import settings
from commission_engine.services.calculator import Tier

if TYPE_CHECKING:
    from commission_engine.services.record import CommissionRecord

logger = logging.getLogger(__name__)

WHOLE_RECORD = "record"


class RecomputeState(str, Enum):
    """Where a record (or one of its tiers) is in the recompute cycle."""
    IDLE = "idle"
    PENDING_DEBOUNCE = "pending_debounce"
    COMPUTING = "computing"


@dataclass
class PendingRecompute:
    """A debounced recompute waiting for its timer."""
    record: "CommissionRecord"
    timer_task: Optional[asyncio.Task] = None


class RecomputeScheduler:
    """
    Decides when record edits turn into tier recomputes.

    Debounced recomputes run as asyncio tasks, so schedule_debounced()
    must be called with an event loop running. Everything else is
    synchronous.
    """

    def __init__(self, delay: Optional[float] = None):
        """
        Args:
            delay: seconds of quiet before a COMM edit is recomputed;
                   defaults to settings.recompute_debounce_seconds.
        """
        self._delay = settings.recompute_debounce_seconds if delay is None else delay
        self._pending: Dict[str, PendingRecompute] = {}
        self._states: Dict[Tuple[str, str], RecomputeState] = {}

    @property
    def delay(self) -> float:
        return self._delay

    def state(self, record_id: str, scope: str = WHOLE_RECORD) -> RecomputeState:
        return self._states.get((record_id, scope), RecomputeState.IDLE)

    def is_pending(self, record_id: str) -> bool:
        return record_id in self._pending

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ── scheduling ────────────────────────────────────────

    def schedule_debounced(self, record: "CommissionRecord") -> None:
        """
        (Re)start the quiet window for a record. Replaces any pending timer.

        Raises:
            RuntimeError: no running event loop; nothing is registered
        """
        key = record.id
        loop = asyncio.get_running_loop()

        pending = self._pending.get(key)
        if pending is not None and pending.timer_task and not pending.timer_task.done():
            # Cancel existing timer and reset
            pending.timer_task.cancel()
            logger.debug(f"Record {key}: debounce timer reset")

        timer_task = loop.create_task(self._recompute_after_delay(key))
        if pending is None:
            pending = PendingRecompute(record=record)
            self._pending[key] = pending
        pending.timer_task = timer_task
        self._states[(key, WHOLE_RECORD)] = RecomputeState.PENDING_DEBOUNCE

    def run_immediate(self, record: "CommissionRecord", tier: Tier) -> None:
        """Recompute one tier now. A pending debounced recompute stays scheduled."""
        self._run(record.id, tier.value, lambda: record.recompute_tier(tier))

    async def _recompute_after_delay(self, record_id: str) -> None:
        """Wait out the quiet window, then recompute the whole record."""
        await asyncio.sleep(self._delay)

        pending = self._pending.pop(record_id, None)
        if pending is None:
            return

        try:
            self._run(record_id, WHOLE_RECORD, pending.record.recompute_all)
        except Exception as e:
            logger.error(f"Debounced recompute failed for record {record_id}: {e}", exc_info=True)

    def _run(self, record_id: str, scope: str, compute: Callable[[], None]) -> None:
        key = (record_id, scope)
        self._states[key] = RecomputeState.COMPUTING
        try:
            compute()
        finally:
            self._states.pop(key, None)

    # ── flushing ──────────────────────────────────────────

    def flush(self, record_id: str) -> bool:
        """
        Run a record's pending recompute now instead of waiting for the timer.

        Returns:
            True if a recompute was pending and has run
        """
        pending = self._pending.pop(record_id, None)
        if pending is None:
            return False

        if pending.timer_task and not pending.timer_task.done():
            pending.timer_task.cancel()
        self._run(record_id, WHOLE_RECORD, pending.record.recompute_all)
        return True

    def flush_all(self) -> int:
        """Run every pending recompute now (before saving or exporting)."""
        flushed = 0
        for record_id in list(self._pending.keys()):
            if self.flush(record_id):
                flushed += 1
        if flushed:
            logger.info(f"Flushed {flushed} pending recomputes")
        return flushed

    def cancel(self, record_id: str) -> None:
        """Drop a record's pending recompute (record removed)."""
        pending = self._pending.pop(record_id, None)
        if pending and pending.timer_task and not pending.timer_task.done():
            pending.timer_task.cancel()
        self._states.pop((record_id, WHOLE_RECORD), None)

    def cancel_all(self) -> None:
        """Cancel all pending timers (for shutdown)."""
        for record_id in list(self._pending.keys()):
            self.cancel(record_id)

    async def wait_idle(self) -> None:
        """Wait until every pending debounced recompute has run."""
        while self._pending:
            tasks = [p.timer_task for p in self._pending.values() if p.timer_task]
            if not tasks:
                break
            await asyncio.gather(*tasks, return_exceptions=True)
