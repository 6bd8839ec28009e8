"""Incremental channel fetch scheduler.

The scanner answers one query at a time and each ``CIN`` read takes a
noticeable fraction of a second, so loading a bank of 50 channels is spread
over many scheduler ticks. Each tick fetches at most one channel, which keeps
the interaction loop responsive.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING

from ubc125.errors import DecodeError, TransportError
from ubc125.types import Mode, SlotState, bank_indices, validate_channel_index

if TYPE_CHECKING:
    from ubc125.connection import ScannerConnection
    from ubc125.state import DeviceState

logger = logging.getLogger(__name__)

DEFAULT_MAX_FETCH_RETRIES = 5


class FetchScheduler:
    """FIFO queue of channel indices waiting to be fetched.

    The queue never holds the same index twice. A fetch whose response fails
    to decode goes back to the tail of the queue. After ``max_retries``
    failures for one index the slot is marked unavailable in the device state
    and dropped from the queue; ``max_retries=None`` retries forever.

    Args:
        connection: Connection used to send ``CIN`` reads.
        state: Device state that receives fetched channels.
        max_retries: Decode failures tolerated per index before giving up.
    """

    def __init__(
        self,
        connection: ScannerConnection,
        state: DeviceState,
        *,
        max_retries: int | None = DEFAULT_MAX_FETCH_RETRIES,
    ) -> None:
        if max_retries is not None and max_retries < 1:
            raise ValueError("max_retries must be >= 1 or None")
        self._conn = connection
        self._state = state
        self._max_retries = max_retries
        self._queue: deque[int] = deque()
        self._failures: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def pending(self) -> tuple[int, ...]:
        """Indices waiting to be fetched, in fetch order."""
        return tuple(self._queue)

    def enqueue(self, index: int) -> bool:
        """Append *index* to the queue unless it is already queued.

        Returns:
            True if the index was added.
        """
        validate_channel_index(index)
        if index in self._queue:
            return False
        self._queue.append(index)
        return True

    def enqueue_bank(self, bank: int) -> int:
        """Queue every slot of *bank* that does not hold a channel yet.

        Unavailable slots are queued again, so each visit to a bank gets a
        fresh set of attempts.

        Args:
            bank: Bank number (1-10).

        Returns:
            Number of indices added.
        """
        added = 0
        for index in bank_indices(bank):
            if self._state.slot_state(index) is SlotState.LOADED:
                continue
            if self.enqueue(index):
                self._failures.pop(index, None)
                added += 1
        if added:
            logger.debug("Queued %d channels of bank %d", added, bank)
        return added

    def clear(self) -> None:
        """Drop every pending fetch."""
        if self._queue:
            logger.debug("Discarding %d pending channel fetches", len(self._queue))
        self._queue.clear()
        self._failures.clear()

    def tick(self, mode: Mode) -> int | None:
        """Fetch at most one pending channel.

        Nothing happens unless the queue is non-empty and *mode* is
        :attr:`Mode.CONFIGURING`; channel reads are only answered in program
        mode.

        Args:
            mode: Current interaction mode.

        Returns:
            The index that was attempted, or None if nothing was sent.

        Raises:
            TransportError: If the exchange fails. The index is requeued
                before the error propagates.
        """
        if mode is not Mode.CONFIGURING or not self._queue:
            return None

        index = self._queue.popleft()
        try:
            channel = self._conn.read_channel(index)
        except TransportError:
            self._queue.append(index)
            raise
        except DecodeError as exc:
            self._handle_failure(index, exc)
            return index

        self._failures.pop(index, None)
        self._state.apply_channel(channel)
        return index

    def _handle_failure(self, index: int, exc: DecodeError) -> None:
        failures = self._failures.get(index, 0) + 1
        if self._max_retries is not None and failures >= self._max_retries:
            self._failures.pop(index, None)
            self._state.mark_unavailable(index)
            logger.warning(
                "Giving up on channel %d after %d failed fetches: %s", index, failures, exc
            )
            return
        self._failures[index] = failures
        self._queue.append(index)
        logger.debug("Fetch of channel %d failed (%d), requeued: %s", index, failures, exc)
