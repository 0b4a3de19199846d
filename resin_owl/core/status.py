"""Status canonicalization with a sticky cancel latch.

Engines that expose a numeric ``State`` report short-lived codes around job
transitions. The codes observed on NanoDLP are:

====  ==========================================
Code  Meaning
====  ==========================================
0     idle
1     starting or ending a print (transient)
2     pause requested (transient)
3     paused
4     cancel requested (transient, latched here)
5     printing
====  ==========================================

Once a cancel request (4) is seen, ``cancel_latched`` stays set across every
following poll, idle polls included, until a fresh job starts from idle
(``0 -> 1``). While latched and not idle the label is ``Canceling``; once the
engine reports idle again the label is ``Idle`` with the latch still reported,
which lets display layers show a canceled job until the next print begins.

A canonicalizer carries mutable state and must be driven by one caller at a
time.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import CanonicalStatus, RawStatus

LOGGER = logging.getLogger(__name__)

STATE_IDLE = 0
STATE_STARTING = 1
STATE_PAUSE_REQUESTED = 2
STATE_PAUSED = 3
STATE_CANCEL_REQUESTED = 4
STATE_PRINTING = 5
STATE_UNKNOWN = -1


class DisplayStatus:
    """Canonical display labels."""

    IDLE = "Idle"
    PRINTING = "Printing"
    PAUSED = "Paused"
    PAUSING = "Pausing"
    CANCELING = "Canceling"


def infer_state_code(raw: RawStatus) -> int:
    """Return the numeric state, deriving one from flags when it is missing."""

    if raw.state_code is not None:
        return raw.state_code

    text = (raw.state or "").strip().lower()
    if text == "printing" or raw.printing:
        return STATE_PRINTING
    if text == "paused" or raw.paused:
        return STATE_PAUSED
    if text == "idle":
        return STATE_IDLE
    return STATE_UNKNOWN


class StatusCanonicalizer:
    """Reduce raw backend status to a stable display status."""

    def __init__(self) -> None:
        self._previous_state_code: Optional[int] = None
        self._cancel_latched = False
        self._last_reported: Optional[tuple[int, CanonicalStatus]] = None

    @property
    def cancel_latched(self) -> bool:
        return self._cancel_latched

    @property
    def previous_state_code(self) -> Optional[int]:
        return self._previous_state_code

    def reset(self) -> None:
        """Return to the initial, unlatched state."""
        self._previous_state_code = None
        self._cancel_latched = False
        self._last_reported = None

    def canonicalize(self, raw: RawStatus) -> CanonicalStatus:
        state_code = infer_state_code(raw)

        if state_code == STATE_CANCEL_REQUESTED:
            self._cancel_latched = True
        elif (
            self._previous_state_code == STATE_IDLE
            and state_code == STATE_STARTING
        ):
            self._cancel_latched = False

        result = self._resolve(raw, state_code)
        self._previous_state_code = state_code
        self._report_if_changed(state_code, result)
        return result

    def _resolve(self, raw: RawStatus, state_code: int) -> CanonicalStatus:
        if self._cancel_latched:
            if state_code == STATE_IDLE:
                return CanonicalStatus(status=DisplayStatus.IDLE, cancel_latched=True)
            return CanonicalStatus(status=DisplayStatus.CANCELING, cancel_latched=True)

        if raw.paused or state_code == STATE_PAUSED:
            return CanonicalStatus(
                status=DisplayStatus.PAUSED, cancel_latched=False, paused=True
            )

        if state_code == STATE_PAUSE_REQUESTED:
            return CanonicalStatus(
                status=DisplayStatus.PAUSING,
                cancel_latched=False,
                pause_latched=True,
            )

        if raw.printing or state_code in (STATE_STARTING, STATE_PRINTING):
            return CanonicalStatus(status=DisplayStatus.PRINTING, cancel_latched=False)

        # An idle snapshot that still carries job details follows a finished job.
        finished = (
            raw.layer_id is not None or raw.layers_count is not None or raw.has_file
        )
        return CanonicalStatus(
            status=DisplayStatus.IDLE, cancel_latched=False, finished=finished
        )

    def _report_if_changed(self, state_code: int, result: CanonicalStatus) -> None:
        previous = self._last_reported
        if previous == (state_code, result):
            return

        if previous is None:
            previous_code, previous_status = "unknown", "unknown"
        else:
            previous_code, previous_status = str(previous[0]), previous[1].status

        LOGGER.info(
            "state %s -> %s | status %s -> %s | cancel_latched: %s | "
            "pause_latched: %s | finished: %s",
            previous_code,
            state_code if state_code >= 0 else "unknown",
            previous_status,
            result.status,
            result.cancel_latched,
            result.pause_latched,
            result.finished,
        )
        self._last_reported = (state_code, result)


__all__ = [
    "DisplayStatus",
    "StatusCanonicalizer",
    "infer_state_code",
]
