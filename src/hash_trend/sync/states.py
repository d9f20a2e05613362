"""Live poller state machine."""

from __future__ import annotations

from enum import Enum, auto


class PollerState(Enum):
    """
    Per-tick state of the live poller.

    State Machine Diagram
    ---------------------
    ::

        IDLE --> RUNNING
          ^         |
          +---------+

    Every tick that gets past the visibility and busy checks moves the poller
    to RUNNING and back to IDLE when it ends, whatever the exit path. A timer
    firing while the poller is RUNNING is skipped: ticks are never queued.
    """

    IDLE = auto()
    """No tick in flight. The next timer firing may start one."""

    RUNNING = auto()
    """A tick is fetching or merging. New ticks are skipped."""

    def can_transition_to(self, target: PollerState) -> bool:
        """
        Check if transition to target state is valid.

        Args:
            target: The proposed target state.

        Returns:
            True if the transition is allowed by the state machine rules.
        """
        return target in _VALID_TRANSITIONS.get(self, set())

    @property
    def is_busy(self) -> bool:
        """Check if a tick is in flight."""
        return self == PollerState.RUNNING


_VALID_TRANSITIONS: dict[PollerState, set[PollerState]] = {
    PollerState.IDLE: {PollerState.RUNNING},
    PollerState.RUNNING: {PollerState.IDLE},
}
"""Valid state transitions for the poller state machine."""
