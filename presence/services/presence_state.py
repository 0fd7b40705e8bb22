# presence/services/presence_state.py
"""
Two-state presence machine shared by facility occupancy and event attendance.

Each (identity, target) pair is either OUT or IN. A card tap is the only input:
OUT -> IN is an entry, IN -> OUT is an exit. Callers derive the current state
from storage, ask for the transition, and branch on its action.
"""

from enum import Enum
from typing import NamedTuple


class PresenceState(str, Enum):
    OUT = "out"
    IN = "in"


class ScanAction(str, Enum):
    ENTER = "enter"
    EXIT = "exit"
    DENIED = "denied"


class Transition(NamedTuple):
    before: PresenceState
    after: PresenceState
    action: ScanAction


_TAP = {
    PresenceState.OUT: Transition(PresenceState.OUT, PresenceState.IN, ScanAction.ENTER),
    PresenceState.IN: Transition(PresenceState.IN, PresenceState.OUT, ScanAction.EXIT),
}


def state_of(is_inside: bool) -> PresenceState:
    return PresenceState.IN if is_inside else PresenceState.OUT


def tap(state: PresenceState) -> Transition:
    """Transition taken when a card is tapped in `state`."""
    return _TAP[PresenceState(state)]
