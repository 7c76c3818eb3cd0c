#!/usr/bin/env python3
"""
VM State Mapper - canonical lifecycle states for virtual machines.

Hypervisor backends report status in their own vocabulary ("running",
"shut off", "paused", "stopped", ...). Everything shown in the GUI and every
lifecycle-action decision goes through map_state() first, so the rest of the
application only ever deals with the five VMState values.

The mapping is a pure function: no I/O, no caching, never raises.
"""

import logging
from enum import Enum
from typing import FrozenSet, Optional

logger = logging.getLogger(__name__)


class VMState(str, Enum):
    """Canonical VM lifecycle state."""
    RUNNING = 'running'
    STOPPED = 'stopped'
    SUSPENDED = 'suspended'
    CREATING = 'creating'
    ERROR = 'error'

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def badge(self) -> str:
        return _BADGES[self]


_LABELS = {
    VMState.RUNNING: 'Running',
    VMState.STOPPED: 'Stopped',
    VMState.SUSPENDED: 'Suspended',
    VMState.CREATING: 'Creating...',
    VMState.ERROR: 'Error',
}

_BADGES = {
    VMState.RUNNING: 'green',
    VMState.STOPPED: 'gray',
    VMState.SUSPENDED: 'amber',
    VMState.CREATING: 'blue',
    VMState.ERROR: 'red',
}

# Substring vocabulary, checked in priority order. Adding a backend with new
# phrasing means adding its words here, never guessing.
_RUNNING_MARKERS = ('running',)
_STOPPED_MARKERS = ('shut off', 'shutoff')
_SUSPENDED_MARKERS = ('paused', 'suspended')
_CREATING_MARKERS = ('creating', 'building')


def map_state(raw: Optional[str]) -> VMState:
    """Classify a raw hypervisor status string.

    Matching is case-insensitive and priority ordered:

    1. contains "running"                     -> RUNNING
    2. contains "shut off"/"shutoff" or is "stopped" -> STOPPED
    3. contains "paused"/"suspended"          -> SUSPENDED
    4. contains "creating"/"building"         -> CREATING
    5. anything else, including None and ""   -> ERROR

    Unknown input maps to ERROR so an unrecognised VM is never shown as
    healthy.
    """
    if not raw or not isinstance(raw, str):
        return VMState.ERROR

    state = raw.strip().lower()

    if any(marker in state for marker in _RUNNING_MARKERS):
        return VMState.RUNNING
    if any(marker in state for marker in _STOPPED_MARKERS) or state == 'stopped':
        return VMState.STOPPED
    if any(marker in state for marker in _SUSPENDED_MARKERS):
        return VMState.SUSPENDED
    if any(marker in state for marker in _CREATING_MARKERS):
        return VMState.CREATING

    logger.debug("Unrecognised VM status %r mapped to error", raw)
    return VMState.ERROR


# ---------------------------------------------------------------------------
# Lifecycle actions
# ---------------------------------------------------------------------------

ACTION_START = 'start'
ACTION_STOP = 'stop'
ACTION_SHUTDOWN = 'shutdown'
ACTION_RESTART = 'restart'
ACTION_SUSPEND = 'suspend'
ACTION_CONNECT = 'connect'
ACTION_DELETE = 'delete'

# Actions that change the VM's power state through the hypervisor backend
TRANSITION_ACTIONS = frozenset({
    ACTION_START, ACTION_STOP, ACTION_SHUTDOWN, ACTION_RESTART, ACTION_SUSPEND,
})

_STATE_ACTIONS = {
    VMState.RUNNING: frozenset({
        ACTION_STOP, ACTION_SHUTDOWN, ACTION_RESTART, ACTION_SUSPEND, ACTION_CONNECT,
    }),
    VMState.STOPPED: frozenset({ACTION_START}),
    VMState.SUSPENDED: frozenset(),
    VMState.CREATING: frozenset(),
    VMState.ERROR: frozenset(),
}

# Raw status recorded after a successful action when the backend cannot be
# asked for the real value
EXPECTED_STATUS = {
    ACTION_START: 'running',
    ACTION_STOP: 'shut off',
    ACTION_SHUTDOWN: 'shut off',
    ACTION_RESTART: 'running',
    ACTION_SUSPEND: 'paused',
}


def available_actions(state: VMState, is_admin: bool = False) -> FrozenSet[str]:
    """Lifecycle actions offered for a VM in the given canonical state.

    Administrators may additionally delete any VM that is not still being
    created.
    """
    actions = set(_STATE_ACTIONS.get(state, frozenset()))
    if is_admin and state is not VMState.CREATING:
        actions.add(ACTION_DELETE)
    return frozenset(actions)


def describe_state(raw: Optional[str], is_admin: bool = False) -> dict:
    """Display payload for a raw status: canonical state, label, badge, actions."""
    state = map_state(raw)
    return {
        'state': state.value,
        'label': state.label,
        'badge': state.badge,
        'actions': sorted(available_actions(state, is_admin=is_admin)),
    }
