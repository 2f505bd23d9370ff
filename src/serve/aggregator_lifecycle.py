"""Aggregator lifecycle states and transition validation."""

from __future__ import annotations

from typing import Literal

from core.errors import ConfluxLifecycleError

AggregatorState = Literal["created", "running", "stopped"]
ALLOWED_STATE_TRANSITIONS: dict[AggregatorState, tuple[AggregatorState, ...]] = {
    "created": ("running",),
    "running": ("stopped",),
    "stopped": (),
}


def validate_transition(current: AggregatorState, next_state: AggregatorState) -> None:
    """Validate one lifecycle state transition.

    Raises:
        ConfluxLifecycleError: If the transition is not allowed.
    """
    if next_state in ALLOWED_STATE_TRANSITIONS[current]:
        return
    raise ConfluxLifecycleError(
        f"Cannot move aggregator from '{current}' to '{next_state}'. "
        "Call start() once on a new aggregator and stop() once after it."
    )
