"""
Key-repeat coalescing for termtunes.

Holding an arrow key produces a stream of identical key events. Rather than
touching the output device on every repeat, each kind keeps one accumulator
and a generation counter. Every press schedules a fire message tagged with
the generation it saw; only the fire whose tag still matches the live counter
applies the accumulated delta.
"""
from typing import Callable, Dict, Optional

from .events import DebounceFire
from .logging_config import get_logger
from .state import AdjustmentKind, PendingAdjustment

logger = get_logger('debounce')

QUIESCENCE_MS: int = 100

Schedule = Callable[[float, object], None]


class InputDebouncer:
    """Coalesces bursts of same-kind unit deltas into one applied delta.

    Args:
        schedule: ``schedule(delay_seconds, message)`` posts ``message`` back
            to the event loop once the delay has elapsed
        window_ms: Quiescence window
    """

    def __init__(self, schedule: Schedule, window_ms: int = QUIESCENCE_MS):
        self._schedule = schedule
        self.window = window_ms / 1000.0
        self._pending: Dict[AdjustmentKind, PendingAdjustment] = {
            kind: PendingAdjustment(kind) for kind in AdjustmentKind
        }

    def press(self, kind: AdjustmentKind, delta: int) -> DebounceFire:
        """Record one key event and schedule its fire message."""
        pending = self._pending[kind]
        pending.delta += delta
        pending.generation += 1
        fire = DebounceFire(kind=kind, generation=pending.generation)
        self._schedule(self.window, fire)
        logger.debug(f"{kind.value} {delta:+d} -> {pending.delta:+d} (gen {pending.generation})")
        return fire

    def fire(self, message: DebounceFire) -> Optional[int]:
        """Resolve a fire message.

        Returns:
            The net delta to apply, or None if a newer press superseded this
            fire or the burst summed to zero
        """
        pending = self._pending[message.kind]
        if message.generation != pending.generation:
            logger.debug(f"Stale {message.kind.value} fire (gen {message.generation} < {pending.generation})")
            return None
        delta, pending.delta = pending.delta, 0
        if delta == 0:
            return None
        return delta

    def reset(self, kind: Optional[AdjustmentKind] = None) -> int:
        """Drop the accumulated delta of ``kind``, or of every kind.

        Generations stay monotonic, so a fire already in flight resolves to
        nothing.

        Returns:
            The net delta that was dropped
        """
        kinds = [kind] if kind is not None else list(self._pending)
        dropped = 0
        for k in kinds:
            pending = self._pending[k]
            dropped += pending.delta
            if pending.delta:
                logger.info(f"Dropped pending {k.value} adjustment {pending.delta:+d}")
            pending.delta = 0
        return dropped
