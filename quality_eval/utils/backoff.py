"""Queue-pressure pacing for the evaluation scheduler."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PacingPolicy:
    """Delay between processed items, growing with the current queue depth.

    ``delay = base_delay * growth_factor ** min(depth / pressure_divisor, max_exponent)``

    The delay depends only on how many items are waiting when an item
    finishes, not on that item's own retry count.
    """

    base_delay: float = 0.5
    growth_factor: float = 1.5
    pressure_divisor: int = 10
    max_exponent: float = 3.0

    def __post_init__(self) -> None:
        if self.base_delay < 0:
            raise ValueError("base_delay must be non-negative")
        if self.growth_factor < 1:
            raise ValueError("growth_factor must be >= 1 so delay never shrinks with depth")
        if self.pressure_divisor <= 0:
            raise ValueError("pressure_divisor must be positive")
        if self.max_exponent < 0:
            raise ValueError("max_exponent must be non-negative")

    @property
    def max_delay(self) -> float:
        return self.base_delay * self.growth_factor**self.max_exponent

    def delay_for(self, queue_depth: int) -> float:
        exponent = min(max(queue_depth, 0) / self.pressure_divisor, self.max_exponent)
        return self.base_delay * self.growth_factor**exponent
