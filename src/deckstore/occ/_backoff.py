"""Exponential backoff calculator for optimistic update retries.

This module provides an exponential backoff with full jitter: every delay
is drawn uniformly between zero and the exponential ceiling, which spreads
competing writers apart after a conflict instead of letting them collide
again in lockstep.
"""

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from deckstore.config import RetryConfiguration


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Exponential backoff calculator with full jitter.

    The delay formula is:
        ceiling = min(base * (multiplier ^ retry), max_delay)
        delay = random(0, 1) * ceiling

    Attributes:
        base: Base delay in seconds.
        max_delay: Maximum delay in seconds.
        multiplier: Factor to multiply the ceiling for each retry.
    """

    base: float = 0.1
    max_delay: float = 30.0
    multiplier: float = 2.0

    @classmethod
    def from_config(cls, config: "RetryConfiguration") -> Self:  # noqa: UP037
        """Build a backoff from the retry configuration section."""
        return cls(base=config.base_delay, max_delay=config.max_delay)

    def ceiling(self, retry: int) -> float:
        """Return the largest delay possible for a retry.

        Args:
            retry: The retry number (1 for the first retry).

        Returns:
            The capped exponential delay in seconds.
        """
        return min(self.base * (self.multiplier**retry), self.max_delay)

    def delay(self, retry: int) -> float:
        """Calculate a jittered delay for a given retry number.

        Args:
            retry: The retry number (1 for the first retry).

        Returns:
            The delay in seconds before the next attempt.
        """
        return random.uniform(0.0, self.ceiling(retry))  # noqa: S311
