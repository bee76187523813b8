"""
Delivery endpoint selection.

Load is spread by picking a random endpoint on every attempt, retries
included. There is no health tracking or stickiness.
"""

import random
from typing import Optional, Sequence, Tuple

from .exceptions import ConfigurationError


class EndpointSelector:
    """Uniform random choice over a fixed endpoint pool."""

    def __init__(self, endpoints: Sequence[str], rng: Optional[random.Random] = None) -> None:
        pool = tuple(endpoint for endpoint in endpoints if endpoint)
        if not pool:
            raise ConfigurationError("At least one delivery endpoint is required")

        self.endpoints: Tuple[str, ...] = pool
        self._rng = rng or random.Random()

    def pick(self) -> str:
        return self._rng.choice(self.endpoints)
