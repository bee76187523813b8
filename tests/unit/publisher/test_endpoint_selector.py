"""
Tests for random endpoint selection.
"""

import random

import pytest

from treblle_forwarder.core.endpoints import EndpointSelector
from treblle_forwarder.core.exceptions import ConfigurationError


class TestEndpointSelector:
    """Test endpoint pool selection."""

    def test_picks_from_pool(self) -> None:
        pool = ["https://a.test", "https://b.test", "https://c.test"]
        selector = EndpointSelector(pool)
        for _ in range(50):
            assert selector.pick() in pool

    def test_every_endpoint_reachable(self) -> None:
        pool = ["https://a.test", "https://b.test", "https://c.test"]
        selector = EndpointSelector(pool, rng=random.Random(7))
        picks = {selector.pick() for _ in range(200)}
        assert picks == set(pool)

    def test_single_endpoint(self) -> None:
        assert EndpointSelector(["https://only.test"]).pick() == "https://only.test"

    @pytest.mark.parametrize("pool", [[], [""]])
    def test_empty_pool_rejected(self, pool: list) -> None:
        with pytest.raises(ConfigurationError):
            EndpointSelector(pool)
