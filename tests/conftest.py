"""Pytest configuration for the stringwave test suite.

Shared fixtures build the reference string used throughout the tests:
L = 1 m, T = 1 N, mu = 1 kg/m, no damping, 101 nodes, r = 0.5, giving
c = 1 m/s, dx = 0.01 m and dt = 0.005 s.
"""

import pytest

from stringwave import PhysicalParameterSet, SimulationRegistry


@pytest.fixture
def params():
    """Reference parameter set."""
    return PhysicalParameterSet(
        length=1.0,
        tension=1.0,
        mass_density=1.0,
        damping=0.0,
        node_count=101,
        courant=0.5,
    )


@pytest.fixture
def registry(params):
    """Registry around the reference parameter set, no drive rows."""
    return SimulationRegistry(params)


@pytest.fixture
def collected_errors():
    """List-backed error hook for asserting on reported evaluation failures."""

    class Collector(list):
        def __call__(self, error):
            self.append(error)

        def __bool__(self):
            # Always truthy so ``on_error or default`` keeps this hook when empty.
            return True

    return Collector()
