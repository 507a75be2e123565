"""
Fixtures compartidas de los tests.
"""
import pytest

from network.simulated_network import SimulatedNetwork


@pytest.fixture(autouse=True)
def clean_network():
    """Cada test arranca con el registro de la red simulada vacío."""
    SimulatedNetwork.clear_all()
    yield
    SimulatedNetwork.clear_all()
