"""
Configuración compartida de fixtures para pytest
"""
import os
import sys

import pytest

# Agregar raíz del proyecto al path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from bully import BullyConfig, BullyElection, NodeRuntimeState, decode_message  # noqa: E402
from network.simulated_network import SimulatedNetwork  # noqa: E402


def pytest_configure(config):
    """Registrar markers personalizados"""
    config.addinivalue_line("markers", "slow: tests que tardan más de unos segundos")
    config.addinivalue_line("markers", "integration: tests de integración entre módulos")


class RecordingNetwork:
    """Transporte falso que registra los mensajes enviados."""

    def __init__(self):
        self.sent = []

    async def send(self, payload: bytes, target_hint=None):
        self.sent.append((decode_message(payload), target_hint))

    @property
    def messages(self):
        return [message for message, _ in self.sent]

    def of_kind(self, kind):
        return [message for message in self.messages if message.kind == kind]

    def clear(self):
        self.sent.clear()


class RecordingTimers:
    """Planificador falso: registra los rearmes sin programar nada."""

    def __init__(self):
        self.resets = []

    def reset(self, tag, duration):
        self.resets.append((tag, duration))

    def after(self, duration, tag):
        self.reset(tag, duration)

    def was_reset(self, tag) -> bool:
        return any(t == tag for t, _ in self.resets)

    def count(self, tag) -> int:
        return sum(1 for t, _ in self.resets if t == tag)

    def clear(self):
        self.resets.clear()


def make_config(node_id: int, **overrides) -> BullyConfig:
    """Configuración explícita (sin depender de variables de entorno)."""
    values = dict(
        node_id=node_id,
        election_timeout=3.0,
        coordinator_timeout=10.0,
        heartbeat_interval=4.0,
        startup_jitter_max=0.0,
        max_node_id=64,
    )
    values.update(overrides)
    return BullyConfig(**values)


def fast_config(node_id: int) -> BullyConfig:
    """Timeouts cortos para tests sobre la red simulada."""
    return make_config(
        node_id,
        election_timeout=0.2,
        coordinator_timeout=0.6,
        heartbeat_interval=0.15,
        startup_jitter_max=0.1,
    )


@pytest.fixture
def make_election():
    """Fábrica de motores con red y timers falsos."""
    def _make(node_id: int, **state_fields) -> BullyElection:
        return BullyElection(
            config=make_config(node_id),
            network=RecordingNetwork(),
            timers=RecordingTimers(),
            state=NodeRuntimeState(**state_fields)
        )
    return _make


@pytest.fixture(autouse=True)
def clear_simulated_network():
    """Cada test empieza con la red simulada vacía."""
    SimulatedNetwork.clear_all()
    yield
    SimulatedNetwork.clear_all()
