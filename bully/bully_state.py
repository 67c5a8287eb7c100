"""
Estados y tipos de datos para la elección Bully.
Definiciones compartidas por todos los módulos del protocolo.
"""
import os
from dataclasses import dataclass, field, replace
from enum import Enum

import config
from bully.errors import ConfigurationError

# Valor reservado: "no hay líder conocido"
NO_LEADER = 0

# El número de secuencia viaja en 2 bytes
SEQUENCE_MODULO = 1 << 16


class ElectionState(Enum):
    """Estados posibles de un nodo (exactamente uno a la vez)."""
    NORMAL = "normal"
    ELECTION = "election"
    WAITING_COORDINATOR = "waiting_coordinator"


@dataclass
class NodeRuntimeState:
    """
    Estado de ejecución de un nodo.
    Solo lo modifica el motor de elección del propio nodo.
    """
    state: ElectionState = ElectionState.NORMAL
    current_leader: int = NO_LEADER
    election_sequence: int = 0
    awaiting_answer: bool = False
    last_seen_sequence: dict = field(default_factory=dict)

    def has_leader(self) -> bool:
        return self.current_leader != NO_LEADER

    def next_sequence(self) -> int:
        """Incrementa la secuencia de elección (una vez por ronda local)."""
        self.election_sequence = (self.election_sequence + 1) % SEQUENCE_MODULO
        return self.election_sequence

    def begin_election(self) -> int:
        """Transición a ELECTION para una nueva ronda."""
        self.state = ElectionState.ELECTION
        self.awaiting_answer = False
        return self.next_sequence()

    def concede(self):
        """Un nodo de mayor prioridad respondió: esperar su COORDINATOR."""
        self.awaiting_answer = True
        self.state = ElectionState.WAITING_COORDINATOR

    def follow(self, leader_id: int):
        """Transición a NORMAL reconociendo a leader_id."""
        self.current_leader = leader_id
        self.state = ElectionState.NORMAL

    def clear_leader(self):
        self.current_leader = NO_LEADER


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass
class BullyConfig:
    """
    Configuración del protocolo para un nodo.

    Los valores por defecto se leen de variables de entorno y,
    si no existen, de config.py.
    """
    node_id: int = field(default_factory=lambda: _env_int("NODE_ID", 1))
    election_timeout: float = field(
        default_factory=lambda: _env_float("ELECTION_TIMEOUT", config.ELECTION_TIMEOUT)
    )
    coordinator_timeout: float = field(
        default_factory=lambda: _env_float("COORDINATOR_TIMEOUT", config.COORDINATOR_TIMEOUT)
    )
    heartbeat_interval: float = field(
        default_factory=lambda: _env_float("HEARTBEAT_INTERVAL", config.HEARTBEAT_INTERVAL)
    )
    startup_jitter_max: float = field(
        default_factory=lambda: _env_float("STARTUP_JITTER_MAX", config.STARTUP_JITTER_MAX)
    )
    max_node_id: int = field(default_factory=lambda: _env_int("MAX_NODE_ID", config.MAX_NODE_ID))

    def __post_init__(self):
        if not 0 < self.max_node_id <= config.MAX_NODE_ID:
            raise ConfigurationError(
                f"max_node_id debe estar en [1, {config.MAX_NODE_ID}]: {self.max_node_id}"
            )
        if not 0 < self.node_id <= self.max_node_id:
            raise ConfigurationError(
                f"node_id debe estar en [1, {self.max_node_id}] (0 está reservado): {self.node_id}"
            )
        if min(self.election_timeout, self.coordinator_timeout, self.heartbeat_interval) <= 0:
            raise ConfigurationError("Los timeouts deben ser positivos")
        if self.startup_jitter_max < 0:
            raise ConfigurationError("startup_jitter_max no puede ser negativo")
        if self.coordinator_timeout <= 2 * self.heartbeat_interval:
            raise ConfigurationError(
                f"coordinator_timeout ({self.coordinator_timeout}) debe ser mayor que "
                f"2 * heartbeat_interval ({self.heartbeat_interval})"
            )

    def is_valid_node_id(self, node_id: int) -> bool:
        return 0 < node_id <= self.max_node_id

    def scaled(self, factor: float) -> "BullyConfig":
        """Copia con todas las duraciones multiplicadas por factor."""
        return replace(
            self,
            election_timeout=self.election_timeout * factor,
            coordinator_timeout=self.coordinator_timeout * factor,
            heartbeat_interval=self.heartbeat_interval * factor,
            startup_jitter_max=self.startup_jitter_max * factor,
        )

    def with_node_id(self, node_id: int) -> "BullyConfig":
        return replace(self, node_id=node_id)
