"""
Métricas Prometheus para monitoreo de la elección.
"""
from prometheus_client import Counter, Gauge, generate_latest, REGISTRY
import logging

logger = logging.getLogger(__name__)


# Definir métricas
elections_started = Counter(
    'bully_elections_started_total',
    'Elecciones iniciadas localmente',
    ['node_id']
)

messages_received = Counter(
    'bully_messages_received_total',
    'Mensajes del protocolo procesados',
    ['node_id', 'kind']
)

messages_sent = Counter(
    'bully_messages_sent_total',
    'Mensajes del protocolo enviados',
    ['node_id', 'kind']
)

messages_dropped = Counter(
    'bully_messages_dropped_total',
    'Mensajes descartados antes de procesarse',
    ['node_id', 'reason']
)

coordinator_rejections = Counter(
    'bully_coordinator_rejections_total',
    'Anuncios de coordinador de menor prioridad rechazados',
    ['node_id']
)

leader_adoptions = Counter(
    'bully_leader_adoptions_total',
    'Líderes adoptados por heartbeat o anuncio',
    ['node_id', 'mechanism']
)

current_leader = Gauge(
    'bully_current_leader',
    'Líder conocido (0 = ninguno)',
    ['node_id']
)

election_state = Gauge(
    'bully_election_state',
    'Estado (0=normal, 1=election, 2=waiting_coordinator)',
    ['node_id']
)

_STATE_CODES = {
    "normal": 0,
    "election": 1,
    "waiting_coordinator": 2,
}


def record_election_started(node_id: int):
    elections_started.labels(node_id=node_id).inc()


def record_received(node_id: int, kind: str):
    messages_received.labels(node_id=node_id, kind=kind).inc()


def record_sent(node_id: int, kind: str):
    messages_sent.labels(node_id=node_id, kind=kind).inc()


def record_dropped(node_id: int, reason: str):
    messages_dropped.labels(node_id=node_id, reason=reason).inc()


def record_rejection(node_id: int):
    coordinator_rejections.labels(node_id=node_id).inc()


def record_adoption(node_id: int, mechanism: str):
    leader_adoptions.labels(node_id=node_id, mechanism=mechanism).inc()


def update_node_gauges(node_id: int, state: str, leader_id: int):
    """Actualiza estado y líder actual del nodo."""
    election_state.labels(node_id=node_id).set(_STATE_CODES.get(state, -1))
    current_leader.labels(node_id=node_id).set(leader_id)


def export_metrics() -> bytes:
    """Exporta métricas en formato Prometheus."""
    return generate_latest(REGISTRY)
