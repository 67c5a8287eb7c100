"""
Filtro de duplicados por número de secuencia.

Solo ELECTION_REQUEST se deduplica: ANSWER, COORDINATOR y HEARTBEAT
reutilizan legítimamente la secuencia de la ronda que los originó.
"""
import logging
from typing import Dict

from bully.bully_state import SEQUENCE_MODULO
from bully.message_codec import BullyMessage, MessageKind

logger = logging.getLogger(__name__)


# Política por tipo: {kind: deduplicar?}
DEDUP_POLICY: Dict[MessageKind, bool] = {
    MessageKind.ELECTION_REQUEST: True,
    MessageKind.ELECTION_ANSWER: False,
    MessageKind.COORDINATOR_ANNOUNCE: False,
    MessageKind.HEARTBEAT: False,
}


def is_newer(sequence: int, last: int) -> bool:
    """
    Compara secuencias de 16 bits en aritmética de serie (RFC 1982).
    Tras 65535 viene 0, que se considera posterior.
    """
    distance = (sequence - last) % SEQUENCE_MODULO
    return 0 < distance < SEQUENCE_MODULO // 2


class SequenceFilter:
    """Marca de agua por emisor para mensajes ELECTION_REQUEST."""

    def __init__(self, last_seen: Dict[int, int], max_node_id: int):
        """
        Args:
            last_seen: Tabla {sender_id: última secuencia vista} (se modifica in-place)
            max_node_id: Mayor identidad que la tabla puede seguir
        """
        self.last_seen = last_seen
        self.max_node_id = max_node_id

    def is_tracked(self, sender_id: int) -> bool:
        return 0 < sender_id <= self.max_node_id

    def is_duplicate(self, message: BullyMessage) -> bool:
        """
        Verifica (y registra) un mensaje.

        Returns:
            True si debe descartarse como duplicado
        """
        # Tipos no listados se deduplican: un tipo nuevo no debe pasar sin decidir
        if not DEDUP_POLICY.get(message.kind, True):
            return False

        sender = message.sender_id
        if not self.is_tracked(sender):
            logger.debug(f"Emisor {sender} fuera de rango, no se filtra")
            return False

        last = self.last_seen.get(sender)
        if last is not None and not is_newer(message.sequence, last):
            return True

        self.last_seen[sender] = message.sequence
        return False
