"""
Reconciliación de líderes duplicados tras unir particiones.

Dos mecanismos complementarios:
- Re-anuncio: el líder actual responde a un ELECTION de menor prioridad
  con su ANSWER y además vuelve a difundir COORDINATOR. Sirve a nodos que
  sondean activamente.
- Adopción por heartbeat: un nodo que oye el HEARTBEAT de un nodo de mayor
  prioridad lo adopta como líder. Sirve a nodos que solo escuchan.
"""
import logging

import metrics
from bully.bully_state import ElectionState
from bully.message_codec import BullyMessage, MessageKind
from bully.timers import TimerTag

logger = logging.getLogger(__name__)


class PartitionHealer:
    """
    Lógica de reconciliación de un nodo.
    Opera sobre el estado y los timers de su BullyElection.
    """

    def __init__(self, election):
        self.election = election

    @property
    def node_id(self) -> int:
        return self.election.node_id

    async def reannounce(self, request: BullyMessage) -> bool:
        """
        Re-difunde COORDINATOR si somos líder y el emisor tiene menor prioridad.

        Returns:
            True si se re-anunció
        """
        runtime = self.election.state
        if runtime.current_leader != self.node_id or request.sender_id >= self.node_id:
            return False

        logger.info(
            f"Nodo {self.node_id}: ELECTION de {request.sender_id} mientras soy líder, "
            f"re-anunciando COORDINATOR (seq {runtime.election_sequence})"
        )
        await self.election.send(
            MessageKind.COORDINATOR_ANNOUNCE,
            sequence=runtime.election_sequence
        )
        return True

    def should_adopt(self, heartbeat: BullyMessage) -> bool:
        runtime = self.election.state
        sender = heartbeat.sender_id
        if sender <= self.node_id:
            return False
        return (
            not runtime.has_leader()
            or runtime.state == ElectionState.WAITING_COORDINATOR
            or sender > runtime.current_leader
        )

    def adopt(self, heartbeat: BullyMessage) -> bool:
        """
        Adopta al emisor del heartbeat como líder si corresponde.

        Returns:
            True si se adoptó (el reseteo normal por heartbeat no aplica)
        """
        if not self.should_adopt(heartbeat):
            return False

        runtime = self.election.state
        previous = runtime.current_leader
        runtime.follow(heartbeat.sender_id)
        self.election.timers.reset(
            TimerTag.COORDINATOR, self.election.config.coordinator_timeout
        )
        metrics.record_adoption(self.node_id, "heartbeat")

        logger.info(
            f"Nodo {self.node_id}: adoptando líder {heartbeat.sender_id} por HEARTBEAT "
            f"(líder anterior: {previous or 'ninguno'})"
        )
        return True
