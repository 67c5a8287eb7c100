"""
Algoritmo de elección de líder Bully con heartbeats y reconciliación de particiones.

Reglas:
- El nodo con mayor ID (prioridad) gana
- Un nodo inicia elección al arrancar, al vencer el timeout de coordinador
  o al rechazar un COORDINATOR de menor prioridad
- ELECTION se difunde a todos; los nodos de mayor prioridad responden ANSWER
- Si nadie responde antes del timeout de elección, el nodo se declara coordinador
- El coordinador envía HEARTBEAT periódicamente; su ausencia dispara re-elección
"""
import logging
from typing import Callable, Dict, Optional, Tuple, Union

import metrics
from bully.bully_state import BullyConfig, ElectionState, NodeRuntimeState
from bully.dedup_filter import SequenceFilter
from bully.errors import MalformedMessageError, UnknownMessageKindError
from bully.message_codec import (
    BROADCAST_TARGET, BullyMessage, MessageKind, decode_message, encode_message
)
from bully.partition_healing import PartitionHealer
from bully.timers import TimerEvent, TimerTag

logger = logging.getLogger(__name__)

Event = Union[MessageKind, TimerTag]


class BullyElection:
    """
    Máquina de estados del protocolo para un nodo.

    Las transiciones se definen en una tabla {(estado, evento): handler};
    un evento sin entrada para el estado actual se ignora. Los handlers solo
    los invoca el bucle serializado del nodo, nunca de forma concurrente.
    """

    def __init__(
        self,
        config: BullyConfig,
        network,
        timers,
        state: NodeRuntimeState = None
    ):
        """
        Inicializa el motor de elección.

        Args:
            config: Configuración del protocolo (incluye node_id)
            network: Transporte con `async send(payload, target_hint=None)`
            timers: Planificador con `reset(tag, duration)`
            state: Estado inicial (por defecto NORMAL sin líder)
        """
        self.config = config
        self.node_id = config.node_id
        self.network = network
        self.timers = timers
        self.state = state or NodeRuntimeState()

        self.dedup = SequenceFilter(self.state.last_seen_sequence, config.max_node_id)
        self.healer = PartitionHealer(self)
        self._transitions = self._build_transitions()

    def _build_transitions(self) -> Dict[Tuple[ElectionState, Event], Callable]:
        table = {}
        for state in ElectionState:
            table[(state, MessageKind.ELECTION_REQUEST)] = self._on_election_request
            table[(state, MessageKind.COORDINATOR_ANNOUNCE)] = self._on_coordinator_announce
            table[(state, MessageKind.HEARTBEAT)] = self._on_heartbeat
            table[(state, TimerTag.COORDINATOR)] = self._on_coordinator_timeout
            table[(state, TimerTag.HEARTBEAT)] = self._on_heartbeat_timeout

        table[(ElectionState.ELECTION, MessageKind.ELECTION_ANSWER)] = self._on_election_answer

        # El nodo puede haber pasado a WAITING_COORDINATOR antes de que venza
        table[(ElectionState.ELECTION, TimerTag.ELECTION)] = self._on_election_timeout
        table[(ElectionState.WAITING_COORDINATOR, TimerTag.ELECTION)] = self._on_election_timeout
        return table

    def handles(self, state: ElectionState, event: Event) -> bool:
        """Verifica si existe transición para (estado, evento)."""
        return (state, event) in self._transitions

    # ══════════════════════════════════════════════════════════
    # Consultas
    # ══════════════════════════════════════════════════════════

    @property
    def current_leader(self) -> int:
        return self.state.current_leader

    @property
    def election_state(self) -> ElectionState:
        return self.state.state

    def is_leader(self) -> bool:
        """Verifica si este nodo es el líder actual."""
        return self.state.current_leader == self.node_id

    def get_status(self) -> Dict:
        return {
            "node_id": self.node_id,
            "state": self.state.state.value,
            "current_leader": self.state.current_leader,
            "is_leader": self.is_leader(),
            "election_sequence": self.state.election_sequence,
        }

    # ══════════════════════════════════════════════════════════
    # Disparadores
    # ══════════════════════════════════════════════════════════

    async def start(self):
        """
        Arranque del protocolo (tras el retardo aleatorio inicial).
        Inicia la primera elección y arma los timers de coordinador y heartbeat.
        """
        logger.info(f"Nodo {self.node_id}: iniciando protocolo Bully")
        await self.start_election()
        self.timers.reset(TimerTag.COORDINATOR, self.config.coordinator_timeout)
        self.timers.reset(TimerTag.HEARTBEAT, self.config.heartbeat_interval)
        self._update_gauges()

    async def start_election(self) -> bool:
        """
        Inicia una ronda de elección.

        Returns:
            False si ya había una elección en progreso
        """
        if self.state.state == ElectionState.ELECTION:
            logger.info(f"Nodo {self.node_id}: elección ya en progreso")
            return False

        sequence = self.state.begin_election()
        metrics.record_election_started(self.node_id)
        logger.info(f"Nodo {self.node_id}: iniciando elección (secuencia {sequence})")

        await self.send(MessageKind.ELECTION_REQUEST, sequence=sequence)
        self.timers.reset(TimerTag.ELECTION, self.config.election_timeout)
        return True

    # ══════════════════════════════════════════════════════════
    # Entrada de eventos
    # ══════════════════════════════════════════════════════════

    async def handle_payload(self, payload: bytes):
        """
        Procesa bytes recibidos del transporte.
        Mensajes malformados o de tipo desconocido se descartan.
        """
        try:
            message = decode_message(payload)
        except UnknownMessageKindError as e:
            logger.warning(f"Nodo {self.node_id}: {e}, descartado")
            metrics.record_dropped(self.node_id, "unknown_kind")
            return
        except MalformedMessageError as e:
            logger.warning(f"Nodo {self.node_id}: mensaje malformado descartado: {e}")
            metrics.record_dropped(self.node_id, "malformed")
            return

        await self.handle_message(message)

    async def handle_message(self, message: BullyMessage):
        """
        Procesa un mensaje decodificado.

        Args:
            message: Mensaje recibido
        """
        if message.sender_id == self.node_id:
            logger.debug(f"Nodo {self.node_id}: eco propio descartado {message}")
            metrics.record_dropped(self.node_id, "self_echo")
            return

        if self.dedup.is_duplicate(message):
            logger.debug(f"Nodo {self.node_id}: duplicado descartado {message}")
            metrics.record_dropped(self.node_id, "duplicate")
            return

        logger.debug(f"Nodo {self.node_id}: recibido {message}")
        metrics.record_received(self.node_id, message.kind.name)
        await self._dispatch(message.kind, message)

    async def handle_timer(self, event: TimerEvent):
        """Procesa el vencimiento de un timer."""
        await self._dispatch(event.tag, event)

    async def _dispatch(self, event: Event, payload):
        handler = self._transitions.get((self.state.state, event))
        if handler is None:
            logger.debug(
                f"Nodo {self.node_id}: {event.name} ignorado en estado {self.state.state.value}"
            )
            return
        await handler(payload)
        self._update_gauges()

    # ══════════════════════════════════════════════════════════
    # Handlers de mensajes
    # ══════════════════════════════════════════════════════════

    async def _on_election_request(self, message: BullyMessage):
        if not message.is_addressed_to(self.node_id):
            metrics.record_dropped(self.node_id, "not_addressed")
            return
        if self.node_id <= message.sender_id:
            return

        # No se inicia elección propia aquí: solo timeouts y rechazos la disparan
        await self.send(
            MessageKind.ELECTION_ANSWER,
            target_id=message.sender_id,
            sequence=message.sequence
        )
        logger.info(
            f"Nodo {self.node_id}: ANSWER enviado a {message.sender_id} (tengo mayor prioridad)"
        )
        await self.healer.reannounce(message)

    async def _on_election_answer(self, message: BullyMessage):
        if message.target_id != self.node_id:
            metrics.record_dropped(self.node_id, "not_addressed")
            return

        self.state.concede()
        self.timers.reset(TimerTag.COORDINATOR, self.config.coordinator_timeout)
        logger.info(
            f"Nodo {self.node_id}: ANSWER de {message.sender_id}, esperando COORDINATOR"
        )

    async def _on_coordinator_announce(self, message: BullyMessage):
        sender = message.sender_id
        if sender >= self.node_id:
            if sender != self.state.current_leader:
                metrics.record_adoption(self.node_id, "announce")
            self.state.follow(sender)
            self.timers.reset(TimerTag.COORDINATOR, self.config.coordinator_timeout)
            logger.info(f"Nodo {self.node_id}: nuevo coordinador: nodo {sender}")
            return

        logger.warning(
            f"Nodo {self.node_id}: COORDINATOR de {sender} rechazado (menor prioridad)"
        )
        metrics.record_rejection(self.node_id)
        if self.state.state != ElectionState.ELECTION:
            await self.start_election()

    async def _on_heartbeat(self, message: BullyMessage):
        if self.healer.adopt(message):
            return

        if message.sender_id == self.state.current_leader:
            logger.debug(f"Nodo {self.node_id}: líder {message.sender_id} está vivo")
            self.timers.reset(TimerTag.COORDINATOR, self.config.coordinator_timeout)

    # ══════════════════════════════════════════════════════════
    # Handlers de timers
    # ══════════════════════════════════════════════════════════

    async def _on_election_timeout(self, event: TimerEvent):
        if self.state.awaiting_answer:
            # El timer de coordinador decide el siguiente paso
            return

        logger.info(f"Nodo {self.node_id}: sin respuestas, me declaro COORDINATOR")
        self.state.follow(self.node_id)
        await self.send(
            MessageKind.COORDINATOR_ANNOUNCE,
            sequence=self.state.election_sequence
        )
        self.timers.reset(TimerTag.HEARTBEAT, self.config.heartbeat_interval)

    async def _on_coordinator_timeout(self, event: TimerEvent):
        runtime = self.state
        if runtime.state == ElectionState.WAITING_COORDINATOR or not runtime.has_leader():
            logger.info(f"Nodo {self.node_id}: sin anuncio de coordinador, nueva elección")
            await self.start_election()
        elif runtime.current_leader != self.node_id:
            logger.info(
                f"Nodo {self.node_id}: coordinador {runtime.current_leader} en silencio, "
                f"nueva elección"
            )
            runtime.clear_leader()
            await self.start_election()

        self.timers.reset(TimerTag.COORDINATOR, self.config.coordinator_timeout)

    async def _on_heartbeat_timeout(self, event: TimerEvent):
        if self.is_leader():
            await self.send(
                MessageKind.HEARTBEAT,
                sequence=self.state.election_sequence
            )
        self.timers.reset(TimerTag.HEARTBEAT, self.config.heartbeat_interval)

    # ══════════════════════════════════════════════════════════
    # Salida
    # ══════════════════════════════════════════════════════════

    async def send(
        self,
        kind: MessageKind,
        target_id: int = BROADCAST_TARGET,
        sequence: Optional[int] = None
    ):
        """Codifica y entrega un mensaje al transporte."""
        message = BullyMessage(
            kind=kind,
            sender_id=self.node_id,
            target_id=target_id,
            sequence=self.state.election_sequence if sequence is None else sequence
        )
        target_hint = None if target_id == BROADCAST_TARGET else target_id

        logger.debug(f"Nodo {self.node_id}: enviando {message}")
        await self.network.send(encode_message(message), target_hint=target_hint)
        metrics.record_sent(self.node_id, kind.name)

    def _update_gauges(self):
        metrics.update_node_gauges(
            self.node_id, self.state.state.value, self.state.current_leader
        )
