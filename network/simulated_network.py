"""
Red simulada para testing y desarrollo.
Simula un medio de radio compartido: latencia, pérdida y duplicación de
paquetes, caída de nodos y particiones de red.
"""
import asyncio
import random
from typing import Dict, Iterable, Optional, Set
from network.network_interface import NetworkInterface
import config
import logging

logger = logging.getLogger(__name__)


class SimulatedNetwork(NetworkInterface):
    """
    Red simulada en memoria para testing.
    Cada envío es un broadcast de radio: llega a todos los nodos alcanzables,
    que filtran por destinatario.
    """

    # Registro global de nodos (compartido entre instancias)
    _nodes: Dict[int, 'SimulatedNetwork'] = {}

    # Nodos caídos (ni envían ni reciben)
    _failed: Set[int] = set()

    def __init__(
        self,
        node_id: int,
        latency_ms: float = config.SIMULATED_LATENCY_MS,
        packet_loss: float = config.SIMULATED_PACKET_LOSS,
        max_latency_ms: float = config.SIMULATED_MAX_LATENCY_MS,
        duplicate_rate: float = config.SIMULATED_DUPLICATE_RATE
    ):
        """
        Inicializa red simulada.

        Args:
            node_id: ID del nodo
            latency_ms: Latencia mínima en milisegundos
            packet_loss: Probabilidad de pérdida de paquetes (0.0-1.0)
            max_latency_ms: Latencia máxima en milisegundos
            duplicate_rate: Probabilidad de entregar un paquete dos veces
        """
        super().__init__(node_id)

        self.latency_ms = latency_ms
        self.max_latency_ms = max(latency_ms, max_latency_ms)
        self.packet_loss = packet_loss
        self.duplicate_rate = duplicate_rate

        # Particiones de red (conjunto de nodos inalcanzables)
        self.partitioned_from: Set[int] = set()

        self._running = False
        self._pending: Set[asyncio.Task] = set()

        # Registrar este nodo
        SimulatedNetwork._nodes[node_id] = self

    async def start(self):
        """Inicia el servicio de red."""
        self._running = True
        SimulatedNetwork._nodes[self.node_id] = self
        self.logger.info(f"Nodo {self.node_id}: Red simulada iniciada")

    async def stop(self):
        """Detiene el servicio de red."""
        self._running = False

        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

        # Desregistrar
        if SimulatedNetwork._nodes.get(self.node_id) is self:
            del SimulatedNetwork._nodes[self.node_id]
        self.logger.info(f"Nodo {self.node_id}: Red simulada detenida")

    def is_running(self) -> bool:
        """Verifica si está corriendo."""
        return self._running

    def can_reach(self, receiver_id: int) -> bool:
        """Verifica si un paquete de este nodo llega a receiver_id."""
        if receiver_id == self.node_id:
            return False
        if self.node_id in self._failed or receiver_id in self._failed:
            return False
        receiver = SimulatedNetwork._nodes.get(receiver_id)
        if receiver is None or not receiver.is_running():
            return False
        return (
            receiver_id not in self.partitioned_from
            and self.node_id not in receiver.partitioned_from
        )

    async def send(self, payload: bytes, target_hint: Optional[int] = None):
        """
        Difunde un mensaje a todos los nodos alcanzables.

        Args:
            payload: Mensaje codificado
            target_hint: Ignorado (medio compartido)
        """
        if not self._running:
            self.logger.warning(f"Red no está corriendo (nodo {self.node_id})")
            return

        for receiver_id in list(SimulatedNetwork._nodes):
            if not self.can_reach(receiver_id):
                continue

            # Simular pérdida de paquetes
            if random.random() < self.packet_loss:
                self.logger.debug(f"{self.node_id} → {receiver_id}: PERDIDO")
                continue

            copies = 2 if random.random() < self.duplicate_rate else 1
            for _ in range(copies):
                self._schedule_delivery(receiver_id, payload)

        self.log_send(self.node_id, target_hint or "*", len(payload))

    def _schedule_delivery(self, receiver_id: int, payload: bytes):
        # Latencia independiente por copia: no hay garantía de orden
        latency = random.uniform(self.latency_ms / 1000, self.max_latency_ms / 1000)
        task = asyncio.create_task(self._deliver(receiver_id, payload, latency))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, receiver_id: int, payload: bytes, latency: float):
        await asyncio.sleep(latency)

        # El receptor pudo caer o quedar aislado mientras el paquete viajaba
        if not self.can_reach(receiver_id):
            return

        receiver = SimulatedNetwork._nodes[receiver_id]
        receiver.log_receive(self.node_id, receiver_id, len(payload))
        try:
            await receiver.receive(payload)
        except Exception as e:
            self.logger.error(f"Error entregando mensaje a nodo {receiver_id}: {e}")

    def partition_from(self, node_ids: Iterable[int]):
        """
        Simula partición de red desde estos nodos.

        Args:
            node_ids: Nodos de los que particionar
        """
        self.partitioned_from = set(node_ids)
        self.logger.info(f"Nodo {self.node_id}: Particionado de {sorted(self.partitioned_from)}")

    def heal_partition(self):
        """Restaura conectividad de red."""
        self.partitioned_from.clear()
        self.logger.info(f"Nodo {self.node_id}: Partición restaurada")

    @classmethod
    def split(cls, groups: Iterable[Iterable[int]]):
        """
        Divide la red en grupos disjuntos de alcanzabilidad.

        Args:
            groups: Grupos de IDs; los nodos no listados quedan aislados
        """
        groups = [set(group) for group in groups]
        all_ids = set(cls._nodes)
        for group in groups:
            for node_id in group:
                network = cls._nodes.get(node_id)
                if network is not None:
                    network.partition_from(all_ids - group)
        logger.info(f"Red dividida en {[sorted(g) for g in groups]}")

    @classmethod
    def heal_all(cls):
        """Restaura conectividad completa entre todos los nodos."""
        for network in cls._nodes.values():
            network.heal_partition()
        logger.info("Red restaurada completamente")

    @classmethod
    def simulate_node_failure(cls, node_id: int):
        """El nodo deja de enviar y recibir mensajes."""
        cls._failed.add(node_id)
        logger.info(f"Nodo {node_id}: FALLO simulado")

    @classmethod
    def simulate_node_recovery(cls, node_id: int):
        """El nodo vuelve a enviar y recibir mensajes."""
        cls._failed.discard(node_id)
        logger.info(f"Nodo {node_id}: recuperado")

    @classmethod
    def get_node(cls, node_id: int) -> Optional['SimulatedNetwork']:
        """Obtiene instancia de un nodo."""
        return cls._nodes.get(node_id)

    @classmethod
    def clear_all(cls):
        """Limpia todos los nodos registrados."""
        cls._nodes.clear()
        cls._failed.clear()
