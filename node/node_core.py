"""
Módulo core del nodo de elección.
Contiene el bucle de eventos serializado que alimenta al motor Bully.
"""
import asyncio
import logging
import random
from typing import Dict, Optional, Union

from bully import BullyConfig, BullyElection, ElectionTimers, TimerEvent
from network.network_interface import NetworkInterface
from network.simulated_network import SimulatedNetwork

logger = logging.getLogger(__name__)

MailboxItem = Union[bytes, TimerEvent]


class NodeCore:
    """
    Actor de un nodo: un buzón y un único bucle que lo consume.

    Mensajes de red y vencimientos de timers entran al mismo buzón, por lo
    que los handlers del motor nunca se ejecutan concurrentemente.
    """

    def __init__(
        self,
        config: BullyConfig,
        network: NetworkInterface = None
    ):
        """
        Inicializa componentes del nodo.

        Args:
            config: Configuración del protocolo
            network: Interfaz de red (None = simulada)
        """
        self.config = config
        self.node_id = config.node_id

        # Red
        self.network = network or SimulatedNetwork(self.node_id)

        # Buzón y timers
        self.mailbox: "asyncio.Queue[MailboxItem]" = asyncio.Queue()
        self.timers = ElectionTimers(post=self.mailbox.put_nowait)

        # Motor de elección
        self.election = BullyElection(
            config=config,
            network=self.network,
            timers=self.timers
        )

        self._loop_task: Optional[asyncio.Task] = None
        self._started = asyncio.Event()
        self._running = False

    @property
    def current_leader(self) -> int:
        return self.election.current_leader

    def is_leader(self) -> bool:
        return self.election.is_leader()

    async def start(self):
        """Inicia la red y el bucle de eventos del nodo."""
        if self._running:
            logger.warning(f"Nodo {self.node_id}: ya está corriendo")
            return

        self.network.set_message_handler(self.deliver)
        await self.network.start()

        self._running = True
        self._loop_task = asyncio.create_task(
            self._run(), name=f"bully-node-{self.node_id}"
        )
        logger.info(f"Nodo {self.node_id}: iniciado")

    async def wait_started(self):
        """Espera a que termine el retardo inicial y arranque el protocolo."""
        await self._started.wait()

    async def deliver(self, payload: bytes):
        """Handler de la red: encola el mensaje para el bucle del nodo."""
        if self._running:
            self.mailbox.put_nowait(payload)

    async def _run(self):
        """Bucle principal: retardo aleatorio, arranque y consumo del buzón."""
        try:
            # Desincronizar elecciones iniciales simultáneas
            jitter = random.uniform(0, self.config.startup_jitter_max)
            logger.debug(f"Nodo {self.node_id}: retardo inicial {jitter:.2f}s")
            await asyncio.sleep(jitter)

            await self.election.start()
            self._started.set()

            while True:
                item = await self.mailbox.get()
                await self._process(item)

        except asyncio.CancelledError:
            logger.debug(f"Nodo {self.node_id}: bucle de eventos cancelado")
            raise

    async def _process(self, item: MailboxItem):
        try:
            if isinstance(item, TimerEvent):
                if not self.timers.is_current(item):
                    logger.debug(f"Nodo {self.node_id}: timer {item.tag.value} obsoleto")
                    return
                await self.election.handle_timer(item)
            else:
                await self.election.handle_payload(item)
        except Exception:
            logger.exception(f"Nodo {self.node_id}: error procesando evento {item!r}")

    def get_status(self) -> Dict:
        """Retorna estado del nodo."""
        status = self.election.get_status()
        status["running"] = self._running
        return status

    async def shutdown(self):
        """Detiene timers, bucle de eventos y red."""
        if not self._running:
            return

        logger.info(f"Nodo {self.node_id}: deteniendo")
        self._running = False
        self.timers.cancel_all()

        if self._loop_task and not self._loop_task.done():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass

        await self.network.stop()
        logger.info(f"Nodo {self.node_id}: detenido")
