"""
Implementación de red usando HTTP.
Para comunicación real entre nodos en procesos o máquinas distintas.
"""
import asyncio
import aiohttp
from typing import Dict, Optional, Set, Tuple
from network.network_interface import NetworkInterface
import config
import logging

logger = logging.getLogger(__name__)

MESSAGE_ENDPOINT = "/message"


class HTTPNetwork(NetworkInterface):
    """
    Red HTTP real para comunicación entre nodos distribuidos.
    Usa aiohttp para requests asíncronos; los mensajes entrantes llegan
    por el endpoint POST /message del servidor del nodo.
    """

    def __init__(
        self,
        node_id: int,
        host: str = "localhost",
        port: int = 8000,
        peers: Dict[int, Tuple[str, int]] = None,
        timeout: float = config.HTTP_TIMEOUT
    ):
        """
        Inicializa red HTTP.

        Args:
            node_id: ID del nodo
            host: Host donde escucha este nodo
            port: Puerto donde escucha este nodo
            peers: Diccionario {node_id: (host, port)}
            timeout: Timeout por request en segundos
        """
        super().__init__(node_id)

        self.host = host
        self.port = port
        self.peers = dict(peers or {})
        self.timeout = timeout

        self._running = False
        self._session: Optional[aiohttp.ClientSession] = None
        self._pending: Set[asyncio.Task] = set()

    async def start(self):
        """Inicia el cliente HTTP."""
        if self._running:
            return

        timeout = aiohttp.ClientTimeout(total=self.timeout)
        self._session = aiohttp.ClientSession(timeout=timeout)

        self._running = True
        self.logger.info(
            f"Nodo {self.node_id}: Red HTTP iniciada ({self.host}:{self.port}, "
            f"{len(self.peers)} peers)"
        )

    async def stop(self):
        """Detiene el cliente HTTP."""
        if not self._running:
            return

        self._running = False

        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._pending.clear()

        # Cerrar sesión
        if self._session:
            await self._session.close()
            self._session = None

        self.logger.info(f"Nodo {self.node_id}: Red HTTP detenida")

    def is_running(self) -> bool:
        """Verifica si está corriendo."""
        return self._running

    def get_node_url(self, node_id: int) -> Optional[str]:
        """
        Obtiene la URL base de un nodo.

        Args:
            node_id: ID del nodo

        Returns:
            URL base (ej: "http://localhost:8001") o None
        """
        if node_id not in self.peers:
            return None

        host, port = self.peers[node_id]
        return f"http://{host}:{port}"

    def resolve_targets(self, target_hint: Optional[int] = None) -> Set[int]:
        """Peers a los que enviar: el destinatario si se conoce, si no todos."""
        if target_hint is not None and target_hint in self.peers:
            return {target_hint}
        return {peer_id for peer_id in self.peers if peer_id != self.node_id}

    async def send(self, payload: bytes, target_hint: Optional[int] = None):
        """
        Envía el mensaje por HTTP sin esperar la entrega.

        Args:
            payload: Mensaje codificado
            target_hint: Destinatario previsto (None = todos los peers)
        """
        if not self._running or not self._session:
            self.logger.warning("Red HTTP no está corriendo")
            return

        for receiver_id in self.resolve_targets(target_hint):
            task = asyncio.create_task(self._post(receiver_id, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _post(self, receiver_id: int, payload: bytes):
        endpoint = f"{self.get_node_url(receiver_id)}{MESSAGE_ENDPOINT}"

        try:
            self.log_send(self.node_id, receiver_id, len(payload))

            async with self._session.post(
                endpoint,
                data=payload,
                headers={"Content-Type": "application/octet-stream"}
            ) as response:
                if response.status != 200:
                    self.logger.warning(
                        f"Nodo {receiver_id} retornó status {response.status}"
                    )

        except asyncio.TimeoutError:
            self.logger.debug(f"Timeout enviando mensaje a nodo {receiver_id}")

        except aiohttp.ClientError as e:
            # Nodo inalcanzable: normal cuando está caído o particionado
            self.logger.debug(f"Error de cliente HTTP a nodo {receiver_id}: {e}")
