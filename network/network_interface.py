"""
Interfaz abstracta para comunicación de red.
"""
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional
import logging

logger = logging.getLogger(__name__)

MessageHandler = Callable[[bytes], Awaitable[None]]


class NetworkInterface(ABC):
    """
    Interfaz abstracta para comunicación entre nodos.

    Entrega de mejor esfuerzo: sin garantía de entrega ni de orden,
    y con posibles duplicados. El direccionamiento real es asunto
    del transporte; el protocolo solo aporta una pista de destino.
    """

    def __init__(self, node_id: int):
        """
        Inicializa la interfaz de red.

        Args:
            node_id: ID del nodo local
        """
        self.node_id = node_id
        self.message_handler: Optional[MessageHandler] = None
        self.logger = logging.getLogger(f"{__name__}.Node{node_id}")

    @abstractmethod
    async def send(self, payload: bytes, target_hint: Optional[int] = None):
        """
        Envía un mensaje a los nodos alcanzables.

        Args:
            payload: Mensaje codificado
            target_hint: Destinatario previsto (None = todos)
        """
        pass

    @abstractmethod
    async def start(self):
        """Inicia el servicio de red."""
        pass

    @abstractmethod
    async def stop(self):
        """Detiene el servicio de red."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Verifica si el servicio está corriendo."""
        pass

    def set_message_handler(self, handler: MessageHandler):
        """
        Configura el handler para mensajes entrantes.

        Args:
            handler: Función async que procesa los bytes recibidos
        """
        self.message_handler = handler

    async def receive(self, payload: bytes):
        """Entrega un mensaje entrante al handler registrado."""
        if not self.is_running():
            self.logger.debug(f"Nodo {self.node_id}: mensaje ignorado (red detenida)")
            return
        if self.message_handler is None:
            self.logger.warning(f"Nodo {self.node_id} no tiene message_handler")
            return
        await self.message_handler(payload)

    def log_send(self, sender: int, receiver, size: int):
        """Log de mensaje enviado."""
        self.logger.debug(f"{sender} → {receiver}: {size} bytes")

    def log_receive(self, sender, receiver: int, size: int):
        """Log de mensaje recibido."""
        self.logger.debug(f"{receiver} ← {sender}: {size} bytes")
