"""
Nodo de elección de líder con API HTTP.

Este módulo orquesta los componentes del nodo usando mixins:
- NodeCore: Buzón, bucle de eventos y motor Bully
- NodeHTTP: Servidor HTTP (mensajes, estado y métricas)
"""
import logging

from bully import BullyConfig
from network.network_interface import NetworkInterface
from node.node_core import NodeCore
from node.node_http import NodeHTTP

logger = logging.getLogger(__name__)


class ElectionNode(NodeCore, NodeHTTP):
    """
    Nodo participante en la elección - Clase orquestadora.

    Ejemplo de uso:
        config = BullyConfig(node_id=5)
        node = ElectionNode(config, network=SimulatedNetwork(5))
        await node.start()

        print(node.current_leader)

        await node.shutdown()
    """

    def __init__(
        self,
        config: BullyConfig,
        network: NetworkInterface = None,
        host: str = "0.0.0.0",
        port: int = 8000
    ):
        """
        Inicializa el nodo.

        Args:
            config: Configuración del protocolo (incluye node_id)
            network: Interfaz de red (None = simulada)
            host: Host para servidor HTTP
            port: Puerto para servidor HTTP
        """
        NodeCore.__init__(self, config, network)
        NodeHTTP.__init__(self, host, port)

        logger.info(
            f"ElectionNode {self.node_id} creado "
            f"(red={type(self.network).__name__}, {host}:{port})"
        )

    async def shutdown(self):
        """
        Apaga el nodo limpiamente.
        Detiene el servidor HTTP y luego el núcleo.
        """
        await self.stop_http_server()
        await NodeCore.shutdown(self)
