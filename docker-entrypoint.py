"""
Script de entrada para contenedor Docker.
Ejecuta un nodo de elección real sobre HTTP.
"""
import asyncio
import os
import sys
import logging
from typing import Dict, Tuple

import config
from bully import BullyConfig, ConfigurationError
from node import ElectionNode
from network import create_network

logger = logging.getLogger(__name__)


def parse_peers(peers_str: str) -> Dict[int, Tuple[str, int]]:
    """
    Parsea la lista de peers.

    Args:
        peers_str: Formato "id@host:port,id@host:port,..."

    Returns:
        Diccionario {node_id: (host, port)}
    """
    peers = {}
    for part in filter(None, (p.strip() for p in peers_str.split(','))):
        try:
            node_part, address = part.split('@', 1)
            host, port = address.rsplit(':', 1)
            peers[int(node_part)] = (host, int(port))
        except ValueError:
            raise ConfigurationError(f"Peer inválido: '{part}' (esperado id@host:port)") from None
    return peers


async def main():
    config.setup_logging(os.getenv('LOG_LEVEL', config.LOG_LEVEL), config.LOG_FILE)

    # Leer configuración desde variables de entorno (NODE_ID, timeouts...)
    bully_config = BullyConfig()
    host = os.getenv('HOST', '0.0.0.0')
    port = int(os.getenv('PORT', '8000'))
    peers = parse_peers(os.getenv('PEERS', ''))

    logger.info(f"Iniciando nodo {bully_config.node_id} en {host}:{port}")
    logger.info(f"Peers: {peers}")

    network = create_network(
        'http',
        bully_config.node_id,
        host=host,
        port=port,
        peers=peers
    )

    node = ElectionNode(bully_config, network=network, host=host, port=port)

    await node.start_http_server()
    await node.start()

    logger.info(f"Nodo {bully_config.node_id} listo y escuchando en {host}:{port}")

    try:
        await asyncio.Event().wait()
    finally:
        await node.shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nApagado limpio")
        sys.exit(0)
    except ConfigurationError as e:
        print(f"Configuración inválida: {e}", file=sys.stderr)
        sys.exit(2)
