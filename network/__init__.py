"""
Módulo de red para comunicación entre nodos.
Proporciona interfaces abstractas e implementaciones concretas.
"""
from network.network_interface import NetworkInterface
from network.simulated_network import SimulatedNetwork
from network.http_network import HTTPNetwork


def create_network(mode: str, node_id: int, **kwargs) -> NetworkInterface:
    """
    Crea la red del nodo según el modo configurado.

    Args:
        mode: "simulated" o "http"
        node_id: ID del nodo
        **kwargs: Parámetros de la implementación concreta

    Returns:
        Instancia de NetworkInterface
    """
    if mode == "simulated":
        return SimulatedNetwork(node_id, **kwargs)
    if mode == "http":
        return HTTPNetwork(node_id, **kwargs)
    raise ValueError(f"Modo de red desconocido: {mode}")


__all__ = [
    "NetworkInterface",
    "SimulatedNetwork",
    "HTTPNetwork",
    "create_network",
]
