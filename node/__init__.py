"""
Paquete node - Nodo participante en la elección de líder.

Exporta la clase principal ElectionNode que combina los componentes
mediante herencia múltiple de mixins.

Módulos internos:
- node_core: Buzón, bucle de eventos serializado y motor Bully
- node_http: Servidor HTTP (mensajes, estado y métricas)
"""

from node.node import ElectionNode

__all__ = ['ElectionNode']
