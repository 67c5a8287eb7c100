"""
Excepciones del protocolo de elección.
"""


class BullyError(Exception):
    """Error base del módulo de elección."""


class ConfigurationError(BullyError, ValueError):
    """Configuración inválida (timeouts, identidad del nodo, etc.)."""


class MalformedMessageError(BullyError):
    """Mensaje con tamaño o contenido inválido."""


class UnknownMessageKindError(MalformedMessageError):
    """Mensaje con un tipo desconocido."""

    def __init__(self, kind: int):
        super().__init__(f"Tipo de mensaje desconocido: {kind}")
        self.kind = kind
