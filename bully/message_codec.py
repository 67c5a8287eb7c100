"""
Codificación del mensaje del protocolo Bully.

Formato fijo de 7 bytes (orden de red):
    kind      1 byte   (1=ELECTION, 2=ANSWER, 3=COORDINATOR, 4=HEARTBEAT)
    sender_id 2 bytes  (> 0)
    target_id 2 bytes  (0 = todos)
    sequence  2 bytes
"""
import struct
from dataclasses import dataclass
from enum import IntEnum

from bully.errors import MalformedMessageError, UnknownMessageKindError

BROADCAST_TARGET = 0

_WIRE_FORMAT = struct.Struct("!BHHH")
MESSAGE_SIZE = _WIRE_FORMAT.size


class MessageKind(IntEnum):
    """Tipos de mensaje del protocolo."""
    ELECTION_REQUEST = 1
    ELECTION_ANSWER = 2
    COORDINATOR_ANNOUNCE = 3
    HEARTBEAT = 4


@dataclass(frozen=True)
class BullyMessage:
    """Mensaje del protocolo de elección."""
    kind: MessageKind
    sender_id: int
    target_id: int = BROADCAST_TARGET
    sequence: int = 0

    @property
    def is_broadcast(self) -> bool:
        return self.target_id == BROADCAST_TARGET

    def is_addressed_to(self, node_id: int) -> bool:
        """True si el mensaje es para todos o dirigido a node_id."""
        return self.target_id in (BROADCAST_TARGET, node_id)

    def __str__(self) -> str:
        target = "*" if self.is_broadcast else str(self.target_id)
        return f"{self.kind.name}({self.sender_id}->{target}, seq={self.sequence})"


def encode_message(message: BullyMessage) -> bytes:
    """
    Serializa un mensaje al formato del cable.

    Raises:
        MalformedMessageError: si algún campo no cabe en el formato
    """
    try:
        return _WIRE_FORMAT.pack(
            int(message.kind),
            message.sender_id,
            message.target_id,
            message.sequence
        )
    except struct.error as e:
        raise MalformedMessageError(f"No se puede codificar {message!r}: {e}") from e


def decode_message(data: bytes) -> BullyMessage:
    """
    Deserializa un mensaje recibido.

    Args:
        data: Bytes recibidos del transporte

    Returns:
        Mensaje decodificado

    Raises:
        MalformedMessageError: tamaño incorrecto o sender_id == 0
        UnknownMessageKindError: tipo de mensaje desconocido
    """
    if len(data) != MESSAGE_SIZE:
        raise MalformedMessageError(
            f"Tamaño incorrecto: {len(data)} bytes (esperado {MESSAGE_SIZE})"
        )

    raw_kind, sender_id, target_id, sequence = _WIRE_FORMAT.unpack(data)

    try:
        kind = MessageKind(raw_kind)
    except ValueError:
        raise UnknownMessageKindError(raw_kind) from None

    if sender_id == 0:
        raise MalformedMessageError("sender_id 0 está reservado")

    return BullyMessage(
        kind=kind,
        sender_id=sender_id,
        target_id=target_id,
        sequence=sequence
    )
