"""
Módulo de elección de líder Bully.
Proporciona la máquina de estados, el códec de mensajes, el filtro de
duplicados, los timers y la reconciliación de particiones.
"""
from bully.errors import (
    BullyError,
    ConfigurationError,
    MalformedMessageError,
    UnknownMessageKindError
)
from bully.bully_state import (
    ElectionState,
    NodeRuntimeState,
    BullyConfig,
    NO_LEADER
)
from bully.message_codec import (
    MessageKind,
    BullyMessage,
    BROADCAST_TARGET,
    MESSAGE_SIZE,
    encode_message,
    decode_message
)
from bully.dedup_filter import DEDUP_POLICY, SequenceFilter
from bully.timers import TimerTag, TimerEvent, ElectionTimers
from bully.partition_healing import PartitionHealer
from bully.bully_election import BullyElection

__all__ = [
    "BullyError",
    "ConfigurationError",
    "MalformedMessageError",
    "UnknownMessageKindError",
    "ElectionState",
    "NodeRuntimeState",
    "BullyConfig",
    "NO_LEADER",
    "MessageKind",
    "BullyMessage",
    "BROADCAST_TARGET",
    "MESSAGE_SIZE",
    "encode_message",
    "decode_message",
    "DEDUP_POLICY",
    "SequenceFilter",
    "TimerTag",
    "TimerEvent",
    "ElectionTimers",
    "PartitionHealer",
    "BullyElection",
]
