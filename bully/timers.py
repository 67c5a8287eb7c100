"""
Timers del protocolo (elección, fallo de coordinador, heartbeat).

Los vencimientos no ejecutan lógica: se publican como TimerEvent en el
buzón del nodo, de modo que se procesan en el mismo bucle serializado que
los mensajes. Rearmar un timer invalida cualquier evento suyo ya encolado.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)


class TimerTag(Enum):
    """Timers del nodo."""
    ELECTION = "election"
    COORDINATOR = "coordinator"
    HEARTBEAT = "heartbeat"


@dataclass(frozen=True)
class TimerEvent:
    """Vencimiento de un timer."""
    tag: TimerTag
    generation: int


class ElectionTimers:
    """
    Planificador de timers sobre el event loop de asyncio.

    after()/reset() arman el timer; armar de nuevo cancela la instancia
    anterior y avanza su generación.
    """

    def __init__(
        self,
        post: Callable[[TimerEvent], None],
        loop: Optional[asyncio.AbstractEventLoop] = None
    ):
        """
        Args:
            post: Callback que entrega el evento al buzón del nodo
            loop: Event loop (por defecto el que está corriendo)
        """
        self._post = post
        self._loop = loop
        self._handles: Dict[TimerTag, asyncio.TimerHandle] = {}
        self._generations: Dict[TimerTag, int] = {tag: 0 for tag in TimerTag}

    def after(self, duration: float, tag: TimerTag) -> TimerEvent:
        """
        Arma el timer `tag` para vencer dentro de `duration` segundos.

        Returns:
            El evento que se publicará al vencer
        """
        loop = self._loop or asyncio.get_running_loop()

        handle = self._handles.pop(tag, None)
        if handle is not None:
            handle.cancel()

        self._generations[tag] += 1
        event = TimerEvent(tag=tag, generation=self._generations[tag])
        self._handles[tag] = loop.call_later(duration, self._fire, event)

        logger.debug(f"Timer {tag.value} armado ({duration:.2f}s, gen {event.generation})")
        return event

    def reset(self, tag: TimerTag, duration: float) -> TimerEvent:
        """Rearma el timer `tag` con una nueva duración."""
        return self.after(duration, tag)

    def is_current(self, event: TimerEvent) -> bool:
        """False si el timer fue rearmado después de encolar el evento."""
        return self._generations.get(event.tag) == event.generation

    def is_armed(self, tag: TimerTag) -> bool:
        return tag in self._handles

    def cancel_all(self):
        """Cancela todos los timers (apagado del nodo)."""
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()
        for tag in self._generations:
            self._generations[tag] += 1

    def _fire(self, event: TimerEvent):
        if self.is_current(event):
            self._handles.pop(event.tag, None)
        self._post(event)
