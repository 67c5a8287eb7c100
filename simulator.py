"""
Simulador: ejecuta múltiples nodos de elección sobre la red simulada.
"""
import asyncio
import logging
import sys
import time
from typing import Callable, Dict, Iterable, List, Optional
import argparse

import config
from bully import BullyConfig
from node.node import ElectionNode
from network.simulated_network import SimulatedNetwork

logger = logging.getLogger(__name__)

SCENARIOS = ("converge", "failover", "partition", "heal", "all")


class Simulator:
    """Simulador de una red de nodos que eligen líder."""

    def __init__(
        self,
        node_ids: Iterable[int],
        base_config: BullyConfig = None,
        latency_ms: float = config.SIMULATED_LATENCY_MS,
        max_latency_ms: float = config.SIMULATED_MAX_LATENCY_MS,
        packet_loss: float = config.SIMULATED_PACKET_LOSS
    ):
        """
        Inicializa el simulador.

        Args:
            node_ids: Prioridades de los nodos a crear
            base_config: Configuración común (se cambia node_id por nodo)
            latency_ms: Latencia mínima de la red simulada
            max_latency_ms: Latencia máxima de la red simulada
            packet_loss: Probabilidad de pérdida de paquetes
        """
        self.node_ids = sorted(node_ids)
        self.base_config = base_config or BullyConfig(node_id=max(self.node_ids))
        self.latency_ms = latency_ms
        self.max_latency_ms = max_latency_ms
        self.packet_loss = packet_loss
        self.nodes: Dict[int, ElectionNode] = {}

    async def setup_nodes(self):
        """Crea e inicia todos los nodos."""
        logger.info(f"Creando {len(self.node_ids)} nodos: {self.node_ids}")

        for node_id in self.node_ids:
            network = SimulatedNetwork(
                node_id,
                latency_ms=self.latency_ms,
                max_latency_ms=self.max_latency_ms,
                packet_loss=self.packet_loss
            )
            self.nodes[node_id] = ElectionNode(
                self.base_config.with_node_id(node_id),
                network=network
            )

        for node in self.nodes.values():
            await node.start()

    def leaders(self, node_ids: Iterable[int] = None) -> Dict[int, int]:
        """Líder que cree conocer cada nodo ({node_id: líder})."""
        ids = self.node_ids if node_ids is None else node_ids
        return {node_id: self.nodes[node_id].current_leader for node_id in ids}

    def converged_on(self, group: Iterable[int], leader_id: int) -> bool:
        """Verifica que todos los nodos del grupo reconocen a leader_id."""
        return all(leader == leader_id for leader in self.leaders(group).values())

    async def wait_until(
        self,
        predicate: Callable[[], bool],
        timeout: float,
        poll_interval: float = 0.05
    ) -> Optional[float]:
        """
        Espera a que se cumpla una condición.

        Returns:
            Segundos transcurridos, o None si venció el timeout
        """
        start = time.monotonic()
        while time.monotonic() - start < timeout:
            if predicate():
                return time.monotonic() - start
            await asyncio.sleep(poll_interval)
        return None

    def convergence_window(self) -> float:
        """Tiempo razonable para converger tras un cambio de topología."""
        cfg = self.base_config
        return (
            cfg.startup_jitter_max
            + 2 * (cfg.coordinator_timeout + cfg.election_timeout)
            + cfg.heartbeat_interval
        )

    async def scenario_converge(self) -> bool:
        """Todos los nodos conectados convergen al de mayor prioridad."""
        expected = max(self.node_ids)
        logger.info(f"ESCENARIO converge: esperando líder {expected}")
        elapsed = await self.wait_until(
            lambda: self.converged_on(self.node_ids, expected),
            self.convergence_window()
        )
        self._report("converge", elapsed)
        return elapsed is not None

    async def scenario_failover(self) -> bool:
        """Cae el líder; los supervivientes convergen al siguiente."""
        failed = max(self.node_ids)
        survivors = [n for n in self.node_ids if n != failed]
        expected = max(survivors)

        logger.info(f"ESCENARIO failover: cae nodo {failed}, esperando líder {expected}")
        SimulatedNetwork.simulate_node_failure(failed)

        elapsed = await self.wait_until(
            lambda: self.converged_on(survivors, expected),
            self.convergence_window()
        )
        SimulatedNetwork.simulate_node_recovery(failed)
        self._report("failover", elapsed)
        return elapsed is not None

    def default_groups(self) -> List[List[int]]:
        """Divide los nodos en dos grupos alternados."""
        return [self.node_ids[0::2], self.node_ids[1::2]]

    async def scenario_partition(self, groups: List[List[int]] = None) -> bool:
        """Cada partición converge a su propio máximo."""
        groups = groups or self.default_groups()
        logger.info(f"ESCENARIO partition: grupos {groups}")
        SimulatedNetwork.split(groups)

        elapsed = await self.wait_until(
            lambda: all(self.converged_on(g, max(g)) for g in groups if g),
            self.convergence_window()
        )
        self._report("partition", elapsed)
        return elapsed is not None

    async def scenario_heal(self) -> bool:
        """Tras restaurar la red, todos vuelven al máximo global."""
        expected = max(self.node_ids)
        logger.info(f"ESCENARIO heal: red restaurada, esperando líder {expected}")
        SimulatedNetwork.heal_all()

        elapsed = await self.wait_until(
            lambda: self.converged_on(self.node_ids, expected),
            self.convergence_window()
        )
        self._report("heal", elapsed)
        return elapsed is not None

    async def run_scenario(self, name: str) -> bool:
        """Ejecuta un escenario por nombre ("all" = todos en secuencia)."""
        if name == "all":
            results = [
                await self.scenario_converge(),
                await self.scenario_failover(),
                await self.scenario_converge(),
                await self.scenario_partition(),
                await self.scenario_heal(),
            ]
            return all(results)

        if name not in SCENARIOS:
            raise ValueError(f"Escenario desconocido: {name}")

        if name != "converge":
            await self.scenario_converge()
        if name == "heal":
            await self.scenario_partition()
        return await getattr(self, f"scenario_{name}")()

    def _report(self, name: str, elapsed: Optional[float]):
        if elapsed is None:
            logger.warning(f"  {name}: NO convergió")
        else:
            logger.info(f"  {name}: convergió en {elapsed:.2f}s")
        self.show_leaders()

    def show_leaders(self):
        """Muestra el líder visto por cada nodo."""
        for node_id, node in self.nodes.items():
            status = node.get_status()
            marker = "★ LÍDER" if status["is_leader"] else ""
            logger.info(
                f"  Nodo {node_id:>3}: estado={status['state']:<20} "
                f"líder={status['current_leader']:<3} {marker}"
            )

    async def cleanup(self):
        """Limpia recursos."""
        logger.info("Cerrando simulador...")

        for node in self.nodes.values():
            await node.shutdown()
        SimulatedNetwork.clear_all()

        logger.info("OK Simulador cerrado")


async def main(argv: List[str] = None) -> int:
    """Función principal."""
    parser = argparse.ArgumentParser(description='Simulador de elección de líder Bully')
    parser.add_argument('--nodes', type=int, default=6, help='Número de nodos (default: 6)')
    parser.add_argument('--scenario', choices=SCENARIOS, default='all',
                        help='Escenario a ejecutar (default: all)')
    parser.add_argument('--time-scale', type=float, default=0.1,
                        help='Factor aplicado a todos los timeouts (default: 0.1)')
    parser.add_argument('--packet-loss', type=float, default=config.SIMULATED_PACKET_LOSS,
                        help='Probabilidad de pérdida de paquetes')
    parser.add_argument('--debug', action='store_true', help='Activar logging DEBUG')

    args = parser.parse_args(argv)

    config.setup_logging("DEBUG" if args.debug else config.LOG_LEVEL, config.LOG_FILE)

    node_ids = list(range(1, args.nodes + 1))
    base_config = BullyConfig(node_id=max(node_ids)).scaled(args.time_scale)

    sim = Simulator(node_ids, base_config, packet_loss=args.packet_loss)

    try:
        await sim.setup_nodes()
        ok = await sim.run_scenario(args.scenario)
    finally:
        await sim.cleanup()

    return 0 if ok else 1


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\n\nInterrumpido por usuario")
