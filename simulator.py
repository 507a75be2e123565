"""
Simulador: ejecuta workers y coordinador en un solo proceso.
"""
import asyncio
import json
import logging
import random
from typing import Any, Dict, List, Optional, Sequence
import argparse

import config
from coordinator import Coordinator
from network.message_types import QueryResult
from network.simulated_network import SimulatedNetwork
from node import WorkerNode

logger = logging.getLogger(__name__)


class Simulator:
    """Clúster en memoria: M workers y un coordinador sobre red simulada."""

    def __init__(
        self,
        shards: Sequence[Sequence],
        latency_ms: float = 0.0,
        max_latency_ms: float = 0.0,
        packet_loss: float = 0.0,
        seed: Optional[int] = None,
        **coordinator_options
    ):
        """
        Inicializa el simulador.

        Args:
            shards: Un shard por worker (el worker i recibe shards[i])
            latency_ms: Latencia mínima de la red simulada
            max_latency_ms: Latencia máxima de la red simulada
            packet_loss: Probabilidad de pérdida de paquetes
            seed: Semilla de la red simulada
            **coordinator_options: Parámetros extra para el Coordinator
        """
        if not shards:
            raise ValueError("Se requiere al menos un shard")

        self.shards = [list(shard) for shard in shards]
        self.latency_ms = latency_ms
        self.max_latency_ms = max_latency_ms
        self.packet_loss = packet_loss
        self.seed = seed
        self.coordinator_options = coordinator_options

        self.workers: List[WorkerNode] = []
        self.coordinator: Optional[Coordinator] = None

    def _network(self, node_id: int) -> SimulatedNetwork:
        return SimulatedNetwork(
            node_id,
            latency_ms=self.latency_ms,
            packet_loss=self.packet_loss,
            max_latency_ms=self.max_latency_ms,
            seed=None if self.seed is None else self.seed + node_id
        )

    async def setup(self):
        """Crea e inicia todos los workers y el coordinador."""
        for node_id, shard in enumerate(self.shards):
            worker = WorkerNode(
                node_id=node_id,
                shard=shard,
                network=self._network(node_id),
                port=config.HTTP_BASE_PORT + node_id
            )
            await worker.start()
            self.workers.append(worker)

        self.coordinator = Coordinator(
            worker_ids=range(len(self.workers)),
            network=self._network(config.COORDINATOR_ID),
            **self.coordinator_options
        )
        await self.coordinator.start()

        logger.info(f"Simulador listo: {len(self.workers)} workers")

    def worker(self, node_id: int) -> WorkerNode:
        return self.workers[node_id]

    async def run_mode(self) -> QueryResult:
        return await self.coordinator.run_mode_query()

    async def run_median(self, k: Optional[int] = None, **kwargs) -> QueryResult:
        return await self.coordinator.run_median_query(k=k, **kwargs)

    def show_status(self) -> List[Dict[str, Any]]:
        """Estado de cada worker."""
        statuses = [worker.get_status() for worker in self.workers]
        for status in statuses:
            logger.info(
                f"Worker {status['node_id']}: {status['shard_size']} valores, "
                f"corriendo={status['running']}"
            )
        return statuses

    async def shutdown(self):
        """Apaga coordinador y workers."""
        logger.info("Cerrando simulador...")

        if self.coordinator is not None:
            await self.coordinator.shutdown()

        for worker in self.workers:
            await worker.shutdown()

        logger.info("OK Simulador cerrado")


def random_shards(num_nodes: int, num_values: int, seed: int, max_value: int) -> List[List[int]]:
    """Reparte valores aleatorios en shards de tamaño similar."""
    rng = random.Random(seed)
    shards: List[List[int]] = [[] for _ in range(num_nodes)]
    for i in range(num_values):
        shards[i % num_nodes].append(rng.randint(0, max_value))
    return shards


async def main():
    """Función principal."""
    parser = argparse.ArgumentParser(description='Simulador de estadísticas de orden distribuidas')
    parser.add_argument('--nodes', type=int, default=4, help='Número de workers (default: 4)')
    parser.add_argument('--values', type=int, default=1000, help='Cantidad total de valores (default: 1000)')
    parser.add_argument('--max-value', type=int, default=10 ** 6, help='Valor máximo generado')
    parser.add_argument('--seed', type=int, default=42, help='Semilla de generación')
    parser.add_argument('--query', choices=['mode', 'median', 'both'], default='both')
    parser.add_argument('--k', type=int, default=None, help='Rango buscado (default: mediana inferior)')
    parser.add_argument('--sample-size', type=int, default=config.SAMPLE_SIZE,
                        help='Tamaño de muestra por worker (0 = punto medio)')
    parser.add_argument('--latency', type=float, default=config.SIMULATED_LATENCY_MS,
                        help='Latencia simulada en ms')
    parser.add_argument('--loss', type=float, default=config.SIMULATED_PACKET_LOSS,
                        help='Probabilidad de pérdida de paquetes')
    parser.add_argument('--debug', action='store_true', help='Activar logging DEBUG')

    args = parser.parse_args()

    config.setup_logging('DEBUG' if args.debug else config.LOG_LEVEL)

    sim = Simulator(
        random_shards(args.nodes, args.values, args.seed, args.max_value),
        latency_ms=args.latency,
        max_latency_ms=max(args.latency, config.SIMULATED_MAX_LATENCY_MS),
        packet_loss=args.loss,
        seed=args.seed
    )

    try:
        await sim.setup()
        sim.show_status()

        if args.query in ('mode', 'both'):
            result = await sim.run_mode()
            print(json.dumps(result.to_dict(), indent=2, default=str))

        if args.query in ('median', 'both'):
            result = await sim.run_median(args.k, sample_size=args.sample_size or None)
            print(json.dumps(result.to_dict(), indent=2, default=str))

    finally:
        await sim.shutdown()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n\nInterrumpido por usuario")
