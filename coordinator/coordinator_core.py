"""
Módulo core del coordinador.
Registro de workers y ejecución de rondas barrera.
"""
import asyncio
import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Set

import config
from core.errors import NodeUnreachable, TransportFailure, WorkerFailure
from coordinator.barrier import BarrierRound
from metrics import rounds_total, transport_failures
from network.message_types import MessageType, ResponseStatus
from network.network_interface import NetworkInterface
from network.simulated_network import SimulatedNetwork

logger = logging.getLogger(__name__)


class CoordinatorCore:
    """
    Clase base del coordinador.

    Es dueño exclusivo de la ronda actual; ninguna ronda avanza ni se
    leen agregados hasta que todos los workers respondieron o fueron
    declarados caídos.
    """

    def __init__(
        self,
        worker_ids: Iterable[int],
        network: NetworkInterface = None,
        node_id: int = config.COORDINATOR_ID,
        round_timeout: float = config.ROUND_TIMEOUT,
        barrier_timeout: float = config.BARRIER_TIMEOUT,
        send_retries: int = config.SEND_RETRIES
    ):
        """
        Inicializa el coordinador.

        Args:
            worker_ids: IDs de los workers (deben ser 0..M-1)
            network: Interfaz de red (None = simulada)
            node_id: ID del coordinador en la red
            round_timeout: Timeout por intento de envío
            barrier_timeout: Plazo total de una ronda barrera
            send_retries: Reintentos acotados por worker
        """
        self.worker_ids: List[int] = sorted(set(worker_ids))
        if not self.worker_ids:
            raise ValueError("Se requiere al menos un worker")
        if self.worker_ids != list(range(len(self.worker_ids))):
            raise ValueError(
                f"Los IDs de workers deben ser 0..M-1 (recibidos {self.worker_ids})"
            )
        if node_id in self.worker_ids:
            raise ValueError(f"El coordinador no puede usar el ID de un worker ({node_id})")

        self.node_id = node_id
        self.network = network or SimulatedNetwork(node_id)
        self.round_timeout = round_timeout
        self.barrier_timeout = barrier_timeout
        self.send_retries = send_retries

        # Contador monotónico de rondas (compartido entre consultas)
        self._round = 0

        logger.info(f"Coordinador inicializado con {self.num_nodes} workers")

    @property
    def num_nodes(self) -> int:
        return len(self.worker_ids)

    @property
    def current_round(self) -> int:
        return self._round

    async def start(self):
        """Inicia la red del coordinador."""
        await self.network.start()

    async def shutdown(self):
        """Detiene la red del coordinador."""
        await self.network.stop()
        logger.info("Coordinador apagado")

    def new_query_id(self) -> str:
        return uuid.uuid4().hex

    async def check_workers(self) -> Set[int]:
        """
        Ping a todos los workers.

        Returns:
            Conjunto de workers que respondieron
        """
        responses = await self.network.broadcast(
            self.node_id,
            set(self.worker_ids),
            {'type': MessageType.PING.value},
            timeout=self.round_timeout
        )
        alive = {
            node_id for node_id, response in responses.items()
            if response and response.get('status') == ResponseStatus.OK.value
        }
        if len(alive) < self.num_nodes:
            logger.warning(
                f"Workers sin respuesta al ping: "
                f"{sorted(set(self.worker_ids) - alive)}"
            )
        return alive

    async def run_barrier(
        self,
        kind: str,
        build_message: Callable[[int, int], Dict[str, Any]]
    ) -> BarrierRound:
        """
        Ejecuta una ronda barrera sobre todos los workers.

        Args:
            kind: Tipo de ronda (para logs y métricas)
            build_message: Función (round, node_id) -> mensaje

        Returns:
            BarrierRound completa

        Raises:
            TransportFailure: Si un worker reportó un fallo de entrega
            WorkerFailure: Si un worker reportó un error local
            NodeUnreachable: Si algún worker no respondió a tiempo
        """
        self._round += 1
        barrier = BarrierRound(
            round=self._round,
            kind=kind,
            expected=set(self.worker_ids)
        )
        rounds_total.labels(kind=kind).inc()

        async def ask(node_id: int):
            message = build_message(barrier.round, node_id)
            for attempt in range(self.send_retries + 1):
                response = await self.network.send_message(
                    self.node_id, node_id, message, timeout=self.round_timeout
                )
                if barrier.record(node_id, response):
                    return
                logger.debug(
                    f"Ronda {barrier.round} ({kind}): intento {attempt + 1} "
                    f"sin respuesta válida de nodo {node_id}"
                )

        tasks = [asyncio.create_task(ask(node_id)) for node_id in self.worker_ids]
        _, pending = await asyncio.wait(tasks, timeout=self.barrier_timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self._raise_failures(barrier)

        missing = barrier.pending()
        if missing:
            for node_id in missing:
                transport_failures.labels(node_id=node_id).inc()
            logger.error(f"Ronda {barrier.round} ({kind}): sin respuesta de {sorted(missing)}")
            raise NodeUnreachable(missing, barrier.round, kind)

        logger.debug(f"Ronda {barrier.round} ({kind}) completa")
        return barrier

    def _raise_failures(self, barrier: BarrierRound):
        """Convierte el primer reporte de fallo en la excepción tipada."""
        if not barrier.failures:
            return

        node_id = min(barrier.failures)
        report = barrier.failures[node_id]
        error = report.get('error', 'unknown')
        detail = report.get('detail', '')

        logger.error(
            f"Ronda {barrier.round} ({barrier.kind}): worker {node_id} "
            f"reportó fallo {error}: {detail}"
        )

        if error == 'transport':
            dest_id = report.get('dest_id')
            if dest_id is None:
                dest_id = node_id
            transport_failures.labels(node_id=dest_id).inc()
            raise TransportFailure(
                f"Worker {node_id} no pudo entregar datos: {detail}",
                node_id=dest_id,
                round_id=barrier.round
            )

        raise WorkerFailure(node_id, error, detail)
