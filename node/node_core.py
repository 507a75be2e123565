"""
Módulo core del worker.
Contiene la inicialización y gestión de componentes básicos.
"""
import logging
from collections import OrderedDict
from typing import Dict, List, Iterable, Optional, Tuple, Union

import config
from core.shard import Shard
from metrics import shard_values
from network.message_types import CandidateDuplicate
from network.simulated_network import SimulatedNetwork
from network.network_interface import NetworkInterface

logger = logging.getLogger(__name__)


class NodeCore:
    """
    Clase base que contiene todos los componentes del worker.
    Maneja inicialización, estado por consulta y apagado.
    """

    def __init__(
        self,
        node_id: int,
        shard: Union[Shard, Iterable] = (),
        network: NetworkInterface = None,
        host: str = "localhost",
        port: int = config.HTTP_BASE_PORT,
        send_timeout: float = config.ROUND_TIMEOUT,
        send_retries: int = config.SEND_RETRIES,
        max_tracked_queries: int = config.MAX_TRACKED_QUERIES
    ):
        """
        Inicializa componentes del worker.

        Args:
            node_id: ID del nodo (0 a M-1)
            shard: Shard local o secuencia de valores
            network: Interfaz de red (None = simulada)
            host: Host para servidor HTTP
            port: Puerto para servidor HTTP
            send_timeout: Timeout por intento de envío entre workers
            send_retries: Reintentos acotados por envío
            max_tracked_queries: Consultas cuyo estado se recuerda (LRU)
        """
        if node_id < 0:
            raise ValueError(f"node_id debe ser >= 0 (recibido {node_id})")

        self.node_id = node_id
        self.host = host
        self.port = port
        self.send_timeout = send_timeout
        self.send_retries = send_retries
        self.max_tracked_queries = max_tracked_queries

        # Shard local (solo lectura durante las consultas)
        self.shard = shard if isinstance(shard, Shard) else Shard(shard)
        shard_values.labels(node_id=node_id).set(len(self.shard))

        # Red
        self.network = network or SimulatedNetwork(node_id)

        # Última ronda vista por consulta (descarta mensajes atrasados)
        self._latest_rounds: "OrderedDict[str, int]" = OrderedDict()

        # Buffer de recepción del shuffle: query_id -> {sender_id: valores}
        self._receive_buffers: Dict[str, Dict[int, List]] = {}

        # Detecciones ya hechas: query_id -> (ronda, candidatos)
        self._detections: "OrderedDict[str, Tuple[int, List[CandidateDuplicate]]]" = OrderedDict()

        logger.info(
            f"NodeCore {node_id} inicializado ({len(self.shard)} valores)"
        )

    async def start(self):
        """Registra el handler de mensajes e inicia la red."""
        if hasattr(self.network, 'set_message_handler'):
            self.network.set_message_handler(self.handle_message)
        await self.network.start()
        logger.info(f"Worker {self.node_id} escuchando")

    def get_status(self) -> dict:
        """
        Obtiene estado del worker.

        Returns:
            Diccionario con estado del nodo
        """
        return {
            'node_id': self.node_id,
            'shard_size': len(self.shard),
            'running': self.network.is_running(),
            'active_shuffles': sorted(self._receive_buffers.keys()),
            'known_queries': len(self._latest_rounds),
            'endpoint': f"{self.host}:{self.port}"
        }

    def latest_round(self, query_id: str) -> Optional[int]:
        """Última ronda aceptada para una consulta (None si no hay)."""
        return self._latest_rounds.get(query_id)

    def _track_round(self, query_id: str, round_id: int):
        """
        Registra la última ronda de una consulta.

        Se recuerdan a lo sumo max_tracked_queries consultas; al olvidar
        la menos reciente se descarta también su buffer de recepción.
        """
        self._latest_rounds[query_id] = round_id
        self._latest_rounds.move_to_end(query_id)

        while len(self._latest_rounds) > self.max_tracked_queries:
            evicted, _ = self._latest_rounds.popitem(last=False)
            self._receive_buffers.pop(evicted, None)
            logger.debug(f"Worker {self.node_id}: consulta {evicted} olvidada")

    def _remember_detection(
        self,
        query_id: str,
        round_id: int,
        candidates: List[CandidateDuplicate]
    ):
        self._detections[query_id] = (round_id, candidates)
        self._detections.move_to_end(query_id)

        while len(self._detections) > self.max_tracked_queries:
            self._detections.popitem(last=False)

    async def shutdown(self):
        """Apaga el worker limpiamente."""
        logger.info(f"Apagando worker {self.node_id}...")

        self._receive_buffers.clear()
        self._detections.clear()
        await self.network.stop()

        logger.info(f"Worker {self.node_id} apagado")
