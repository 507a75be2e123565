"""
Módulo de shuffle y detección local de duplicados (rol de moda).
"""
import asyncio
import logging
from collections import Counter
from typing import Dict, Any, List, Optional, Tuple

import config
from core.errors import TransportFailure
from metrics import shuffle_bytes
from network.message_types import (
    CandidateDuplicate,
    ResponseStatus,
    ShuffleBatch,
)
from sharding.router import ModuloRouter

logger = logging.getLogger(__name__)


class NodeShuffle:
    """
    Mixin que añade el rol shuffle-and-detect al worker.
    Requiere que la clase tenga: node_id, shard, network, send_timeout,
    send_retries, _latest_rounds, _receive_buffers, _detections,
    _track_round, _remember_detection
    """

    async def shuffle(
        self,
        query_id: str,
        round_id: int,
        num_nodes: int,
        budget: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Redistribuye el shard según el router (un lote por destino).

        Los valores propios quedan en el buffer local; el resto viaja en
        un único ShuffleBatch por nodo destino, con reintentos acotados.

        Args:
            query_id: ID de la consulta
            round_id: Ronda de shuffle
            num_nodes: Número de nodos del cluster (M)
            budget: Timeout de ronda del coordinador (None = send_timeout
                por intento)

        Returns:
            Resumen con valores retenidos y bytes enviados por destino

        Raises:
            TransportFailure: Si algún lote no se entregó tras reintentos
        """
        router = ModuloRouter(num_nodes)
        buckets = router.partition(self.shard.values())

        retained = buckets.pop(self.node_id, [])
        self._buffer_for(query_id)[self.node_id] = retained

        timeout = self._attempt_timeout(budget)
        results = await asyncio.gather(*(
            self._send_batch(dest_id, timeout, ShuffleBatch(
                query_id=query_id,
                round=round_id,
                sender_id=self.node_id,
                values=values
            ))
            for dest_id, values in buckets.items()
        ))

        failed = sorted(dest_id for dest_id, delivered in results if not delivered)
        if failed:
            raise TransportFailure(
                f"Worker {self.node_id}: lotes no entregados a {failed}",
                node_id=failed[0],
                round_id=round_id
            )

        outbound = [
            [dest_id, len(values) * config.BYTES_PER_VALUE]
            for dest_id, values in sorted(buckets.items())
        ]
        sent = sum(size for _, size in outbound)
        if sent:
            shuffle_bytes.labels(node_id=self.node_id).inc(sent)

        logger.debug(
            f"Worker {self.node_id}: shuffle {query_id} retuvo {len(retained)}, "
            f"envió {sent} bytes a {len(outbound)} nodos"
        )

        return {
            'status': ResponseStatus.OK.value,
            'node_id': self.node_id,
            'round': round_id,
            'retained': len(retained),
            'outbound_bytes': outbound
        }

    def _attempt_timeout(self, budget: Optional[float]) -> float:
        """
        Timeout por intento de envío de un lote.

        Con presupuesto, todos los intentos y sus esperas caben en
        BATCH_BUDGET_SHARE del timeout de ronda del coordinador: el fallo
        de entrega llega como reporte antes de que el coordinador deje
        de esperar a este worker.
        """
        if budget is None:
            return self.send_timeout

        attempts = self.send_retries + 1
        waits = config.SEND_BACKOFF * self.send_retries * attempts / 2
        share = (budget * config.BATCH_BUDGET_SHARE - waits) / attempts
        return min(self.send_timeout, max(0.01, share))

    async def _send_batch(
        self,
        dest_id: int,
        timeout: float,
        batch: ShuffleBatch
    ) -> Tuple[int, bool]:
        response = await self.network.send_with_retry(
            dest_id,
            batch.to_dict(),
            timeout=timeout,
            retries=self.send_retries,
            backoff=config.SEND_BACKOFF
        )
        delivered = (
            response is not None
            and response.get('status') == ResponseStatus.OK.value
        )
        if not delivered:
            logger.warning(
                f"Worker {self.node_id}: lote de {len(batch.values)} valores "
                f"no entregado a nodo {dest_id}"
            )
        return dest_id, delivered

    def receive_batch(self, batch: ShuffleBatch) -> bool:
        """
        Guarda un lote recibido, indexado por emisor.

        Un lote reentregado reemplaza al anterior (no duplica valores).

        Returns:
            False si el lote pertenece a una consulta cerrada o ronda vieja
        """
        latest = self._latest_rounds.get(batch.query_id)
        if batch.query_id in self._detections or (
            latest is not None and batch.round < latest
        ):
            logger.debug(
                f"Worker {self.node_id}: lote atrasado de {batch.sender_id} "
                f"para {batch.query_id} ignorado"
            )
            return False

        if latest is None:
            self._track_round(batch.query_id, batch.round)
        self._buffer_for(batch.query_id)[batch.sender_id] = list(batch.values)
        return True

    def detect_local_duplicates(self, query_id: str, round_id: int = 0) -> List[CandidateDuplicate]:
        """
        Cuenta todo lo recibido y reporta los valores con conteo >= 2.

        El buffer de recepción se descarta después de la detección y los
        candidatos quedan guardados: una detección repetida de la misma
        consulta (reintento tras una respuesta perdida) devuelve los
        mismos candidatos.

        Args:
            query_id: ID de la consulta
            round_id: Ronda de detección

        Returns:
            Candidatos ordenados por valor
        """
        previous = self._detections.get(query_id)
        if previous is not None:
            logger.debug(
                f"Worker {self.node_id}: detección repetida de {query_id} "
                f"(ronda {round_id}, calculada en ronda {previous[0]})"
            )
            return list(previous[1])

        buffer = self._receive_buffers.pop(query_id, {})

        counts: Counter = Counter()
        for values in buffer.values():
            counts.update(values)

        candidates = [
            CandidateDuplicate(value=value, node_id=self.node_id, count=count)
            for value, count in counts.items()
            if count >= 2
        ]
        candidates.sort(key=lambda c: c.value)
        self._remember_detection(query_id, round_id, candidates)

        if candidates:
            logger.info(
                f"Worker {self.node_id}: {len(candidates)} duplicados locales "
                f"en {query_id}"
            )
        return candidates

    def _buffer_for(self, query_id: str) -> Dict[int, List]:
        return self._receive_buffers.setdefault(query_id, {})

    # Handlers de mensajes

    async def handle_shuffle(self, message: Dict[str, Any]) -> Dict[str, Any]:
        return await self.shuffle(
            message['query_id'],
            message['round'],
            message['num_nodes'],
            budget=message.get('budget')
        )

    def handle_shuffle_batch(self, message: Dict[str, Any]) -> Dict[str, Any]:
        accepted = self.receive_batch(ShuffleBatch.from_dict(message))
        status = ResponseStatus.OK if accepted else ResponseStatus.STALE
        return {
            'status': status.value,
            'node_id': self.node_id,
            'round': message.get('round', 0)
        }

    def handle_detect(self, message: Dict[str, Any]) -> Dict[str, Any]:
        candidates = self.detect_local_duplicates(message['query_id'], message['round'])
        return {
            'status': ResponseStatus.OK.value,
            'node_id': self.node_id,
            'round': message['round'],
            'candidates': [c.to_dict() for c in candidates]
        }
