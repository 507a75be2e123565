"""
Protocolo de moda: shuffle-and-detect en una sola pasada.
"""
import logging
from typing import Dict, Any, List

from coordinator.barrier import BarrierRound
from metrics import skew_warnings, track_query_metrics
from network.message_types import CandidateDuplicate, MessageType, QueryResult
from sharding.skew import detect_skew

logger = logging.getLogger(__name__)


class ModeProtocol:
    """
    Mixin que añade la consulta de moda al coordinador.
    Requiere que la clase tenga: worker_ids, num_nodes, run_barrier,
    new_query_id, round_timeout, skew_threshold, skew_min_bytes
    """

    @track_query_metrics('mode')
    async def run_mode_query(self) -> QueryResult:
        """
        Encuentra los valores duplicados del dataset distribuido.

        Flujo:
        1. Ronda barrera 'shuffle': cada worker rutea su shard
        2. Chequeo de skew sobre los bytes del shuffle
        3. Ronda barrera 'detect': cada worker reporta duplicados locales
        4. Unión de candidatos

        Returns:
            QueryResult con la lista ordenada de valores duplicados

        Raises:
            NodeUnreachable: Si un worker no completa alguna fase
            TransportFailure: Si un lote del shuffle no se entregó
            WorkerFailure: Si un worker reporta un error local
        """
        query_id = self.new_query_id()
        logger.info(f"Consulta de moda {query_id} sobre {self.num_nodes} workers")

        shuffle_round = await self.run_barrier(
            MessageType.SHUFFLE.value,
            lambda round_id, node_id: {
                'type': MessageType.SHUFFLE.value,
                'query_id': query_id,
                'round': round_id,
                'num_nodes': self.num_nodes,
                'budget': self.round_timeout
            }
        )
        skew = self._check_shuffle_skew(shuffle_round)

        detect_round = await self.run_barrier(
            MessageType.DETECT.value,
            lambda round_id, node_id: {
                'type': MessageType.DETECT.value,
                'query_id': query_id,
                'round': round_id
            }
        )

        candidates = self._collect_candidates(detect_round)
        frequencies: Dict[Any, int] = {}
        for candidate in candidates:
            frequencies[candidate.value] = max(
                frequencies.get(candidate.value, 0), candidate.count
            )

        values = sorted(frequencies)
        logger.info(f"Consulta de moda {query_id}: {len(values)} duplicados")

        return QueryResult(
            kind='mode',
            payload=values,
            rounds=2,
            diagnostics={
                'query_id': query_id,
                'frequencies': frequencies,
                'reporters': sorted({c.node_id for c in candidates}),
                'skew': skew.to_dict() if skew else None
            }
        )

    def _collect_candidates(self, barrier: BarrierRound) -> List[CandidateDuplicate]:
        """Unión de reportes (el orden de llegada no importa)."""
        candidates = []
        for response in barrier.responses.values():
            candidates.extend(
                CandidateDuplicate.from_dict(c)
                for c in response.get('candidates', [])
            )
        return candidates

    def _check_shuffle_skew(self, barrier: BarrierRound):
        """Suma bytes entrantes por nodo y reporta skew (no fatal)."""
        inbound = {node_id: 0 for node_id in self.worker_ids}
        for response in barrier.responses.values():
            for dest_id, size in response.get('outbound_bytes', []):
                inbound[int(dest_id)] = inbound.get(int(dest_id), 0) + size

        skew = detect_skew(
            inbound,
            threshold=self.skew_threshold,
            min_bytes=self.skew_min_bytes,
            round_id=barrier.round
        )
        if skew:
            skew_warnings.inc()
            logger.warning(
                f"Skew en shuffle (ronda {skew.round_id}): nodo {skew.node_id} "
                f"recibe {skew.fraction:.0%} de {skew.total_bytes} bytes "
                f"(umbral {skew.threshold:.0%})"
            )
        return skew
