"""
Protocolo de mediana: selección distribuida por rondas de conteo.
"""
import logging
from typing import Any, Optional, Tuple

from core.errors import ConvergenceFailure, EmptyDataset
from coordinator.selection import SelectionState, round_budget, sample_and_pick_pivot
from metrics import track_query_metrics
from network.message_types import CountResponse, MessageType, PivotQuery, QueryResult

logger = logging.getLogger(__name__)


class MedianProtocol:
    """
    Mixin que añade la consulta de k-ésimo estadístico al coordinador.
    Requiere que la clase tenga: num_nodes, run_barrier, new_query_id,
    current_round, max_rounds, sample_seed
    """

    @track_query_metrics('median')
    async def run_median_query(
        self,
        k: Optional[int] = None,
        bounds: Optional[Tuple[Any, Any]] = None,
        sample_size: Optional[int] = None
    ) -> QueryResult:
        """
        Encuentra el k-ésimo valor (base 0) del dataset distribuido.

        Los workers nunca envían su shard: solo conteos respecto a cada
        pivote. Con N par y k omitido se usa la mediana inferior,
        k = (N - 1) // 2.

        Args:
            k: Rango buscado (None = mediana inferior)
            bounds: Cotas (lo, hi) que contienen al k-ésimo valor; si se
                omiten se obtienen con una ronda de mínimo/máximo
            sample_size: Si > 0, el pivote es la mediana de una muestra
                de ese tamaño por worker en lugar del punto medio

        Returns:
            QueryResult con el valor en `payload`

        Raises:
            EmptyDataset: Si no hay elementos
            ValueError: Si k está fuera de [0, N)
            ConvergenceFailure: Si se agota el presupuesto de rondas
            NodeUnreachable: Si un worker no responde a una ronda
        """
        query_id = self.new_query_id()
        first_round = self.current_round + 1

        if bounds is None:
            total, lo, hi = await self._min_max_round(query_id)
            offset = 0
        else:
            lo, hi = bounds
            if lo > hi:
                raise ValueError(f"Cotas inválidas: lo={lo} > hi={hi}")
            totals = await self._count_round(query_id, lo)
            total, offset = totals.total, totals.count_lt

        if total == 0:
            raise EmptyDataset("El dataset distribuido está vacío")

        if k is None:
            k = (total - 1) // 2
        if not 0 <= k < total:
            raise ValueError(f"k={k} fuera de rango [0, {total})")
        if k < offset:
            raise ConvergenceFailure(
                f"La cota inferior {lo} excede al valor de rango {k}"
            )

        state = SelectionState(
            k=k - offset,
            lo=lo,
            hi=hi,
            round=self.current_round,
            offset=offset
        )
        budget = round_budget(lo, hi, self.max_rounds, sampled=bool(sample_size))

        logger.info(
            f"Consulta de mediana {query_id}: N={total}, k={k}, "
            f"rango inicial [{lo}, {hi}], presupuesto {budget} rondas"
        )

        while state.steps < budget:
            pivot = None
            if sample_size:
                pivot = await self._sample_pivot(query_id, state, sample_size)
            if pivot is None:
                pivot = state.midpoint()

            totals = await self._count_round(query_id, pivot)
            state.round = self.current_round

            result = state.apply(pivot, totals)

            logger.debug(
                f"Ronda {state.round}: pivote {pivot} -> lt={totals.count_lt} "
                f"eq={totals.count_eq} gt={totals.count_gt}, "
                f"rango [{state.lo}, {state.hi}], k={state.k}"
            )

            if result is not None:
                logger.info(
                    f"Consulta de mediana {query_id}: valor {result} "
                    f"en {state.steps} rondas"
                )
                return QueryResult(
                    kind='median',
                    payload=result,
                    rounds=state.steps,
                    diagnostics={
                        'query_id': query_id,
                        'k': k,
                        'total': total,
                        'round_budget': budget,
                        'barrier_rounds': self.current_round - first_round + 1
                    }
                )

        raise ConvergenceFailure(
            f"Consulta {query_id}: sin convergencia en {budget} rondas "
            f"(rango [{state.lo}, {state.hi}])",
            rounds=state.steps
        )

    async def _min_max_round(self, query_id: str) -> Tuple[int, Any, Any]:
        """Reducción inicial: N global, mínimo y máximo."""
        barrier = await self.run_barrier(
            MessageType.STATS.value,
            lambda round_id, node_id: {
                'type': MessageType.STATS.value,
                'query_id': query_id,
                'round': round_id
            }
        )

        responses = barrier.responses.values()
        total = sum(r['count'] for r in responses)
        mins = [r['min'] for r in responses if r.get('min') is not None]
        maxs = [r['max'] for r in responses if r.get('max') is not None]

        if not mins:
            return total, None, None
        return total, min(mins), max(maxs)

    async def _count_round(self, query_id: str, pivot) -> CountResponse:
        """Difunde un PivotQuery y combina los CountResponse."""
        barrier = await self.run_barrier(
            MessageType.PIVOT_QUERY.value,
            lambda round_id, node_id: PivotQuery(
                query_id=query_id, round=round_id, pivot=pivot
            ).to_dict()
        )
        return CountResponse.combine(
            (CountResponse.from_dict(r) for r in barrier.responses.values()),
            round=barrier.round
        )

    async def _sample_pivot(self, query_id: str, state: SelectionState, size: int):
        """Ronda de muestreo dentro de [lo, hi] y elección del pivote."""
        barrier = await self.run_barrier(
            MessageType.SAMPLE.value,
            lambda round_id, node_id: {
                'type': MessageType.SAMPLE.value,
                'query_id': query_id,
                'round': round_id,
                'lo': state.lo,
                'hi': state.hi,
                'size': size,
                'seed': self.sample_seed + state.steps
            }
        )
        return sample_and_pick_pivot(
            r.get('samples', []) for r in barrier.responses.values()
        )
