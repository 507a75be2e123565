"""
Módulo de conteo local (rol de mediana).
Responde consultas de pivote sobre el shard residente, sin moverlo.
"""
import logging
import random
from typing import Dict, Any, List

from network.message_types import CountResponse, ResponseStatus

logger = logging.getLogger(__name__)


class NodeCounting:
    """
    Mixin que añade el rol de conteo al worker.
    Requiere que la clase tenga: node_id, shard
    """

    def count_against(self, pivot, round_id: int = 0) -> CountResponse:
        """
        Conteo tri-partición del shard respecto al pivote.

        Un solo recorrido lineal; idempotente y sin efectos laterales.
        Además del conteo, reporta los vecinos del pivote en el shard.

        Args:
            pivot: Valor pivote
            round_id: Ronda a la que responde

        Returns:
            CountResponse con count_lt + count_eq + count_gt == len(shard)
        """
        count_lt = count_eq = count_gt = 0
        below_max = above_min = None

        for value in self.shard.values():
            if value < pivot:
                count_lt += 1
                if below_max is None or value > below_max:
                    below_max = value
            elif value > pivot:
                count_gt += 1
                if above_min is None or value < above_min:
                    above_min = value
            else:
                count_eq += 1

        return CountResponse(
            round=round_id,
            count_lt=count_lt,
            count_eq=count_eq,
            count_gt=count_gt,
            node_id=self.node_id,
            below_max=below_max,
            above_min=above_min
        )

    def local_stats(self) -> Dict[str, Any]:
        """Conteo, mínimo y máximo locales (reducción inicial)."""
        low, high = self.shard.bounds()
        return {'count': len(self.shard), 'min': low, 'max': high}

    def sample(self, lo, hi, size: int, seed: int = 0) -> List:
        """
        Muestra aleatoria de valores del shard dentro de [lo, hi].

        Args:
            lo: Cota inferior (inclusive)
            hi: Cota superior (inclusive)
            size: Tamaño máximo de la muestra
            seed: Semilla (combinada con el node_id)

        Returns:
            Lista de a lo sumo `size` valores
        """
        window = [v for v in self.shard.values() if lo <= v <= hi]
        if len(window) <= size:
            return window

        rng = random.Random(seed * 1_000_003 + self.node_id)
        return rng.sample(window, size)

    # Handlers de mensajes

    def handle_stats(self, message: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'status': ResponseStatus.OK.value,
            'node_id': self.node_id,
            'round': message['round'],
            **self.local_stats()
        }

    def handle_sample(self, message: Dict[str, Any]) -> Dict[str, Any]:
        values = self.sample(
            message['lo'], message['hi'], message['size'], message.get('seed', 0)
        )
        return {
            'status': ResponseStatus.OK.value,
            'node_id': self.node_id,
            'round': message['round'],
            'samples': values
        }

    def handle_pivot_query(self, message: Dict[str, Any]) -> Dict[str, Any]:
        return self.count_against(message['pivot'], message['round']).to_dict()
