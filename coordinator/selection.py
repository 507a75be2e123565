"""
Estado de selección del protocolo de mediana.
Elección de pivote y transición de [lo, hi] por ronda.
"""
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional

import config
from core.errors import ConvergenceFailure
from network.message_types import CountResponse

logger = logging.getLogger(__name__)


@dataclass
class SelectionState:
    """
    Estado del coordinador durante una consulta de mediana.

    lo/hi son las cotas cerradas más ajustadas conocidas que contienen
    el k-ésimo valor. k es el rango que queda dentro de [lo, hi] y
    offset la cantidad de elementos por debajo de lo.
    """
    k: int
    lo: Any
    hi: Any
    round: int = 0
    offset: int = 0
    steps: int = 0

    def midpoint(self):
        """Punto medio de [lo, hi] (entero si ambas cotas son enteras)."""
        if isinstance(self.lo, int) and isinstance(self.hi, int):
            return (self.lo + self.hi) // 2
        # Sin overflow para floats extremos
        return self.lo / 2 + self.hi / 2

    def apply(self, pivot, totals: CountResponse) -> Optional[Any]:
        """
        Aplica los conteos globales de un pivote.

        Returns:
            El pivote si su rango contiene a k (estado terminal), o None
            si la ventana se estrechó y hay que seguir

        Raises:
            ConvergenceFailure: Si las cotas dejan de contener a k
        """
        self.steps += 1
        rank_lt = totals.count_lt - self.offset

        if rank_lt > self.k:
            # Nuevo rango [lo, pivot): el mayor valor < pivot
            new_hi = totals.below_max
            if new_hi is None or new_hi < self.lo:
                raise ConvergenceFailure(
                    f"Cota inferior {self.lo} excede al k-ésimo valor",
                    rounds=self.steps
                )
            self.hi = new_hi
            return None

        if rank_lt + totals.count_eq <= self.k:
            # Nuevo rango (pivot, hi]: el menor valor > pivot
            new_lo = totals.above_min
            if new_lo is None or new_lo > self.hi:
                raise ConvergenceFailure(
                    f"Cota superior {self.hi} no alcanza al k-ésimo valor",
                    rounds=self.steps
                )
            self.k -= rank_lt + totals.count_eq
            self.offset = totals.count_lt + totals.count_eq
            self.lo = new_lo
            return None

        return pivot


def round_budget(lo, hi, max_rounds: Optional[int] = None, sampled: bool = False) -> int:
    """
    Presupuesto de rondas de pivote.

    Con punto medio sobre cotas enteras la ventana al menos se reduce a
    la mitad por ronda, así que bit_length(hi - lo) + 2 es una cota
    exacta y no se recorta salvo que max_rounds lo pida. Con floats o
    con muestreo no hay cota exacta: se usa max_rounds, o
    MAX_MEDIAN_ROUNDS si no se indicó.

    Args:
        lo: Cota inferior inicial
        hi: Cota superior inicial
        max_rounds: Tope explícito (None = sin tope para enteros)
        sampled: Si el pivote sale de un muestreo
    """
    if not sampled and isinstance(lo, int) and isinstance(hi, int):
        exact = (hi - lo).bit_length() + 2
        return exact if max_rounds is None else min(max_rounds, exact)
    return config.MAX_MEDIAN_ROUNDS if max_rounds is None else max_rounds


def sample_and_pick_pivot(samples: Iterable[Iterable]) -> Optional[Any]:
    """
    Combina las muestras de los workers y elige su mediana (inferior).

    Args:
        samples: Muestras por worker

    Returns:
        Pivote, o None si no hay muestras
    """
    merged: List = sorted(value for chunk in samples for value in chunk)
    if not merged:
        return None
    return merged[(len(merged) - 1) // 2]
