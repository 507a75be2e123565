"""
Chequeo de skew del shuffle por conteo de bytes.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class SkewFailure:
    """
    Reporte de rendimiento degradado: un nodo recibe demasiado tráfico.

    No es fatal; la corrección no depende del balance de carga.
    """
    node_id: int
    node_bytes: int
    total_bytes: int
    fraction: float
    threshold: float
    round_id: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)


def detect_skew(
    inbound_bytes: Dict[int, int],
    threshold: float,
    min_bytes: int = 0,
    round_id: int = 0
) -> Optional[SkewFailure]:
    """
    Detecta si un nodo recibe más de `threshold` del tráfico de la ronda.

    Args:
        inbound_bytes: Diccionario {node_id: bytes recibidos por red}
        threshold: Fracción máxima tolerada (0.0 - 1.0)
        min_bytes: Tráfico total mínimo para evaluar
        round_id: Ronda a la que pertenece el tráfico

    Returns:
        SkewFailure o None si el tráfico está balanceado
    """
    total = sum(inbound_bytes.values())
    if total == 0 or total < min_bytes or len(inbound_bytes) < 2:
        return None

    node_id, node_bytes = max(inbound_bytes.items(), key=lambda item: item[1])
    fraction = node_bytes / total

    if fraction <= threshold:
        return None

    logger.debug(
        f"Skew en ronda {round_id}: nodo {node_id} recibe "
        f"{fraction:.0%} de {total} bytes"
    )
    return SkewFailure(
        node_id=node_id,
        node_bytes=node_bytes,
        total_bytes=total,
        fraction=fraction,
        threshold=threshold,
        round_id=round_id
    )
