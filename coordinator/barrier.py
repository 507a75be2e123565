"""
Ronda barrera: preguntar a todos, esperar a todos, reducir.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from network.message_types import ResponseStatus

logger = logging.getLogger(__name__)


@dataclass
class BarrierRound:
    """
    Ronda síncrona del coordinador.

    Mantiene el conjunto de respondedores esperados y las respuestas
    recolectadas; se libera cuando no queda nadie pendiente o vence el
    plazo. Respuestas con otro número de ronda se descartan.
    """
    round: int
    kind: str
    expected: Set[int]
    responses: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    failures: Dict[int, Dict[str, Any]] = field(default_factory=dict)

    def record(self, node_id: int, response: Optional[Dict[str, Any]]) -> bool:
        """
        Registra la respuesta de un worker.

        Args:
            node_id: Worker que respondió
            response: Respuesta (None si el transporte falló)

        Returns:
            True si la respuesta cuenta para esta ronda
        """
        if response is None or node_id not in self.expected:
            return False

        if node_id in self.responses or node_id in self.failures:
            return True

        if response.get('round') != self.round:
            logger.debug(
                f"Ronda {self.round}: respuesta de nodo {node_id} con ronda "
                f"{response.get('round')} descartada"
            )
            return False

        status = response.get('status')
        if status == ResponseStatus.OK.value:
            self.responses[node_id] = response
            return True

        if status == ResponseStatus.ERROR.value:
            self.failures[node_id] = response
            return True

        # stale u otro estado: el worker no procesó esta ronda
        return False

    def pending(self) -> Set[int]:
        """Workers que aún no respondieron."""
        return self.expected - self.responses.keys() - self.failures.keys()

    @property
    def complete(self) -> bool:
        return not self.pending()
