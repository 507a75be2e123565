"""
Taxonomía de errores de las consultas distribuidas.
"""
from typing import Iterable, Optional


class QueryError(Exception):
    """Error base: la consulta falló y no hay resultado parcial."""


class TransportFailure(QueryError):
    """Un envío/recepción no se completó tras los reintentos acotados."""

    def __init__(self, message: str, node_id: Optional[int] = None,
                 round_id: Optional[int] = None):
        super().__init__(message)
        self.node_id = node_id
        self.round_id = round_id


class NodeUnreachable(TransportFailure):
    """Uno o más workers no respondieron a una ronda barrera."""

    def __init__(self, nodes: Iterable[int], round_id: int, kind: str):
        self.nodes = sorted(nodes)
        self.kind = kind
        super().__init__(
            f"Nodos inalcanzables en ronda {round_id} ({kind}): {self.nodes}",
            node_id=self.nodes[0] if self.nodes else None,
            round_id=round_id
        )


class ConvergenceFailure(QueryError):
    """El protocolo de mediana agotó su presupuesto de rondas."""

    def __init__(self, message: str, rounds: int = 0):
        super().__init__(message)
        self.rounds = rounds


class WorkerFailure(QueryError):
    """Un worker reportó un error local (p. ej. entrada de shard inválida)."""

    def __init__(self, node_id: int, reason: str, detail: str = ""):
        super().__init__(f"Worker {node_id} falló ({reason}): {detail}")
        self.node_id = node_id
        self.reason = reason
        self.detail = detail


class EmptyDataset(QueryError):
    """La mediana no está definida sobre cero elementos."""


class MalformedShardEntry(ValueError):
    """Entrada no numérica (o NaN) dentro de un shard."""

    def __init__(self, index: int, value):
        super().__init__(
            f"Entrada inválida en posición {index}: {value!r}"
        )
        self.index = index
        self.value = value
