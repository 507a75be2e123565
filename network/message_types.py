"""
Tipos de mensajes para comunicación entre nodos.
"""
from enum import Enum
from typing import Dict, Any, List, Optional, Iterable
from dataclasses import dataclass, field, asdict


class MessageType(Enum):
    """Tipos de mensajes en el sistema distribuido."""

    # Protocolo de moda (shuffle-and-detect)
    SHUFFLE = "shuffle"
    SHUFFLE_BATCH = "shuffle_batch"
    DETECT = "detect"

    # Protocolo de mediana (selección distribuida)
    STATS = "stats"
    SAMPLE = "sample"
    PIVOT_QUERY = "pivot_query"

    # Mensajes de control
    PING = "ping"


class ResponseStatus(Enum):
    """Estado de una respuesta de worker."""
    OK = "ok"
    STALE = "stale"
    ERROR = "error"


@dataclass
class ShuffleBatch:
    """Lote de valores ruteados de un worker a otro (uno por destino)."""

    query_id: str
    round: int
    sender_id: int
    values: List = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {"type": MessageType.SHUFFLE_BATCH.value, **asdict(self)}

    @classmethod
    def from_dict(cls, data: Dict) -> "ShuffleBatch":
        return cls(
            query_id=data["query_id"],
            round=data["round"],
            sender_id=data["sender_id"],
            values=list(data.get("values", []))
        )


@dataclass
class CandidateDuplicate:
    """Valor observado más de una vez en un nodo después del shuffle."""

    value: Any
    node_id: int
    count: int = 2

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "CandidateDuplicate":
        return cls(
            value=data["value"],
            node_id=data["node_id"],
            count=data.get("count", 2)
        )


@dataclass
class PivotQuery:
    """Consulta de pivote difundida a todos los workers."""

    query_id: str
    round: int
    pivot: Any

    def to_dict(self) -> Dict:
        return {"type": MessageType.PIVOT_QUERY.value, **asdict(self)}

    @classmethod
    def from_dict(cls, data: Dict) -> "PivotQuery":
        return cls(
            query_id=data["query_id"],
            round=data["round"],
            pivot=data["pivot"]
        )


@dataclass
class CountResponse:
    """
    Conteo tri-partición de un shard respecto a un pivote.

    below_max/above_min son los vecinos del pivote dentro del shard
    (mayor valor < pivote, menor valor > pivote).
    """

    round: int
    count_lt: int
    count_eq: int
    count_gt: int
    node_id: Optional[int] = None
    below_max: Any = None
    above_min: Any = None

    @property
    def total(self) -> int:
        return self.count_lt + self.count_eq + self.count_gt

    def to_dict(self) -> Dict:
        return {"status": ResponseStatus.OK.value, **asdict(self)}

    @classmethod
    def from_dict(cls, data: Dict) -> "CountResponse":
        return cls(
            round=data["round"],
            count_lt=data["count_lt"],
            count_eq=data["count_eq"],
            count_gt=data["count_gt"],
            node_id=data.get("node_id"),
            below_max=data.get("below_max"),
            above_min=data.get("above_min")
        )

    @classmethod
    def combine(cls, responses: Iterable["CountResponse"], round: int) -> "CountResponse":
        """Reducción asociativa y conmutativa (sumas, max, min)."""
        total = cls(round=round, count_lt=0, count_eq=0, count_gt=0)
        for response in responses:
            total.count_lt += response.count_lt
            total.count_eq += response.count_eq
            total.count_gt += response.count_gt
            if response.below_max is not None and (
                total.below_max is None or response.below_max > total.below_max
            ):
                total.below_max = response.below_max
            if response.above_min is not None and (
                total.above_min is None or response.above_min < total.above_min
            ):
                total.above_min = response.above_min
        return total


@dataclass
class FailureReport:
    """Reporte tipado de un fallo local de un worker."""

    node_id: int
    round: int
    error: str  # "transport", "malformed_shard", ...
    detail: str = ""
    dest_id: Optional[int] = None

    def to_dict(self) -> Dict:
        return {"status": ResponseStatus.ERROR.value, **asdict(self)}


@dataclass
class QueryResult:
    """Resultado final de una consulta (moda o mediana)."""

    kind: str  # "mode" | "median"
    payload: Any
    rounds: int = 0
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    def most_frequent(self) -> Optional[Any]:
        """
        Moda exacta entre los candidatos reportados.

        Empates se resuelven por el menor valor.
        """
        if self.kind != "mode":
            raise ValueError("most_frequent solo aplica a consultas de moda")

        frequencies = self.diagnostics.get("frequencies", {})
        if not frequencies:
            return None
        top = max(frequencies.values())
        return min(value for value, count in frequencies.items() if count == top)

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "payload": self.payload,
            "rounds": self.rounds,
            "diagnostics": self.diagnostics
        }
