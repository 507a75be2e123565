"""
Tipos base compartidos: shard local y taxonomía de errores.
"""
from core.errors import (
    QueryError,
    TransportFailure,
    NodeUnreachable,
    ConvergenceFailure,
    WorkerFailure,
    EmptyDataset,
    MalformedShardEntry,
)
from core.shard import Shard

__all__ = [
    "QueryError",
    "TransportFailure",
    "NodeUnreachable",
    "ConvergenceFailure",
    "WorkerFailure",
    "EmptyDataset",
    "MalformedShardEntry",
    "Shard",
]
