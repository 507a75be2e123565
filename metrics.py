"""
Métricas Prometheus para monitoreo.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, REGISTRY
import time
from functools import wraps
import logging

logger = logging.getLogger(__name__)


# Definir métricas
queries_total = Counter(
    'distristats_queries_total',
    'Total de consultas por tipo y resultado',
    ['kind', 'outcome']
)

query_latency = Histogram(
    'distristats_query_latency_seconds',
    'Latencia de consultas',
    ['kind'],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0)
)

rounds_total = Counter(
    'distristats_rounds_total',
    'Rondas barrera ejecutadas',
    ['kind']
)

transport_failures = Counter(
    'distristats_transport_failures_total',
    'Nodos que no completaron una ronda',
    ['node_id']
)

skew_warnings = Counter(
    'distristats_skew_warnings_total',
    'Rondas de shuffle con tráfico desbalanceado'
)

shuffle_bytes = Counter(
    'distristats_shuffle_bytes_total',
    'Bytes enviados durante el shuffle',
    ['node_id']
)

shard_values = Gauge(
    'distristats_shard_values',
    'Valores en el shard local',
    ['node_id']
)


def track_query_metrics(kind: str):
    """Decorator para medir latencia y resultado de una consulta."""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start = time.time()
            outcome = 'error'
            try:
                result = await func(*args, **kwargs)
                outcome = 'ok'
                return result
            finally:
                queries_total.labels(kind=kind, outcome=outcome).inc()
                query_latency.labels(kind=kind).observe(time.time() - start)
        return wrapper
    return decorator


def export_metrics() -> bytes:
    """Exporta métricas en formato Prometheus."""
    return generate_latest(REGISTRY)
