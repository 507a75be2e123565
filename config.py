"""
Configuración del sistema DistriStats.
"""
import logging
import sys

# Configuración de red
SIMULATED_LATENCY_MS = 10
SIMULATED_MAX_LATENCY_MS = 50
SIMULATED_PACKET_LOSS = 0.0

# Identidad del coordinador (los workers usan 0..M-1)
COORDINATOR_ID = -1

# Rondas barrera
ROUND_TIMEOUT = 5.0  # segundos por intento de envío
BARRIER_TIMEOUT = 30.0  # segundos para la ronda completa
SEND_RETRIES = 2  # reintentos después del primer intento
SEND_BACKOFF = 0.05  # espera base entre reintentos (lineal)

# Protocolo de mediana
MAX_MEDIAN_ROUNDS = 128  # Tope de rondas de pivote (floats o muestreo)
SAMPLE_SIZE = 0  # 0 = pivote por punto medio, >0 = muestreo por worker
SAMPLE_SEED = 1234

# Estado por consulta en el worker
MAX_TRACKED_QUERIES = 1024  # Consultas recordadas (LRU)

# Shuffle y detección de skew
BYTES_PER_VALUE = 8
SKEW_THRESHOLD = 0.5  # Fracción máxima de bytes hacia un solo nodo
SKEW_MIN_BYTES = 1024  # No evaluar skew con menos tráfico que esto
BATCH_BUDGET_SHARE = 0.8  # Fracción del timeout de ronda para enviar lotes

# Configuración HTTP
HTTP_TIMEOUT = 10  # segundos
HTTP_BASE_PORT = 8000

# Configuración de logging
LOG_LEVEL = "INFO"  # DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: str = LOG_LEVEL):
    """Configura logging con soporte UTF-8."""
    handler = logging.StreamHandler(sys.stdout)

    # Intentar configurar UTF-8; si el stream no lo permite se usa el default
    if hasattr(handler.stream, 'reconfigure'):
        try:
            handler.stream.reconfigure(encoding='utf-8', errors='replace')
        except ValueError:
            pass

    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
