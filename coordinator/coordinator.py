"""
Coordinador completo que combina todos los mixins.
"""
import logging
from typing import Iterable, Optional

import config
from coordinator.coordinator_core import CoordinatorCore
from coordinator.mode_protocol import ModeProtocol
from coordinator.median_protocol import MedianProtocol
from network.network_interface import NetworkInterface

logger = logging.getLogger(__name__)


class Coordinator(CoordinatorCore, ModeProtocol, MedianProtocol):
    """
    Coordinador de consultas de estadísticos de orden.

    Hereda de:
    - CoordinatorCore: registro de workers y rondas barrera
    - ModeProtocol: moda por shuffle-and-detect
    - MedianProtocol: k-ésimo valor por rondas de pivote
    """

    def __init__(
        self,
        worker_ids: Iterable[int],
        network: NetworkInterface = None,
        node_id: int = config.COORDINATOR_ID,
        round_timeout: float = config.ROUND_TIMEOUT,
        barrier_timeout: float = config.BARRIER_TIMEOUT,
        send_retries: int = config.SEND_RETRIES,
        skew_threshold: float = config.SKEW_THRESHOLD,
        skew_min_bytes: int = config.SKEW_MIN_BYTES,
        max_rounds: Optional[int] = None,
        sample_seed: int = config.SAMPLE_SEED
    ):
        super().__init__(
            worker_ids,
            network=network,
            node_id=node_id,
            round_timeout=round_timeout,
            barrier_timeout=barrier_timeout,
            send_retries=send_retries
        )
        self.skew_threshold = skew_threshold
        self.skew_min_bytes = skew_min_bytes
        self.max_rounds = max_rounds
        self.sample_seed = sample_seed
