"""
Red simulada en memoria para tests y para el simulador.

Inyección de fallos por nodo emisor: latencia variable, pérdida de
paquetes, particiones, respuestas perdidas (el receptor procesó el
mensaje pero el emisor no lo sabe) y receptores colgados.
"""
import asyncio
import random
from typing import Dict, Any, List, Optional, Set, Callable, Tuple
from network.network_interface import NetworkInterface
import logging

logger = logging.getLogger(__name__)


class SimulatedNetwork(NetworkInterface):
    """
    Transporte en memoria entre instancias del mismo proceso.

    Todas las instancias comparten un registro de clase; un nodo es
    alcanzable mientras está registrado y su red está corriendo.
    """

    # node_id -> instancia (compartido entre instancias)
    _nodes: Dict[int, 'SimulatedNetwork'] = {}

    def __init__(
        self,
        node_id: int,
        latency_ms: float = 10.0,
        packet_loss: float = 0.0,
        max_latency_ms: float = 50.0,
        seed: Optional[int] = None
    ):
        """
        Args:
            node_id: ID del nodo
            latency_ms: Latencia mínima por mensaje
            packet_loss: Probabilidad de perder un mensaje (0.0-1.0)
            max_latency_ms: Latencia máxima por mensaje
            seed: Semilla para latencias y pérdidas reproducibles
        """
        super().__init__(node_id)

        self.latency_ms = latency_ms
        self.max_latency_ms = max(latency_ms, max_latency_ms)
        self.packet_loss = packet_loss
        self._rng = random.Random(seed)

        self.message_handler: Optional[Callable] = None

        # Fallos inyectados
        self.partitioned_from: Set[int] = set()
        self.ack_loss: int = 0
        self.lost_acks: Dict[str, int] = {}
        self.unresponsive_to: Set[str] = set()

        # Estadísticas y bitácora de entregas (emisor, receptor, tipo)
        self.messages_sent = 0
        self.messages_failed = 0
        self.delivered: List[Tuple[int, int, str]] = []

        self._running = False

        SimulatedNetwork._nodes[node_id] = self

    async def start(self):
        self._running = True
        SimulatedNetwork._nodes[self.node_id] = self
        self.logger.info(f"Nodo {self.node_id}: Red simulada iniciada")

    async def stop(self):
        """Detiene la red; el nodo deja de ser alcanzable."""
        self._running = False
        if SimulatedNetwork._nodes.get(self.node_id) is self:
            del SimulatedNetwork._nodes[self.node_id]
        self.logger.info(f"Nodo {self.node_id}: Red simulada detenida")

    def is_running(self) -> bool:
        return self._running

    def set_message_handler(self, handler: Callable):
        """
        Args:
            handler: Corrutina message -> respuesta
        """
        self.message_handler = handler

    async def send_message(
        self,
        sender_id: int,
        receiver_id: int,
        message: Dict[str, Any],
        timeout: float = 5.0
    ) -> Optional[Dict]:
        """
        Entrega el mensaje al handler del receptor y espera su respuesta.

        Returns:
            Respuesta del receptor, o None si se perdió el mensaje, su
            respuesta, o el receptor no contestó dentro del timeout
        """
        response = await self._deliver(sender_id, receiver_id, message, timeout)
        if response is None:
            self.messages_failed += 1
        else:
            self.messages_sent += 1
        return response

    def _blocked(self, receiver_id: int) -> Optional[str]:
        """Motivo por el que el mensaje no sale del emisor (None = sale)."""
        if not self._running:
            return "red detenida"
        if receiver_id in self.partitioned_from:
            return "partición"
        if self.packet_loss > 0 and self._rng.random() < self.packet_loss:
            return "perdido"

        receiver = SimulatedNetwork._nodes.get(receiver_id)
        if receiver is None or not receiver.is_running():
            return "nodo no disponible"
        if receiver.message_handler is None:
            return "sin handler"
        return None

    async def _deliver(
        self,
        sender_id: int,
        receiver_id: int,
        message: Dict[str, Any],
        timeout: float
    ) -> Optional[Dict]:
        msg_type = message.get("type", "unknown")

        reason = self._blocked(receiver_id)
        if reason:
            self.logger.debug(f"{sender_id} → {receiver_id}: {msg_type} no entregado ({reason})")
            return None

        receiver = SimulatedNetwork._nodes[receiver_id]

        latency = self._rng.uniform(self.latency_ms, self.max_latency_ms) / 1000
        if latency > 0:
            await asyncio.sleep(latency)

        self.log_send(sender_id, receiver_id, msg_type)

        try:
            if msg_type in receiver.unresponsive_to:
                # El receptor acepta la conexión pero nunca contesta
                await asyncio.sleep(timeout)
                raise asyncio.TimeoutError()

            response = await asyncio.wait_for(
                receiver.message_handler(message),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            self.logger.warning(f"Timeout esperando a nodo {receiver_id} ({msg_type})")
            return None
        except Exception as e:
            self.logger.error(f"Handler de nodo {receiver_id} falló con {msg_type}: {e}")
            return None

        self.delivered.append((sender_id, receiver_id, msg_type))

        if self.ack_loss > 0:
            self.ack_loss -= 1
            self.logger.debug(f"{sender_id} → {receiver_id}: respuesta a {msg_type} perdida")
            return None

        if self.lost_acks.get(msg_type, 0) > 0:
            self.lost_acks[msg_type] -= 1
            self.logger.debug(f"{sender_id} → {receiver_id}: respuesta a {msg_type} perdida")
            return None

        return response

    def partition_from(self, node_ids: Set[int]):
        """Corta los envíos de este nodo hacia `node_ids`."""
        self.partitioned_from = set(node_ids)
        self.logger.info(f"Nodo {self.node_id}: Particionado de {sorted(node_ids)}")

    def heal_partition(self):
        self.partitioned_from.clear()
        self.logger.info(f"Nodo {self.node_id}: Partición restaurada")

    def set_packet_loss(self, loss_rate: float):
        self.packet_loss = max(0.0, min(1.0, loss_rate))

    def lose_acks(self, msg_type: str, count: int = 1):
        """Pierde las próximas `count` respuestas a mensajes de ese tipo."""
        self.lost_acks[msg_type] = self.lost_acks.get(msg_type, 0) + count

    def hang_on(self, *msg_types: str):
        """Este nodo deja de contestar los mensajes de esos tipos."""
        self.unresponsive_to.update(msg_types)
        self.logger.info(f"Nodo {self.node_id}: sin respuesta a {sorted(msg_types)}")

    @classmethod
    def get_node(cls, node_id: int) -> Optional['SimulatedNetwork']:
        return cls._nodes.get(node_id)

    @classmethod
    def clear_all(cls):
        """Vacía el registro (entre tests)."""
        cls._nodes.clear()
