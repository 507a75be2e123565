"""
Interfaz abstracta del transporte punto a punto.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, Set
import logging

logger = logging.getLogger(__name__)


class NetworkInterface(ABC):
    """
    Interfaz abstracta para comunicación entre nodos.

    Contrato: send_message retorna la respuesta del receptor, o None si
    el envío no se completó (nodo caído, partición, pérdida, timeout).
    El transporte nunca lanza por fallos de entrega; quien llama decide
    si reintenta o escala el fallo.
    """

    def __init__(self, node_id: int):
        """
        Inicializa la interfaz de red.

        Args:
            node_id: ID del nodo local
        """
        self.node_id = node_id
        self.logger = logging.getLogger(f"{__name__}.Node{node_id}")

    @abstractmethod
    async def send_message(
        self,
        sender_id: int,
        receiver_id: int,
        message: Dict[str, Any],
        timeout: float = 5.0
    ) -> Optional[Dict]:
        """
        Envía un mensaje a otro nodo.

        Args:
            sender_id: ID del nodo emisor
            receiver_id: ID del nodo receptor
            message: Diccionario con el mensaje
            timeout: Timeout en segundos

        Returns:
            Respuesta del nodo receptor o None si falla
        """
        pass

    @abstractmethod
    async def start(self):
        """Inicia el servicio de red."""
        pass

    @abstractmethod
    async def stop(self):
        """Detiene el servicio de red."""
        pass

    @abstractmethod
    def is_running(self) -> bool:
        """Verifica si el servicio está corriendo."""
        pass

    async def send_with_retry(
        self,
        receiver_id: int,
        message: Dict[str, Any],
        timeout: float = 5.0,
        retries: int = 2,
        backoff: float = 0.05
    ) -> Optional[Dict]:
        """
        Envía con reintentos acotados.

        Args:
            receiver_id: ID del nodo receptor
            message: Mensaje a enviar
            timeout: Timeout por intento
            retries: Reintentos después del primer intento
            backoff: Espera base entre intentos (lineal)

        Returns:
            Primera respuesta no nula, o None si todos los intentos fallan
        """
        for attempt in range(retries + 1):
            response = await self.send_message(
                self.node_id, receiver_id, message, timeout
            )
            if response is not None:
                return response

            if attempt < retries:
                self.logger.debug(
                    f"Reintento {attempt + 1}/{retries} hacia nodo "
                    f"{receiver_id} ({message.get('type')})"
                )
                await asyncio.sleep(backoff * (attempt + 1))

        return None

    async def broadcast(
        self,
        sender_id: int,
        receivers: Set[int],
        message: Dict[str, Any],
        timeout: float = 5.0
    ) -> Dict[int, Optional[Dict]]:
        """
        Envía un mensaje a múltiples nodos en paralelo.

        Args:
            sender_id: ID del nodo emisor
            receivers: Conjunto de IDs de nodos receptores
            message: Diccionario con el mensaje
            timeout: Timeout en segundos

        Returns:
            Diccionario {node_id: respuesta} para cada receptor
        """
        node_ids = [r for r in receivers if r != sender_id]
        responses = await asyncio.gather(
            *(self.send_message(sender_id, r, message, timeout) for r in node_ids),
            return_exceptions=True
        )

        result = {}
        for node_id, response in zip(node_ids, responses):
            if isinstance(response, Exception):
                self.logger.error(f"Error en broadcast a nodo {node_id}: {response}")
                result[node_id] = None
            else:
                result[node_id] = response

        return result

    def log_send(self, sender: int, receiver: int, msg_type: str):
        """Log de mensaje enviado."""
        self.logger.debug(f"{sender} → {receiver}: {msg_type}")
