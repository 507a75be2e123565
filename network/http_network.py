"""
Transporte HTTP para despliegues reales: cada mensaje es un
POST /message con cuerpo JSON y la respuesta del worker como JSON.
"""
import asyncio
import aiohttp
from typing import Dict, Any, Optional, Tuple
from network.network_interface import NetworkInterface
import logging

logger = logging.getLogger(__name__)

Address = Tuple[str, int]


def parse_node_addresses(text: str) -> Dict[int, Address]:
    """
    Parsea direcciones con formato "0=host:port,1=host:port".

    Args:
        text: Cadena de direcciones (vacía = ninguna)

    Returns:
        Diccionario {node_id: (host, port)}

    Raises:
        ValueError: Si una entrada no tiene host y puerto
    """
    addresses: Dict[int, Address] = {}
    for part in filter(None, (p.strip() for p in text.split(','))):
        node_part, _, endpoint = part.partition('=')
        host, _, port = endpoint.rpartition(':')
        if not host or not port:
            raise ValueError(f"Dirección inválida: '{part}'")
        addresses[int(node_part)] = (host, int(port))
    return addresses


class HTTPNetwork(NetworkInterface):
    """
    Cliente aiohttp con una sesión compartida por nodo.

    Igual que la red simulada, nunca lanza por fallos de entrega:
    timeouts, errores de conexión y respuestas no-200 se reportan como
    None y se cuentan en messages_failed.
    """

    def __init__(
        self,
        node_id: int,
        host: str = "localhost",
        port: int = 8000,
        node_addresses: Dict[int, Address] = None,
        request_timeout: float = 30.0
    ):
        """
        Args:
            node_id: ID del nodo local
            host: Host donde escucha este nodo
            port: Puerto donde escucha este nodo
            node_addresses: Diccionario {node_id: (host, port)} de los pares
            request_timeout: Tope total de la sesión por request
        """
        super().__init__(node_id)

        self.host = host
        self.port = port
        self.node_addresses: Dict[int, Address] = dict(node_addresses or {})
        self.request_timeout = request_timeout

        self.messages_sent = 0
        self.messages_failed = 0

        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_addresses(cls, node_id: int, text: str, **kwargs) -> "HTTPNetwork":
        """Construye la red a partir de una cadena "id=host:port,..."."""
        return cls(node_id, node_addresses=parse_node_addresses(text), **kwargs)

    async def start(self):
        if self._session is not None:
            return

        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.request_timeout)
        )
        self.logger.info(
            f"Nodo {self.node_id}: Red HTTP iniciada ({self.host}:{self.port}, "
            f"{len(self.node_addresses)} pares)"
        )

    async def stop(self):
        if self._session is None:
            return

        session, self._session = self._session, None
        await session.close()
        self.logger.info(f"Nodo {self.node_id}: Red HTTP detenida")

    def is_running(self) -> bool:
        return self._session is not None

    def register_node(self, node_id: int, host: str, port: int):
        self.node_addresses[node_id] = (host, port)
        self.logger.debug(f"Nodo {node_id} registrado: {host}:{port}")

    def get_node_url(self, node_id: int) -> Optional[str]:
        """URL base del nodo (p. ej. "http://worker1:8001") o None."""
        address = self.node_addresses.get(node_id)
        if address is None:
            return None
        return "http://%s:%d" % address

    async def send_message(
        self,
        sender_id: int,
        receiver_id: int,
        message: Dict[str, Any],
        timeout: float = 5.0
    ) -> Optional[Dict]:
        """
        POST del mensaje al /message del receptor.

        Returns:
            Respuesta JSON o None si el envío no se completó
        """
        response = await self._post(sender_id, receiver_id, message, timeout)
        if response is None:
            self.messages_failed += 1
        else:
            self.messages_sent += 1
        return response

    async def _post(
        self,
        sender_id: int,
        receiver_id: int,
        message: Dict[str, Any],
        timeout: float
    ) -> Optional[Dict]:
        if self._session is None:
            self.logger.warning("Red HTTP no está corriendo")
            return None

        url = self.get_node_url(receiver_id)
        if url is None:
            self.logger.warning(f"No se conoce dirección del nodo {receiver_id}")
            return None

        msg_type = message.get("type", "unknown")
        self.log_send(sender_id, receiver_id, msg_type)

        try:
            async with self._session.post(
                f"{url}/message",
                json=message,
                timeout=aiohttp.ClientTimeout(total=timeout)
            ) as response:
                if response.status != 200:
                    self.logger.warning(
                        f"Nodo {receiver_id} respondió {response.status} a {msg_type}"
                    )
                    return None
                return await response.json()

        except asyncio.TimeoutError:
            self.logger.warning(f"Timeout esperando a nodo {receiver_id} ({msg_type})")
            return None

        except aiohttp.ClientError as e:
            self.logger.error(f"Error HTTP hacia nodo {receiver_id}: {e}")
            return None
