"""
Worker del motor de estadísticas de orden distribuido.

Este módulo orquesta todos los componentes del worker usando mixins:
- NodeCore: Inicialización, shard local y estado por consulta
- NodeMessaging: Despacho de mensajes y control de rondas
- NodeShuffle: Shuffle y detección local de duplicados (moda)
- NodeCounting: Conteo tri-partición y muestreo (mediana)
- NodeHTTP: Servidor HTTP
"""
import logging
from typing import Iterable, Union

import config
from core.shard import Shard
from network.network_interface import NetworkInterface

from node.node_core import NodeCore
from node.node_messaging import NodeMessaging
from node.node_shuffle import NodeShuffle
from node.node_counting import NodeCounting
from node.node_http import NodeHTTP

logger = logging.getLogger(__name__)


class WorkerNode(
    NodeCore,
    NodeMessaging,
    NodeShuffle,
    NodeCounting,
    NodeHTTP
):
    """
    Worker: dueño de un shard, responde a las rondas del coordinador.

    Ejemplo de uso:
        worker = WorkerNode(node_id=0, shard=[1, 3, 5, 1001])
        await worker.start()

        worker.count_against(5)   # CountResponse(count_lt=2, ...)

        await worker.shutdown()
    """

    def __init__(
        self,
        node_id: int,
        shard: Union[Shard, Iterable] = (),
        network: NetworkInterface = None,
        host: str = "localhost",
        port: int = config.HTTP_BASE_PORT,
        send_timeout: float = config.ROUND_TIMEOUT,
        send_retries: int = config.SEND_RETRIES,
        max_tracked_queries: int = config.MAX_TRACKED_QUERIES
    ):
        NodeCore.__init__(
            self,
            node_id,
            shard,
            network,
            host,
            port,
            send_timeout,
            send_retries,
            max_tracked_queries
        )
        NodeHTTP.__init__(self)

    async def shutdown(self):
        """Detiene servidor HTTP y luego los componentes internos."""
        await self.stop_http_server()
        await NodeCore.shutdown(self)
