"""
Módulo de mensajería del worker.
Despacha mensajes al handler apropiado y filtra rondas atrasadas.
"""
import logging
from typing import Dict, Any

from core.errors import MalformedShardEntry, TransportFailure
from network.message_types import MessageType, ResponseStatus, FailureReport

logger = logging.getLogger(__name__)


class NodeMessaging:
    """
    Mixin que añade despacho de mensajes al worker.
    Requiere que la clase tenga: node_id, _latest_rounds, _track_round y los
    handlers de los mixins de shuffle y conteo.
    """

    # Mensajes del coordinador sujetos a control de ronda
    _COORDINATED = {
        MessageType.SHUFFLE.value,
        MessageType.DETECT.value,
        MessageType.STATS.value,
        MessageType.SAMPLE.value,
        MessageType.PIVOT_QUERY.value,
    }

    async def handle_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """
        Maneja un mensaje recibido despachándolo al handler apropiado.

        Los errores locales se convierten en un FailureReport para el
        coordinador en lugar de tumbar el worker.

        Args:
            message: Mensaje con campo 'type' que determina el handler

        Returns:
            Respuesta del handler
        """
        msg_type = message.get('type')
        round_id = message.get('round', 0)

        if msg_type in self._COORDINATED and not self._accept_round(
            message.get('query_id', ''), round_id
        ):
            return self._stale_response(message)

        try:
            if msg_type == MessageType.SHUFFLE.value:
                return await self.handle_shuffle(message)

            elif msg_type == MessageType.SHUFFLE_BATCH.value:
                return self.handle_shuffle_batch(message)

            elif msg_type == MessageType.DETECT.value:
                return self.handle_detect(message)

            elif msg_type == MessageType.STATS.value:
                return self.handle_stats(message)

            elif msg_type == MessageType.SAMPLE.value:
                return self.handle_sample(message)

            elif msg_type == MessageType.PIVOT_QUERY.value:
                return self.handle_pivot_query(message)

            elif msg_type == MessageType.PING.value:
                return {'status': ResponseStatus.OK.value, 'node_id': self.node_id}

        except MalformedShardEntry as e:
            logger.error(f"Worker {self.node_id}: shard inválido: {e}")
            return FailureReport(
                node_id=self.node_id,
                round=round_id,
                error="malformed_shard",
                detail=str(e)
            ).to_dict()

        except TransportFailure as e:
            logger.error(f"Worker {self.node_id}: fallo de entrega: {e}")
            return FailureReport(
                node_id=self.node_id,
                round=round_id,
                error="transport",
                detail=str(e),
                dest_id=e.node_id
            ).to_dict()

        logger.warning(f"Tipo de mensaje desconocido: {msg_type}")
        return {'status': ResponseStatus.ERROR.value, 'error': 'unknown_type',
                'node_id': self.node_id, 'round': round_id}

    def _accept_round(self, query_id: str, round_id: int) -> bool:
        """
        Acepta la ronda si no es anterior a la última vista para la consulta.
        """
        latest = self._latest_rounds.get(query_id)
        if latest is not None and round_id < latest:
            logger.debug(
                f"Worker {self.node_id}: ronda {round_id} atrasada "
                f"(última {latest}) en consulta {query_id}"
            )
            return False

        self._track_round(query_id, round_id)
        return True

    def _stale_response(self, message: Dict[str, Any]) -> Dict[str, Any]:
        return {
            'status': ResponseStatus.STALE.value,
            'node_id': self.node_id,
            'round': message.get('round', 0)
        }
