"""
API HTTP del worker.

POST /message recibe los mensajes del coordinador y de otros workers;
GET /status y GET /metrics son de observación.
"""
import logging
from typing import Optional
from aiohttp import web

from metrics import export_metrics

logger = logging.getLogger(__name__)


class NodeHTTP:
    """
    Mixin que expone el worker por HTTP.
    Requiere que la clase tenga: node_id, host, port, get_status,
    handle_message
    """

    def __init__(self):
        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None

    def create_http_app(self) -> web.Application:
        """Aplicación aiohttp con las rutas del worker."""
        app = web.Application()
        app.add_routes([
            web.post('/message', self._http_message),
            web.get('/status', self._http_status),
            web.get('/metrics', self._http_metrics),
        ])
        return app

    async def start_http_server(self):
        """Levanta el servidor en host:port."""
        self.app = self.create_http_app()
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        await web.TCPSite(self.runner, self.host, self.port).start()

        logger.info(
            f"Worker {self.node_id}: escuchando en http://{self.host}:{self.port}"
        )

    async def stop_http_server(self):
        if self.runner is None:
            return

        await self.runner.cleanup()
        self.runner = None
        self.app = None
        logger.info(f"Worker {self.node_id}: servidor HTTP detenido")

    async def _http_message(self, request: web.Request) -> web.Response:
        """
        POST /message

        El cuerpo es el mismo dict que viaja por la red simulada; la
        respuesta es la del handler (ok, stale o error). Un cuerpo que
        no es JSON o no tiene 'type' da 400.
        """
        try:
            message = await request.json()
        except ValueError:
            return web.json_response({'error': 'JSON inválido'}, status=400)

        if not isinstance(message, dict) or 'type' not in message:
            return web.json_response({'error': "falta el campo 'type'"}, status=400)

        return web.json_response(await self.handle_message(message))

    async def _http_status(self, request: web.Request) -> web.Response:
        return web.json_response(self.get_status())

    async def _http_metrics(self, request: web.Request) -> web.Response:
        return web.Response(body=export_metrics(), content_type='text/plain')
