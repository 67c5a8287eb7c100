"""
Módulo de API HTTP.
Recibe mensajes del protocolo y expone estado y métricas del nodo.
"""
import logging
from typing import Optional
from aiohttp import web

from metrics import export_metrics

logger = logging.getLogger(__name__)


class NodeHTTP:
    """
    Mixin que añade servidor HTTP al nodo.
    Requiere que la clase tenga: node_id, network, get_status
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 8000):
        """Inicializa servidor HTTP."""
        self.host = host
        self.port = port
        self.app: Optional[web.Application] = None
        self.runner: Optional[web.AppRunner] = None

    def create_http_app(self) -> web.Application:
        """
        Crea aplicación aiohttp con todas las rutas.

        Returns:
            Aplicación web configurada
        """
        app = web.Application()

        app.router.add_post('/message', self._http_message)
        app.router.add_get('/status', self._http_status)
        app.router.add_get('/metrics', self._http_metrics)

        logger.info(f"Nodo {self.node_id}: HTTP app creada")

        return app

    async def start_http_server(self):
        """Inicia servidor HTTP en host:port configurado."""
        self.app = self.create_http_app()
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()

        logger.info(f"Nodo {self.node_id}: servidor HTTP en http://{self.host}:{self.port}")

    async def stop_http_server(self):
        """Detiene servidor HTTP limpiamente."""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            logger.info(f"Nodo {self.node_id}: servidor HTTP detenido")

    # ══════════════════════════════════════════════════════════
    # Handlers de Rutas del Nodo
    # ══════════════════════════════════════════════════════════

    async def _http_message(self, request: web.Request) -> web.Response:
        """
        POST /message

        Body: mensaje del protocolo codificado (application/octet-stream)

        El mensaje se encola y se responde de inmediato; su validez la
        decide el motor de elección.
        """
        payload = await request.read()
        await self.network.receive(payload)
        return web.json_response({'status': 'ok'})

    async def _http_status(self, request: web.Request) -> web.Response:
        """
        GET /status

        Returns: {
            "node_id": 5,
            "state": "normal",
            "current_leader": 6,
            "is_leader": false,
            "election_sequence": 2,
            "running": true
        }
        """
        return web.json_response(self.get_status())

    async def _http_metrics(self, request: web.Request) -> web.Response:
        """
        GET /metrics

        Returns: Métricas en formato Prometheus
        """
        return web.Response(
            body=export_metrics(),
            content_type='text/plain',
            charset='utf-8'
        )
